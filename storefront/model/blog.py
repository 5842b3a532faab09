from sqlalchemy.sql import func

from ..extensions import db


class Blog(db.Model):
    __tablename__ = "blogs"

    blog_id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    summary = db.Column(db.Text, default="")
    content = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(64), default="General")
    image_url = db.Column(db.String(1024), default="")
    author_id = db.Column(db.Integer, index=True)
    status = db.Column(db.String(16), default="active", index=True)
    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)

    def as_dict(self):
        return {
            "blog_id": self.blog_id,
            "title": self.title,
            "summary": self.summary,
            "content": self.content,
            "category": self.category,
            "image_url": self.image_url,
            "author_id": self.author_id,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
