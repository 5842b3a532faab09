# --- storefront/model/promotion.py ---

from sqlalchemy.sql import func

from ..extensions import db


class Promotion(db.Model):
    __tablename__ = "promotions"

    promotion_id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, default="")
    category = db.Column(db.String(64), default="")

    # ISO dates kept as text so both stores echo them exactly
    start_date = db.Column(db.String(10))
    end_date = db.Column(db.String(10))

    quantity_limit = db.Column(db.Integer, default=0)
    quantity_used = db.Column(db.Integer, default=0)
    status = db.Column(db.String(16), default="active", index=True)

    created_at = db.Column(db.DateTime, server_default=func.now())

    def as_dict(self):
        return {
            "promotion_id": self.promotion_id,
            "code": self.code,
            "description": self.description,
            "category": self.category,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "quantity_limit": self.quantity_limit,
            "quantity_used": self.quantity_used,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
