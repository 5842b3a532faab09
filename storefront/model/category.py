# --- storefront/model/category.py ---
from ..extensions import db


# ---------------- CATEGORY ----------------
class Category(db.Model):
    __tablename__ = "categories"
    category_id = db.Column(db.Integer, primary_key=True)
    category_name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, default="")

    def as_dict(self):
        return {
            "category_id": self.category_id,
            "category_name": self.category_name,
            "description": self.description,
            }
