# storefront/model/product.py
from sqlalchemy.sql import func

from ..extensions import db
from ..utils.money import as_number


class Product(db.Model):
    __tablename__ = "products"
    product_id = db.Column(db.Integer, primary_key=True)
    # advisory reference: deleting a category leaves its products in place
    category_id = db.Column(db.Integer, index=True)
    product_name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, default="")

    price = db.Column(db.Numeric(12, 2), nullable=False)
    old_price = db.Column(db.Numeric(12, 2))             # pre-discount reference
    discount = db.Column(db.Integer, default=0)          # percent

    stock = db.Column(db.Integer, default=0)
    status = db.Column(db.String(16), default="active", index=True)  # active / inactive
    image_url = db.Column(db.String(1024))

    created_at = db.Column(db.DateTime, server_default=func.now())

    def as_dict(self):
        return {
            "product_id": self.product_id,
            "category_id": self.category_id,
            "product_name": self.product_name,
            "description": self.description,
            "price": as_number(self.price),
            "old_price": as_number(self.old_price) if self.old_price is not None else None,
            "discount": self.discount,
            "stock": self.stock,
            "status": self.status,
            "image_url": self.image_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
