from sqlalchemy.sql import func

from ..extensions import db
from ..utils.money import as_number


class Order(db.Model):
    __tablename__ = "orders"

    order_id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, nullable=False, index=True)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(20), default="pending", index=True)
    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)

    def as_dict(self):
        return {
            "order_id": self.order_id,
            "customer_id": self.customer_id,
            "total_amount": as_number(self.total_amount),
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"

    order_detail_id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.order_id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    # captured at order time, independent of later product price changes
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)

    def as_dict(self):
        return {
            "order_detail_id": self.order_detail_id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": as_number(self.unit_price),
        }


class Payment(db.Model):
    __tablename__ = "payments"

    payment_id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.order_id"), nullable=False, unique=True)
    payment_method = db.Column(db.String(20), nullable=False)   # COD, BankTransfer, CreditCard
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    created_at = db.Column(db.DateTime, server_default=func.now())

    def as_dict(self):
        return {
            "payment_id": self.payment_id,
            "order_id": self.order_id,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
