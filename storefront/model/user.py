# --- storefront/model/user.py ---
from sqlalchemy.sql import func

from ..extensions import db


class User(db.Model):
    __tablename__ = "users"

    user_id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False, default="")
    role = db.Column(db.String(32), nullable=False, default="customer", index=True)  # customer, staff, admin, super_admin
    full_name = db.Column(db.String(180))
    phone = db.Column(db.String(32))
    address = db.Column(db.String(255))
    status = db.Column(db.String(16), nullable=False, default="active")
    created_at = db.Column(db.DateTime, server_default=func.now())

    def as_dict(self):
        return {
            "user_id": self.user_id,
            "username": self.username,
            "email": self.email,
            "password_hash": self.password_hash,
            "role": self.role,
            "full_name": self.full_name,
            "phone": self.phone,
            "address": self.address,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
