# storefront/store/base.py
from __future__ import annotations

from contextlib import AbstractContextManager

# table name -> primary key column
TABLES = {
    "users": "user_id",
    "categories": "category_id",
    "products": "product_id",
    "carts": "cart_id",
    "cart_items": "cart_item_id",
    "orders": "order_id",
    "order_items": "order_detail_id",
    "payments": "payment_id",
    "promotions": "promotion_id",
    "blogs": "blog_id",
}


class Table:
    """Repository contract shared by both backends."""

    name: str
    pk: str

    def all(self) -> list[dict]:
        raise NotImplementedError

    def get(self, pk) -> dict | None:
        raise NotImplementedError

    def find(self, **equals) -> list[dict]:
        raise NotImplementedError

    def first(self, **equals) -> dict | None:
        rows = self.find(**equals)
        return rows[0] if rows else None

    def insert(self, data: dict) -> dict:
        raise NotImplementedError

    def update(self, pk, changes: dict) -> dict | None:
        raise NotImplementedError

    def delete(self, pk) -> bool:
        raise NotImplementedError

    def delete_where(self, **equals) -> int:
        raise NotImplementedError

    def count(self) -> int:
        return len(self.all())


class Store:
    users: Table
    categories: Table
    products: Table
    carts: Table
    cart_items: Table
    orders: Table
    order_items: Table
    payments: Table
    promotions: Table
    blogs: Table

    def atomic(self) -> AbstractContextManager:
        """All writes inside the block land together or not at all."""
        raise NotImplementedError

    def table(self, name) -> Table:
        return getattr(self, name)
