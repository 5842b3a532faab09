# storefront/store/sql.py
import threading
from contextlib import contextmanager

from ..extensions import db
from ..model import (
    Blog, Cart, CartItem, Category, Order, OrderItem, Payment, Product, Promotion, User,
)
from .base import TABLES, Store, Table

MODELS = {
    "users": User,
    "categories": Category,
    "products": Product,
    "carts": Cart,
    "cart_items": CartItem,
    "orders": Order,
    "order_items": OrderItem,
    "payments": Payment,
    "promotions": Promotion,
    "blogs": Blog,
}


class SqlTable(Table):
    def __init__(self, store, name, model):
        self.store = store
        self.name = name
        self.model = model
        self.pk = TABLES[name]
        self._pk_col = getattr(model, self.pk)

    def _query(self, **equals):
        return db.session.query(self.model).filter_by(**equals).order_by(self._pk_col.asc())

    def all(self):
        return [row.as_dict() for row in self._query()]

    def get(self, pk):
        if pk is None:
            return None
        row = db.session.get(self.model, pk)
        return row.as_dict() if row else None

    def find(self, **equals):
        return [row.as_dict() for row in self._query(**equals)]

    def insert(self, data):
        row = self.model(**data)
        db.session.add(row)
        db.session.flush()
        record = row.as_dict()
        self.store._written()
        return record

    def update(self, pk, changes):
        row = db.session.get(self.model, pk)
        if not row:
            return None
        for key, value in changes.items():
            if key != self.pk:
                setattr(row, key, value)
        db.session.flush()
        record = row.as_dict()
        self.store._written()
        return record

    def delete(self, pk):
        row = db.session.get(self.model, pk)
        if not row:
            return False
        db.session.delete(row)
        db.session.flush()
        self.store._written()
        return True

    def delete_where(self, **equals):
        n = db.session.query(self.model).filter_by(**equals).delete(synchronize_session="fetch")
        self.store._written()
        return n

    def count(self):
        return db.session.query(self.model).count()


class SqlStore(Store):
    """Relational store on the Flask-SQLAlchemy session.

    Outside ``atomic()`` every write commits on its own; inside it writes
    only flush and the outermost block commits or rolls back.
    """

    def __init__(self):
        self._local = threading.local()
        for name, model in MODELS.items():
            setattr(self, name, SqlTable(self, name, model))

    @property
    def _depth(self):
        return getattr(self._local, "depth", 0)

    @_depth.setter
    def _depth(self, value):
        self._local.depth = value

    def _written(self):
        if self._depth == 0:
            db.session.commit()

    @contextmanager
    def atomic(self):
        self._depth += 1
        try:
            yield self
        except Exception:
            self._depth -= 1
            if self._depth == 0:
                db.session.rollback()
            raise
        self._depth -= 1
        if self._depth == 0:
            db.session.commit()
