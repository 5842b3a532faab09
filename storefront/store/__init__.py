# ------ storefront/store/__init__.py ------
"""Persistence access.

Every entity is reached through a table-like repository on a store
object. Two interchangeable stores exist: ``SqlStore`` (Flask-SQLAlchemy)
and ``JsonFileStore`` (one JSON file per table, the "mock" backend).
Records cross the boundary as plain dicts.
"""
from flask import current_app

from .base import TABLES, Store, Table


def init_store(app):
    backend = (app.config.get("STORE_BACKEND") or "sql").lower()
    if backend == "mock":
        from .mock import JsonFileStore
        store = JsonFileStore(app.config["MOCK_DATA_DIR"])
    elif backend == "sql":
        from .sql import SqlStore
        store = SqlStore()
    else:
        raise RuntimeError(f"unknown STORE_BACKEND {backend!r}")
    app.extensions["store"] = store
    app.logger.info("store backend: %s", backend)
    return store


def get_store() -> Store:
    return current_app.extensions["store"]


__all__ = ["TABLES", "Store", "Table", "init_store", "get_store"]
