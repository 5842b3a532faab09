# storefront/store/mock.py
"""JSON-file backed store.

Each table is one ``<table>.json`` file holding a list of records. A
table is read on first access and kept in memory; every write rewrites
the file (write-through). One process-wide lock serialises writers.
"""
import copy
import json
import logging
import os
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal

from .base import TABLES, Store, Table

log = logging.getLogger(__name__)


def _now_iso():
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="seconds")


# column defaults the SQL models get from the schema
DEFAULTS = {
    "users": {"role": "customer", "status": "active", "created_at": _now_iso},
    "categories": {"description": ""},
    "products": {"discount": 0, "stock": 0, "status": "active", "description": "", "created_at": _now_iso},
    "carts": {"created_at": _now_iso},
    "cart_items": {"quantity": 1},
    "orders": {"status": "pending", "created_at": _now_iso},
    "order_items": {},
    "payments": {"payment_status": "pending", "created_at": _now_iso},
    "promotions": {"quantity_limit": 0, "quantity_used": 0, "status": "active", "created_at": _now_iso},
    "blogs": {"category": "General", "status": "active", "summary": "", "image_url": "", "created_at": _now_iso},
}


def _json_default(o):
    if isinstance(o, Decimal):
        return int(o) if o == o.to_integral_value() else float(o)
    if isinstance(o, datetime):
        return o.isoformat()
    raise TypeError(f"not JSON serializable: {type(o).__name__}")


def _plain(record):
    # normalise Decimals and datetimes the same way a reload would
    return json.loads(json.dumps(record, default=_json_default))


def _matches(record, equals):
    return all(record.get(k) == v for k, v in equals.items())


class JsonTable(Table):
    def __init__(self, store, name):
        self.store = store
        self.name = name
        self.pk = TABLES[name]
        self._rows = None

    @property
    def path(self):
        return os.path.join(self.store.data_dir, f"{self.name}.json")

    def _load(self):
        if self._rows is None:
            try:
                with open(self.path, encoding="utf-8") as fh:
                    self._rows = json.load(fh)
            except FileNotFoundError:
                self._rows = []
        return self._rows

    def _save(self):
        self.store._written(self)

    def _flush_to_disk(self):
        os.makedirs(self.store.data_dir, exist_ok=True)
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(self._rows, fh, ensure_ascii=False, indent=2, default=_json_default)
        os.replace(tmp, self.path)

    def _index(self, pk):
        for i, row in enumerate(self._load()):
            if row.get(self.pk) == pk:
                return i
        return None

    def all(self):
        with self.store.lock:
            return [dict(r) for r in self._load()]

    def get(self, pk):
        with self.store.lock:
            i = self._index(pk)
            return dict(self._rows[i]) if i is not None else None

    def find(self, **equals):
        with self.store.lock:
            return [dict(r) for r in self._load() if _matches(r, equals)]

    def insert(self, data):
        with self.store.lock:
            rows = self._load()
            record = {}
            for key, default in DEFAULTS[self.name].items():
                record[key] = default() if callable(default) else default
            record.update({k: v for k, v in data.items() if v is not None or k not in record})
            record[self.pk] = max((r.get(self.pk) or 0 for r in rows), default=0) + 1
            record = _plain(record)
            rows.append(record)
            self._save()
            return dict(record)

    def update(self, pk, changes):
        with self.store.lock:
            i = self._index(pk)
            if i is None:
                return None
            merged = {**self._rows[i], **{k: v for k, v in changes.items() if k != self.pk}}
            self._rows[i] = _plain(merged)
            self._save()
            return dict(self._rows[i])

    def delete(self, pk):
        with self.store.lock:
            i = self._index(pk)
            if i is None:
                return False
            del self._rows[i]
            self._save()
            return True

    def delete_where(self, **equals):
        with self.store.lock:
            rows = self._load()
            keep = [r for r in rows if not _matches(r, equals)]
            n = len(rows) - len(keep)
            if n:
                self._rows = keep
                self._save()
            return n


class JsonFileStore(Store):
    def __init__(self, data_dir):
        self.data_dir = data_dir
        self.lock = threading.RLock()
        self._depth = 0
        self._dirty = set()
        for name in TABLES:
            setattr(self, name, JsonTable(self, name))

    def _tables(self):
        return [self.table(name) for name in TABLES]

    def _written(self, table):
        if self._depth:
            self._dirty.add(table.name)
        else:
            table._flush_to_disk()

    @contextmanager
    def atomic(self):
        with self.lock:
            outer = self._depth == 0
            if outer:
                snapshot = {t.name: copy.deepcopy(t._load()) for t in self._tables()}
                self._dirty = set()
            self._depth += 1
            try:
                yield self
            except Exception:
                self._depth -= 1
                if outer:
                    for t in self._tables():
                        t._rows = snapshot[t.name]
                    log.warning("rolled back json store changes to %s", sorted(self._dirty))
                    self._dirty = set()
                raise
            self._depth -= 1
            if outer:
                for name in sorted(self._dirty):
                    self.table(name)._flush_to_disk()
                self._dirty = set()
