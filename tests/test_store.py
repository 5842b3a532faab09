import json
from decimal import Decimal

import pytest
from flask import Flask

from storefront.store import init_store
from storefront.store.mock import JsonFileStore


class TestTableContract:
    def test_crud(self, run):
        def scenario(s):
            a = s.categories.insert({"category_name": "A"})
            b = s.categories.insert({"category_name": "B", "description": "bee"})
            assert b["category_id"] > a["category_id"]
            assert s.categories.get(a["category_id"])["category_name"] == "A"
            assert s.categories.get(999) is None
            assert s.categories.first(category_name="B")["description"] == "bee"
            assert s.categories.first(category_name="Z") is None

            updated = s.categories.update(a["category_id"], {"description": "ay", "category_id": 500})
            assert updated["category_id"] == a["category_id"]
            assert updated["description"] == "ay"
            assert s.categories.update(999, {"description": "x"}) is None

            assert s.categories.delete(a["category_id"]) is True
            assert s.categories.delete(a["category_id"]) is False
            assert [c["category_name"] for c in s.categories.all()] == ["B"]
            assert s.categories.count() == 1
        run(scenario)

    def test_delete_where(self, run):
        def scenario(s):
            cart = s.carts.insert({"customer_id": 1})
            for pid in (1, 2, 3):
                s.cart_items.insert({"cart_id": cart["cart_id"], "product_id": pid, "quantity": 1})
            assert s.cart_items.delete_where(cart_id=cart["cart_id"], product_id=2) == 1
            assert [l["product_id"] for l in s.cart_items.find(cart_id=cart["cart_id"])] == [1, 3]
            assert s.cart_items.delete_where(cart_id=cart["cart_id"]) == 2
            assert s.cart_items.delete_where(cart_id=cart["cart_id"]) == 0
        run(scenario)

    def test_defaults(self, run):
        user = run(lambda s: s.users.insert({"username": "u", "email": "u@x.io", "password_hash": "h"}))
        assert user["role"] == "customer"
        assert user["status"] == "active"

    def test_money_comes_back_as_numbers(self, run):
        p = run(lambda s: s.products.insert({"category_id": 1, "product_name": "P", "price": Decimal("12.50")}))
        assert run(lambda s: s.products.get(p["product_id"]))["price"] == 12.5

    def test_atomic_rolls_back(self, run):
        def scenario(s):
            with s.atomic():
                order = s.orders.insert({"customer_id": 1, "total_amount": 10})
                s.order_items.insert({"order_id": order["order_id"], "product_id": 1, "quantity": 1,
                                      "unit_price": 10})
                raise RuntimeError("stop")

        with pytest.raises(RuntimeError):
            run(scenario)
        assert run(lambda s: s.orders.count()) == 0
        assert run(lambda s: s.order_items.count()) == 0

    def test_atomic_commits_together(self, run):
        def scenario(s):
            with s.atomic():
                order = s.orders.insert({"customer_id": 1, "total_amount": 10})
                with s.atomic():
                    s.payments.insert({"order_id": order["order_id"], "payment_method": "COD"})
            return order
        order = run(scenario)
        assert run(lambda s: s.payments.first(order_id=order["order_id"]))["payment_method"] == "COD"


class TestJsonFiles:
    def test_write_through_and_reload(self, tmp_path):
        store = JsonFileStore(str(tmp_path))
        store.categories.insert({"category_name": "Books"})
        rows = json.loads((tmp_path / "categories.json").read_text())
        assert rows == [{"description": "", "category_name": "Books", "category_id": 1}]

        fresh = JsonFileStore(str(tmp_path))
        assert fresh.categories.get(1)["category_name"] == "Books"

    def test_atomic_defers_writes(self, tmp_path):
        store = JsonFileStore(str(tmp_path))
        with store.atomic():
            store.orders.insert({"customer_id": 1, "total_amount": 5})
            assert not (tmp_path / "orders.json").exists()
        assert len(json.loads((tmp_path / "orders.json").read_text())) == 1

    def test_rollback_leaves_files_untouched(self, tmp_path):
        store = JsonFileStore(str(tmp_path))
        store.orders.insert({"customer_id": 1, "total_amount": 5})
        before = (tmp_path / "orders.json").read_bytes()

        with pytest.raises(ValueError):
            with store.atomic():
                store.orders.insert({"customer_id": 2, "total_amount": 7})
                store.payments.insert({"order_id": 2, "payment_method": "COD"})
                raise ValueError("boom")

        assert (tmp_path / "orders.json").read_bytes() == before
        assert not (tmp_path / "payments.json").exists()
        assert store.orders.count() == 1


def test_unknown_backend():
    app = Flask(__name__)
    app.config["STORE_BACKEND"] = "redis"
    with pytest.raises(RuntimeError):
        init_store(app)
