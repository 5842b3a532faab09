import pytest

from storefront.services import cart_service
from storefront.services.cart_service import MAX_LINE_QUANTITY
from storefront.utils.errors import NotFound, ValidationError


@pytest.fixture
def customer(make_user, catalog):
    return make_user("alice")


def _items(resp):
    body = resp.get_json()
    return {i["product_id"]: i for i in body["items"]}


class TestGuestCart:
    def test_add_keeps_lines_in_session(self, client, catalog):
        resp = client.post("/cart/add", json={"product_id": 5, "quantity": 2})
        assert resp.status_code == 201
        assert resp.get_json()["guest"] is True

        resp = client.get("/cart")
        body = resp.get_json()
        assert body["guest"] is True
        assert body["cart_id"] is None
        assert _items(resp)[5]["quantity"] == 2
        assert body["total"] == 20000

    def test_add_same_product_grows_line(self, client, catalog):
        client.post("/cart/add", json={"product_id": 5, "quantity": 1})
        client.post("/cart/add", json={"product_id": 5, "quantity": 3})
        items = client.get("/cart").get_json()["items"]
        assert len(items) == 1
        assert items[0]["quantity"] == 4

    def test_unknown_product(self, client, catalog):
        resp = client.post("/cart/add", json={"product_id": 999})
        assert resp.status_code == 404
        assert resp.get_json()["success"] is False

    def test_update_and_clear(self, client, catalog):
        client.post("/cart/add", json={"product_id": 3, "quantity": 2})
        resp = client.post("/cart/update", json={"product_id": 3, "delta": 1})
        assert resp.status_code == 200
        assert _items(resp)[3]["quantity"] == 3

        resp = client.post("/cart/update", json={"product_id": 3, "quantity": 0})
        assert resp.status_code == 400

        assert client.delete("/cart").status_code == 200
        assert client.get("/cart").get_json()["items"] == []

    def test_login_required_mode(self, app, client, catalog):
        app.config["CART_REQUIRE_LOGIN"] = True
        resp = client.post("/cart/add", json={"product_id": 5})
        assert resp.status_code == 401

    def test_bad_session_cookie_reads_as_guest(self, client, catalog):
        client.set_cookie("session_token", "not-a-jwt")
        resp = client.get("/cart")
        assert resp.status_code == 200
        assert resp.get_json()["guest"] is True


class TestCustomerCart:
    def test_add_is_upsert(self, client, customer, login, run):
        login(client, "alice")
        first = client.post("/cart/add", json={"product_id": 5, "quantity": 1}).get_json()
        second = client.post("/cart/add", json={"product_id": 5, "quantity": 2}).get_json()
        assert first["item"]["cart_item_id"] == second["item"]["cart_item_id"]
        assert second["item"]["quantity"] == 3
        assert run(lambda s: len(s.cart_items.find(cart_id=first["cart_id"]))) == 1

    def test_quantity_must_be_positive(self, client, customer, login):
        login(client, "alice")
        assert client.post("/cart/add", json={"product_id": 5, "quantity": 0}).status_code == 400
        item = client.post("/cart/add", json={"product_id": 5}).get_json()["item"]

        resp = client.put(f"/cart/{item['cart_item_id']}", json={"quantity": -1})
        assert resp.status_code == 400
        resp = client.post("/cart/update", json={"cart_item_id": item["cart_item_id"], "delta": -1})
        assert resp.status_code == 400

        resp = client.put(f"/cart/{item['cart_item_id']}", json={"quantity": 4})
        assert resp.get_json()["item"]["quantity"] == 4

    def test_quantity_has_an_upper_bound(self, client, customer, login):
        login(client, "alice")
        assert client.post("/cart/add", json={"product_id": 5, "quantity": 10**20}).status_code == 400
        item = client.post("/cart/add", json={"product_id": 5, "quantity": MAX_LINE_QUANTITY}).get_json()["item"]
        assert client.post("/cart/add", json={"product_id": 5}).status_code == 400
        resp = client.post("/cart/update", json={"cart_item_id": item["cart_item_id"], "delta": 1})
        assert resp.status_code == 400
        assert _items(client.get("/cart"))[5]["quantity"] == MAX_LINE_QUANTITY

    def test_rejected_credential_does_not_fall_back_to_guest(self, app, client, customer, login):
        app.config["JWT_COOKIE_CSRF_PROTECT"] = True
        login(client, "alice")
        resp = client.post("/cart/add", json={"product_id": 5})
        assert resp.status_code == 401
        with client.session_transaction() as sess:
            assert cart_service.GUEST_CART_KEY not in sess

        csrf = client.get_cookie("csrf_access_token").value
        resp = client.post("/cart/add", json={"product_id": 5}, headers={"X-CSRF-TOKEN": csrf})
        assert resp.status_code == 201
        assert "cart_id" in resp.get_json()

    def test_cannot_touch_another_customers_line(self, app, client, customer, make_user, login):
        login(client, "alice")
        item = client.post("/cart/add", json={"product_id": 5}).get_json()["item"]

        make_user("bob")
        other = app.test_client()
        login(other, "bob")
        assert other.put(f"/cart/{item['cart_item_id']}", json={"quantity": 9}).status_code == 404
        assert other.delete(f"/cart/{item['cart_item_id']}").status_code == 404

    def test_remove_line(self, client, customer, login):
        login(client, "alice")
        item = client.post("/cart/add", json={"product_id": 5}).get_json()["item"]
        client.post("/cart/add", json={"product_id": 3})
        assert client.delete(f"/cart/{item['cart_item_id']}").status_code == 200
        assert set(_items(client.get("/cart"))) == {3}

    def test_selected_lines_drive_total(self, client, customer, login):
        login(client, "alice")
        client.post("/cart/add", json={"product_id": 5, "quantity": 2})
        client.post("/cart/add", json={"product_id": 3, "quantity": 1})

        assert client.get("/cart").get_json()["total"] == 25000

        resp = client.get("/cart?selected=5")
        items = _items(resp)
        assert resp.get_json()["total"] == 20000
        assert items[5]["selected"] is True
        assert items[3]["selected"] is False
        assert items[3]["subtotal"] == 5000

    def test_live_price_is_used(self, client, customer, login, run):
        login(client, "alice")
        client.post("/cart/add", json={"product_id": 5, "quantity": 2})
        run(lambda s: s.products.update(5, {"price": 12000}))
        resp = client.get("/cart")
        assert _items(resp)[5]["price"] == 12000
        assert resp.get_json()["total"] == 24000

    def test_missing_product_is_flagged(self, client, customer, login, run):
        login(client, "alice")
        client.post("/cart/add", json={"product_id": 1})
        client.post("/cart/add", json={"product_id": 5})
        run(lambda s: s.products.delete(1))

        resp = client.get("/cart")
        body = resp.get_json()
        assert body["missing_products"] == [1]
        assert _items(resp)[1]["missing"] is True
        assert body["total"] == 10000

    def test_clear_removes_cart(self, client, customer, login, run):
        login(client, "alice")
        client.post("/cart/add", json={"product_id": 5})
        resp = client.delete("/cart")
        assert resp.get_json()["removed"] == 1
        assert run(lambda s: s.carts.count()) == 0
        assert client.get("/cart").get_json()["items"] == []


class TestMerge:
    def test_guest_lines_merge_once_on_view(self, client, customer, login):
        login(client, "alice")
        with client.session_transaction() as sess:
            sess[cart_service.GUEST_CART_KEY] = [{"product_id": 5, "quantity": 2}]

        first = client.get("/cart").get_json()
        assert first["merged"] is True
        assert [(i["product_id"], i["quantity"]) for i in first["items"]] == [(5, 2)]

        second = client.get("/cart").get_json()
        assert second["merged"] is False
        assert second["items"] == first["items"]
        assert second["total"] == first["total"]

    def test_failed_merge_keeps_guest_lines(self, app, client, customer, login, run, monkeypatch):
        login(client, "alice")
        with client.session_transaction() as sess:
            sess[cart_service.GUEST_CART_KEY] = [{"product_id": 5, "quantity": 2}, {"product_id": 3, "quantity": 1}]

        table = app.extensions["store"].cart_items
        insert = table.insert
        calls = []

        def flaky_insert(data):
            calls.append(data)
            if len(calls) == 2:
                raise RuntimeError("storage unavailable")
            return insert(data)

        monkeypatch.setattr(table, "insert", flaky_insert)
        assert client.get("/cart").status_code == 500
        with client.session_transaction() as sess:
            assert len(sess[cart_service.GUEST_CART_KEY]) == 2
        assert run(lambda s: s.cart_items.count()) == 0
        assert run(lambda s: s.carts.count()) == 0

        monkeypatch.undo()
        first = client.get("/cart").get_json()
        assert first["merged"] is True
        assert {i["product_id"]: i["quantity"] for i in first["items"]} == {5: 2, 3: 1}
        second = client.get("/cart").get_json()
        assert {i["product_id"]: i["quantity"] for i in second["items"]} == {5: 2, 3: 1}
        with client.session_transaction() as sess:
            assert cart_service.GUEST_CART_KEY not in sess

    def test_login_merges_guest_cart(self, client, customer, login):
        client.post("/cart/add", json={"product_id": 5, "quantity": 2})
        resp = login(client, "alice")
        assert resp.get_json()["merged_cart_lines"] == 1

        body = client.get("/cart").get_json()
        assert body["guest"] is False
        assert [(i["product_id"], i["quantity"]) for i in body["items"]] == [(5, 2)]

    def test_merge_adds_to_existing_line(self, client, customer, login):
        login(client, "alice")
        client.post("/cart/add", json={"product_id": 5, "quantity": 1})
        resp = client.post("/cart/merge", json={"items": [{"product_id": 5, "quantity": 2}, {"product_id": 3}]})
        assert resp.status_code == 200
        items = _items(resp)
        assert items[5]["quantity"] == 3
        assert items[3]["quantity"] == 1

    def test_merge_requires_login(self, client, catalog):
        assert client.post("/cart/merge", json={"items": []}).status_code == 401

    def test_merge_skips_unknown_products(self, app, customer, run):
        def merge(s):
            return cart_service.merge_anonymous(
                s, customer["user_id"], [{"product_id": 999, "quantity": 1}, {"product_id": 5, "quantity": 1}]
            )
        cart, merged = run(merge)
        assert merged == 1
        assert run(lambda s: [l["product_id"] for l in s.cart_items.find(cart_id=cart["cart_id"])]) == [5]


class TestHelpers:
    def test_clean_anonymous_lines_drops_junk(self):
        raw = [{"product_id": "3", "quantity": "2"}, {"product_id": None}, "x", {"product_id": 4, "quantity": 0}]
        assert cart_service.clean_anonymous_lines(raw) == [{"product_id": 3, "quantity": 2}]

    @pytest.mark.parametrize("value", [True, "two", None, 1.5, float("inf")])
    def test_parse_quantity_rejects(self, value):
        with pytest.raises(ValidationError):
            cart_service.parse_quantity(value)

    def test_parse_selection(self):
        assert cart_service.parse_selection(None) is None
        assert cart_service.parse_selection("1, 2,x,") == {1, 2}
        assert cart_service.parse_selection([3, "4"]) == {3, 4}

    def test_update_anonymous_line_unknown(self):
        with pytest.raises(NotFound):
            cart_service.update_anonymous_line([{"product_id": 1, "quantity": 1}], 2, quantity=3)
