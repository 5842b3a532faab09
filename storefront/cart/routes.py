# storefront/cart/routes.py
from __future__ import annotations

from flask import current_app, jsonify, request, session

from ..services import cart_service
from ..store import get_store
from ..utils.api import api_ok
from ..utils.decorators import current_user, login_required
from ..utils.errors import Unauthenticated, ValidationError
from . import bp

# ---- standard API response format ------------------------------------------
def ok(msg, data=None, status=200):
    r = jsonify(api_ok(msg, data)); r.status_code = status; return r

# ---- guest cart (signed session cookie) -------------------------------------
def _guest_lines():
    return cart_service.clean_anonymous_lines(session.get(cart_service.GUEST_CART_KEY))

def _set_guest_lines(lines):
    if lines:
        session[cart_service.GUEST_CART_KEY] = lines
    else:
        session.pop(cart_service.GUEST_CART_KEY, None)

def _customer_id(fail_open=False):
    u = current_user(fail_open=fail_open)
    return u["user_id"] if u else None

def _view(customer_id, anonymous_lines=None):
    selected = cart_service.parse_selection(request.args.get("selected"))
    view, discard = cart_service.reconcile(get_store(), customer_id, anonymous_lines or [], selected)
    return view, discard

# ---- endpoints -------------------------------------------------------------

@bp.get("")
def get_cart():
    """
    Query: selected=<product_id,...>  lines counted in total (default all)
    Guests see their cookie cart; customers see the persisted cart with any
    guest lines merged in once.
    """
    customer_id = _customer_id(fail_open=True)
    guest = _guest_lines()
    if customer_id is None:
        view, _ = _view(None, guest)
        return ok("cart", {**view, "guest": True})

    view, discard = _view(customer_id, guest)
    if discard:
        _set_guest_lines([])
    return ok("cart", {**view, "guest": False, "merged": discard})

@bp.post("/merge")
@login_required
def merge_cart():
    """
    Body: { "items": [{product_id, quantity}, ...] }
    For clients that hold the guest cart in local storage.
    """
    data = request.get_json(silent=True) or {}
    items = data.get("items")
    if items is not None and not isinstance(items, list):
        raise ValidationError("items must be a list")
    anonymous = (items or []) + _guest_lines()
    view, discard = _view(_customer_id(), anonymous)
    if discard:
        _set_guest_lines([])
    return ok("cart merged", {**view, "merged": discard})

@bp.post("/add")
def add_to_cart():
    """
    Body: { "product_id": int, "quantity": int (default 1) }
    """
    data = request.get_json(silent=True) or {}
    if not data.get("product_id"):
        raise ValidationError("Missing product_id")
    quantity = data.get("quantity", 1)
    store = get_store()

    # only a missing credential means guest; a rejected one is a 401
    customer_id = _customer_id()
    if customer_id is None:
        if current_app.config["CART_REQUIRE_LOGIN"]:
            raise Unauthenticated()
        _set_guest_lines(cart_service.add_anonymous_line(store, _guest_lines(), data["product_id"], quantity))
        view, _ = _view(None, _guest_lines())
        return ok("Added to cart", {**view, "guest": True}, status=201)

    cart = cart_service.get_or_create_cart(store, customer_id)
    line = cart_service.add_line(store, cart["cart_id"], data["product_id"], quantity)
    return ok("Added to cart", {"item": line, "cart_id": cart["cart_id"]}, status=201)

@bp.post("/update")
def update_cart():
    """
    Body: { "cart_item_id" | "product_id", "quantity": int } to set,
          or { ..., "delta": +1 / -1 } to increment / decrement.
    Guests address lines by product_id.
    """
    data = request.get_json(silent=True) or {}
    if "quantity" not in data and "delta" not in data:
        raise ValidationError("quantity is required")
    store = get_store()
    customer_id = _customer_id()

    if customer_id is None:
        if current_app.config["CART_REQUIRE_LOGIN"]:
            raise Unauthenticated()
        return _update_guest_line(data)

    if data.get("cart_item_id") is not None:
        item_id = cart_service.parse_id(data["cart_item_id"], "cart_item_id")
    else:
        item_id = cart_service.line_for_product(store, customer_id, data.get("product_id"))["cart_item_id"]

    if "delta" in data:
        line = cart_service.change_quantity(store, customer_id, item_id, data["delta"])
    else:
        line = cart_service.set_quantity(store, customer_id, item_id, data["quantity"])
    return ok("Cart updated", {"item": line})

def _update_guest_line(data):
    lines = cart_service.update_anonymous_line(
        _guest_lines(), data.get("product_id"), quantity=data.get("quantity"), delta=data.get("delta"),
    )
    _set_guest_lines(lines)
    view, _ = _view(None, lines)
    return ok("Cart updated", {**view, "guest": True})

@bp.put("/<int:cart_item_id>")
@login_required
def put_cart_item(cart_item_id: int):
    """
    Body: { "quantity": int }
    """
    data = request.get_json(silent=True) or {}
    if "quantity" not in data:
        raise ValidationError("quantity is required")
    line = cart_service.set_quantity(get_store(), _customer_id(), cart_item_id, data["quantity"])
    return ok("Cart updated", {"item": line})

@bp.delete("/<int:cart_item_id>")
@login_required
def remove_cart_item(cart_item_id: int):
    cart_service.remove_line(get_store(), _customer_id(), cart_item_id)
    return ok("Item removed")

@bp.delete("")
def clear_cart():
    customer_id = _customer_id()
    if customer_id is None:
        if current_app.config["CART_REQUIRE_LOGIN"]:
            raise Unauthenticated()
        _set_guest_lines([])
        return ok("Cart cleared", {"removed": 0})
    removed = cart_service.clear_cart(get_store(), customer_id)
    return ok("Cart cleared", {"removed": removed})
