# storefront/order/routes.py
from flask import current_app, jsonify, request

from ..services import checkout_service
from ..store import get_store
from ..utils.api import api_ok
from ..utils.decorators import current_user, login_required
from . import bp


def ok(msg, data=None, status=200):
    r = jsonify(api_ok(msg, data)); r.status_code = status; return r


@bp.post("/checkout")
@login_required
def checkout():
    """
    Body: { "items": [{product_id, quantity, price}], "payment_method": "cash" | "transfer" | "credit" }
    The client clears its own checkout selection after a 201.
    """
    data = request.get_json(silent=True) or {}
    result = checkout_service.checkout(
        get_store(),
        current_user()["user_id"],
        data.get("items"),
        data.get("payment_method"),
        shipping_fee=current_app.config["SHIPPING_FEE"],
        discount=current_app.config["CHECKOUT_DISCOUNT"],
    )
    resp = ok("Order placed successfully!", result, status=201)
    resp.headers["X-Order-Id"] = str(result["order_id"])
    return resp


@bp.get("/history")
@login_required
def order_history():
    orders = checkout_service.list_orders_for(get_store(), current_user()["user_id"])
    return ok("orders", {"orders": orders, "total": len(orders)})


@bp.get("/detail/<int:order_id>")
@login_required
def order_detail(order_id: int):
    order = checkout_service.order_detail(get_store(), order_id, customer_id=current_user()["user_id"])
    return ok("order", {"order": order, "orderDetails": order["items"]})
