"""Checkout: selected cart lines -> Order + OrderLines + Payment.

Totals are server-authoritative. The unit price of every line is looked
up again in the product store; a client price that disagrees is replaced
by the server price and reported back in ``price_adjustments``.
"""
import logging

from ..utils.errors import Forbidden, NotFound, Unauthenticated, ValidationError
from ..utils.money import D, as_number, parse_money, round_money
from .cart_service import MAX_LINE_QUANTITY, get_cart, parse_id

log = logging.getLogger(__name__)

PAYMENT_METHODS = {
    "cash": "COD",
    "cod": "COD",
    "transfer": "BankTransfer",
    "banktransfer": "BankTransfer",
    "bank_transfer": "BankTransfer",
    "credit": "CreditCard",
    "creditcard": "CreditCard",
    "credit_card": "CreditCard",
    "debit": "CreditCard",
    "card": "CreditCard",
}


def normalize_payment_method(token) -> str:
    return PAYMENT_METHODS.get(str(token or "").strip().lower(), "COD")


def _parse_lines(items):
    if not isinstance(items, list) or not items:
        raise ValidationError("No items selected for checkout")

    lines = []
    for i, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"item {i} is invalid")
        product_id = parse_id(raw.get("product_id"))

        price = parse_money(raw.get("price"))
        qty = parse_money(raw.get("quantity"))
        if price is None or qty is None or price <= 0 or qty <= 0:
            raise ValidationError("Invalid price or quantity")
        if qty != qty.to_integral_value() or qty > MAX_LINE_QUANTITY:
            raise ValidationError("Invalid price or quantity")
        lines.append({"product_id": product_id, "quantity": int(qty), "price": price})
    return lines


def compute_totals(lines, shipping_fee, discount):
    """subtotal + shipping - discount, never below zero."""
    subtotal = round_money(sum((D(l["price"]) * l["quantity"] for l in lines), D(0)))
    shipping = round_money(D(shipping_fee))
    disc = round_money(D(discount))
    total = max(D(0), round_money(subtotal + shipping - disc))
    return {"subtotal": subtotal, "shipping_fee": shipping, "discount": disc, "total": total}


def _resolve_prices(store, lines):
    adjustments = []
    for line in lines:
        product = store.products.get(line["product_id"])
        if not product:
            raise NotFound(f"product {line['product_id']} not found")
        if product.get("status", "active") != "active":
            raise ValidationError(f"product {line['product_id']} is not available")
        server_price = D(product["price"])
        if round_money(server_price) != round_money(line["price"]):
            adjustments.append({
                "product_id": line["product_id"],
                "client_price": as_number(line["price"]),
                "price": as_number(server_price),
            })
            line["price"] = server_price
    return adjustments


def checkout(store, customer_id, items, payment_method, shipping_fee=0, discount=0):
    if customer_id is None:
        raise Unauthenticated()

    lines = _parse_lines(items)
    adjustments = _resolve_prices(store, lines)
    if adjustments:
        log.warning("checkout by customer #%s: client prices replaced %s", customer_id, adjustments)

    totals = compute_totals(lines, shipping_fee, discount)
    method = normalize_payment_method(payment_method)

    with store.atomic():
        order = store.orders.insert({
            "customer_id": customer_id,
            "total_amount": totals["total"],
            "status": "pending",
        })
        for line in lines:
            store.order_items.insert({
                "order_id": order["order_id"],
                "product_id": line["product_id"],
                "quantity": line["quantity"],
                "unit_price": round_money(line["price"]),
            })
        store.payments.insert({
            "order_id": order["order_id"],
            "payment_method": method,
            "payment_status": "pending",
        })

    log.info("order #%s placed by customer #%s total=%s via %s",
             order["order_id"], customer_id, totals["total"], method)
    _release_cart_lines(store, customer_id, [l["product_id"] for l in lines])

    return {
        "order_id": order["order_id"],
        "total": as_number(totals["total"]),
        "subtotal": as_number(totals["subtotal"]),
        "shipping_fee": as_number(totals["shipping_fee"]),
        "discount": as_number(totals["discount"]),
        "payment_method": method,
        "price_adjustments": adjustments,
    }


def _release_cart_lines(store, customer_id, product_ids):
    # the cart is a convenience view; the order stands even if this fails
    try:
        cart = get_cart(store, customer_id)
        if not cart:
            return
        for pid in product_ids:
            store.cart_items.delete_where(cart_id=cart["cart_id"], product_id=pid)
    except Exception:
        log.exception("could not remove purchased lines from cart of customer #%s", customer_id)


# ---- order reads ------------------------------------------------------------

def _newest_first(rows, pk):
    return sorted(rows, key=lambda r: (r.get("created_at") or "", r[pk]), reverse=True)


def list_orders_for(store, customer_id):
    return _newest_first(store.orders.find(customer_id=customer_id), "order_id")


def order_lines(store, order_id):
    out = []
    for line in store.order_items.find(order_id=order_id):
        product = store.products.get(line["product_id"]) or {}
        unit = D(line["unit_price"])
        out.append({
            **line,
            "product_name": product.get("product_name"),
            "image_url": product.get("image_url"),
            "line_total": as_number(unit * line["quantity"]),
        })
    return out


def order_detail(store, order_id, customer_id=None):
    """Order with lines and payment; ``customer_id`` scopes to the owner."""
    order = store.orders.get(order_id)
    if not order:
        raise NotFound("Order not found")
    if customer_id is not None and order["customer_id"] != customer_id:
        raise Forbidden()
    return {
        **order,
        "items": order_lines(store, order_id),
        "payment": store.payments.first(order_id=order_id),
    }
