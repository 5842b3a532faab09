"""Cart reconciliation.

A guest's cart lives on the client (signed session cookie or local
storage); a customer's cart is persisted, one per customer. The first
authenticated cart view after browsing as a guest folds the guest lines
into the persisted cart exactly once.
"""
import logging

from ..utils.errors import NotFound, ValidationError
from ..utils.money import D, as_number, round_money

log = logging.getLogger(__name__)

# session key holding the guest cart
GUEST_CART_KEY = "guest_cart"
# largest quantity one cart or order line may hold
MAX_LINE_QUANTITY = 999


def parse_quantity(value):
    if isinstance(value, bool):
        raise ValidationError("quantity must be an integer")
    try:
        qty = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("quantity must be an integer")
    if isinstance(value, float) and value != qty:
        raise ValidationError("quantity must be an integer")
    return qty


def check_quantity(qty):
    if qty < 1:
        raise ValidationError("quantity must be >= 1")
    if qty > MAX_LINE_QUANTITY:
        raise ValidationError(f"quantity must be <= {MAX_LINE_QUANTITY}")
    return qty


def parse_id(value, field="product_id"):
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field} is invalid")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} is required")


def get_cart(store, customer_id):
    return store.carts.first(customer_id=customer_id)


def get_or_create_cart(store, customer_id):
    cart = get_cart(store, customer_id)
    if not cart:
        cart = store.carts.insert({"customer_id": customer_id})
        log.debug("created cart #%s for customer #%s", cart["cart_id"], customer_id)
    return cart


def add_line(store, cart_id, product_id, quantity=1):
    """Upsert: one line per (cart, product); an existing line grows by ``quantity``."""
    product_id = parse_id(product_id)
    qty = check_quantity(parse_quantity(quantity))
    if not store.products.get(product_id):
        raise NotFound(f"product {product_id} not found")

    line = store.cart_items.first(cart_id=cart_id, product_id=product_id)
    if line:
        return store.cart_items.update(line["cart_item_id"], {"quantity": check_quantity(line["quantity"] + qty)})
    return store.cart_items.insert({"cart_id": cart_id, "product_id": product_id, "quantity": qty})


def clean_anonymous_lines(raw):
    """Coerce a client-held list into [{product_id, quantity}], dropping junk."""
    lines = []
    for entry in raw or []:
        if not isinstance(entry, dict):
            continue
        try:
            pid = parse_id(entry.get("product_id"))
            qty = parse_quantity(entry.get("quantity", entry.get("qty", 1)))
        except ValidationError:
            continue
        if 1 <= qty <= MAX_LINE_QUANTITY:
            lines.append({"product_id": pid, "quantity": qty})
    return lines


def add_anonymous_line(store, lines, product_id, quantity=1):
    """Same upsert rule as ``add_line`` applied to a guest list (returns a new list)."""
    product_id = parse_id(product_id)
    qty = check_quantity(parse_quantity(quantity))
    if not store.products.get(product_id):
        raise NotFound(f"product {product_id} not found")
    out = [dict(line) for line in lines]
    for line in out:
        if line["product_id"] == product_id:
            line["quantity"] = check_quantity(line["quantity"] + qty)
            return out
    out.append({"product_id": product_id, "quantity": qty})
    return out


def update_anonymous_line(lines, product_id, quantity=None, delta=None):
    product_id = parse_id(product_id)
    out = [dict(line) for line in lines]
    line = next((l for l in out if l["product_id"] == product_id), None)
    if not line:
        raise NotFound("item not found in this cart")
    qty = line["quantity"] + parse_quantity(delta) if delta is not None else parse_quantity(quantity)
    line["quantity"] = check_quantity(qty)
    return out


def merge_anonymous(store, customer_id, anonymous_lines):
    """Persist every guest line into the customer's cart.

    Returns ``(cart, merged_count)``. The whole merge is one atomic write
    and the caller discards the guest list only after this returns, so an
    interrupted merge is replayed in full rather than lost or doubled.
    Lines pointing at unknown products are skipped.
    """
    merged = 0
    with store.atomic():
        cart = get_or_create_cart(store, customer_id)
        for line in clean_anonymous_lines(anonymous_lines):
            try:
                add_line(store, cart["cart_id"], line["product_id"], line["quantity"])
            except (NotFound, ValidationError) as e:
                log.warning("skipping guest cart line %s for customer #%s: %s", line, customer_id, e.message)
                continue
            merged += 1
    if merged:
        log.info("merged %d guest cart line(s) into cart #%s", merged, cart["cart_id"])
    return cart, merged


def reconcile(store, customer_id, anonymous_lines, selected=None):
    """Single authoritative cart view for the current request.

    Returns ``(view, discard_anonymous)``. Guests get their own list back
    untouched; customers get the persisted cart with any guest lines folded
    in, and ``discard_anonymous`` tells the caller to drop the guest list.
    """
    if customer_id is None:
        return build_view(store, None, clean_anonymous_lines(anonymous_lines), selected), False

    if anonymous_lines:
        cart, _ = merge_anonymous(store, customer_id, anonymous_lines)
    else:
        cart = get_cart(store, customer_id)
    lines = store.cart_items.find(cart_id=cart["cart_id"]) if cart else []
    return build_view(store, cart, lines, selected), bool(anonymous_lines)


def _own_line(store, customer_id, cart_item_id):
    cart = get_cart(store, customer_id)
    line = store.cart_items.get(cart_item_id) if cart else None
    if not line or line["cart_id"] != cart["cart_id"]:
        raise NotFound("item not found in this cart")
    return line


def set_quantity(store, customer_id, cart_item_id, quantity):
    qty = check_quantity(parse_quantity(quantity))
    line = _own_line(store, customer_id, cart_item_id)
    return store.cart_items.update(line["cart_item_id"], {"quantity": qty})


def change_quantity(store, customer_id, cart_item_id, delta):
    line = _own_line(store, customer_id, cart_item_id)
    return set_quantity(store, customer_id, cart_item_id, line["quantity"] + parse_quantity(delta))


def line_for_product(store, customer_id, product_id):
    cart = get_cart(store, customer_id)
    line = store.cart_items.first(cart_id=cart["cart_id"], product_id=parse_id(product_id)) if cart else None
    if not line:
        raise NotFound("item not found in this cart")
    return line


def remove_line(store, customer_id, cart_item_id):
    line = _own_line(store, customer_id, cart_item_id)
    store.cart_items.delete(line["cart_item_id"])


def clear_cart(store, customer_id):
    cart = get_cart(store, customer_id)
    if not cart:
        return 0
    with store.atomic():
        n = store.cart_items.delete_where(cart_id=cart["cart_id"])
        store.carts.delete(cart["cart_id"])
    return n


def parse_selection(raw):
    """``"1,2,3"`` or a list -> set of product ids; None means every line is selected."""
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = [x for x in raw.split(",") if x.strip()]
    selected = set()
    for x in raw:
        try:
            selected.add(int(x))
        except (TypeError, ValueError):
            continue
    return selected


def build_view(store, cart, lines, selected=None):
    """Cart payload with live prices.

    Subtotals always use the product's current price. Only selected lines
    count toward ``total``; lines whose product is gone are flagged
    ``missing`` and left out of the total.
    """
    items = []
    total = D(0)
    missing = []
    for line in lines:
        product = store.products.get(line["product_id"])
        is_selected = selected is None or line["product_id"] in selected
        item = {
            "cart_item_id": line.get("cart_item_id"),
            "product_id": line["product_id"],
            "quantity": line["quantity"],
            "selected": is_selected,
        }
        if not product:
            item.update(missing=True, price=None, subtotal=None, product_name=None, image_url=None)
            missing.append(line["product_id"])
        else:
            price = D(product["price"])
            subtotal = round_money(price * line["quantity"])
            item.update(
                missing=False,
                price=as_number(price),
                subtotal=as_number(subtotal),
                product_name=product["product_name"],
                image_url=product.get("image_url"),
                status=product.get("status"),
            )
            if is_selected:
                total += subtotal
        items.append(item)

    return {
        "cart_id": cart["cart_id"] if cart else None,
        "items": items,
        "total": as_number(total),
        "missing_products": missing,
    }
