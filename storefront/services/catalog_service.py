# storefront/services/catalog_service.py
"""Field validation and list filtering for the back-office entities.

Every create/update payload is re-checked here no matter what the admin
UI already validated. ``partial=True`` validates only the fields present
(PUT semantics), otherwise required fields must be there.
"""
from datetime import date

from ..utils.errors import NotFound, ValidationError
from ..utils.money import D, as_number, parse_money, round_money

PRODUCT_STATUSES = {"active", "inactive"}
PROMOTION_STATUSES = {"active", "inactive", "expired"}
BLOG_STATUSES = {"active", "inactive"}

# status -> statuses it may move to
ORDER_TRANSITIONS = {
    "pending": {"processing", "shipped", "delivered", "cancelled"},
    "processing": {"shipped", "delivered", "cancelled"},
    "shipped": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}
ORDER_STATUSES = set(ORDER_TRANSITIONS)


# ------------------------ helpers ------------------------
def _text(data, *keys):
    for k in keys:
        if k in data and data[k] is not None:
            return str(data[k]).strip()
    return None


def _has(data, *keys):
    return any(k in data for k in keys)


def _parse_int(v, field, minimum=None, maximum=None):
    if isinstance(v, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        n = int(str(v).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and n < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if maximum is not None and n > maximum:
        raise ValidationError(f"{field} must be <= {maximum}")
    return n


def _parse_bool(v, default=False):
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in {"1", "true", "yes", "y", "on", "active"}


def _parse_date(v, field):
    if v in (None, ""):
        return None
    try:
        return date.fromisoformat(str(v).strip()[:10]).isoformat()
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")


def contains(haystack, needle):
    return needle in (haystack or "").lower()


def apply_filters(rows, equals=None, search=None, search_fields=()):
    """AND of every given predicate; a missing (None/"") filter is no constraint."""
    out = rows
    for key, value in (equals or {}).items():
        if value is None or value == "":
            continue
        out = [r for r in out if r.get(key) == value]
    if search:
        needle = search.strip().lower()
        out = [r for r in out if any(contains(r.get(f), needle) for f in search_fields)]
    return out


def _price(v, field):
    # checked after rounding to cents
    price = parse_money(v)
    price = round_money(price) if price is not None else None
    if price is None or price <= 0:
        raise ValidationError(f"{field} must be a number > 0")
    return price


def opt_int(v):
    if v is None or (isinstance(v, str) and v.strip() == ""):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        raise ValidationError("filter value must be an integer")


# ------------------------ products ------------------------
def validate_product(store, data, current=None):
    partial = current is not None
    out = {}

    name = _text(data, "product_name", "name")
    if name is not None or not partial:
        if not name:
            raise ValidationError("product name is required")
        out["product_name"] = name

    if _has(data, "category_id") or not partial:
        if data.get("category_id") in (None, ""):
            raise ValidationError("category_id is required")
        cid = _parse_int(data.get("category_id"), "category_id")
        if not store.categories.get(cid):
            raise ValidationError(f"category {cid} does not exist")
        out["category_id"] = cid

    if _has(data, "price") or not partial:
        out["price"] = _price(data.get("price"), "price")

    if _has(data, "stock"):
        out["stock"] = _parse_int(data.get("stock"), "stock", minimum=0)
    elif not partial:
        out["stock"] = 0

    if _has(data, "discount"):
        out["discount"] = _parse_int(data.get("discount") or 0, "discount", minimum=0, maximum=100)
    elif not partial:
        out["discount"] = 0

    if _has(data, "old_price") and data.get("old_price") not in (None, ""):
        out["old_price"] = _price(data.get("old_price"), "old_price")

    if _has(data, "status"):
        status = (_text(data, "status") or "").lower()
        if status not in PRODUCT_STATUSES:
            raise ValidationError("status must be 'active' or 'inactive'")
        out["status"] = status
    elif _has(data, "is_active"):
        out["status"] = "active" if _parse_bool(data.get("is_active")) else "inactive"
    elif not partial:
        out["status"] = "active"

    for key in ("description",):
        if key in data:
            out[key] = _text(data, key) or ""
    image = _text(data, "image_url", "image")
    if image is not None:
        out["image_url"] = image

    # old_price must not sit below price once a discount applies
    merged = {**(current or {}), **out}
    price = D(merged["price"])
    old_price = merged.get("old_price")
    if "old_price" not in out and (not partial or "price" in out) and (
        old_price is None or D(old_price) < price
    ):
        out["old_price"] = price
        old_price = price
    if int(merged.get("discount") or 0) > 0 and old_price is not None and D(old_price) < price:
        raise ValidationError("old_price must be >= price when a discount applies")
    return out


# ------------------------ categories ------------------------
def validate_category(data, partial=False):
    out = {}
    name = _text(data, "category_name", "name")
    if name is not None or not partial:
        if not name:
            raise ValidationError("category name is required")
        out["category_name"] = name
    if "description" in data or not partial:
        out["description"] = _text(data, "description") or ""
    return out


# ------------------------ promotions ------------------------
def validate_promotion(store, data, current=None):
    partial = current is not None
    out = {}

    code = _text(data, "code")
    if code is not None or not partial:
        if not code:
            raise ValidationError("code is required")
        for p in store.promotions.all():
            if p["code"].lower() == code.lower() and (not current or p["promotion_id"] != current["promotion_id"]):
                raise ValidationError("Promotion code already exists")
        out["code"] = code

    for key in ("description", "category"):
        if key in data or not partial:
            out[key] = _text(data, key) or ""

    for key in ("start_date", "end_date"):
        if key in data:
            out[key] = _parse_date(data.get(key), key)

    if "quantity_limit" in data:
        out["quantity_limit"] = _parse_int(data.get("quantity_limit") or 0, "quantity_limit", minimum=0)
    elif not partial:
        out["quantity_limit"] = 0
    if "quantity_used" in data:
        out["quantity_used"] = _parse_int(data.get("quantity_used") or 0, "quantity_used", minimum=0)
    elif not partial:
        out["quantity_used"] = 0

    if "status" in data:
        status = (_text(data, "status") or "").lower()
        if status not in PROMOTION_STATUSES:
            raise ValidationError("status must be one of: " + ", ".join(sorted(PROMOTION_STATUSES)))
        out["status"] = status
    elif not partial:
        out["status"] = "active"

    merged = {**(current or {}), **out}
    if merged.get("start_date") and merged.get("end_date") and merged["start_date"] > merged["end_date"]:
        raise ValidationError("start_date must not be after end_date")
    if (merged.get("quantity_used") or 0) > (merged.get("quantity_limit") or 0):
        raise ValidationError("quantity_used cannot exceed quantity_limit")
    return out


# ------------------------ blogs ------------------------
def validate_blog(data, partial=False):
    out = {}
    for key in ("title", "content"):
        value = _text(data, key)
        if value is not None or not partial:
            if not value:
                raise ValidationError("Title and content are required")
            out[key] = value
    for key in ("summary", "category", "image_url"):
        if key in data:
            out[key] = _text(data, key) or ""
    if "status" in data:
        status = (_text(data, "status") or "").lower()
        if status not in BLOG_STATUSES:
            raise ValidationError("status must be 'active' or 'inactive'")
        out["status"] = status
    elif "published" in data:
        out["status"] = "active" if _parse_bool(data.get("published"), True) else "inactive"
    return out


# ------------------------ orders ------------------------
def advance_order_status(store, order_id, new_status):
    order = store.orders.get(order_id)
    if not order:
        raise NotFound("Order not found")
    new_status = (new_status or "").strip().lower()
    if not new_status:
        raise ValidationError("Status is required")
    if new_status not in ORDER_STATUSES:
        raise ValidationError("status must be one of: " + ", ".join(sorted(ORDER_STATUSES)))
    current = (order.get("status") or "pending").lower()
    if new_status == current:
        return order
    if new_status not in ORDER_TRANSITIONS.get(current, set()):
        raise ValidationError(f"cannot move order from '{current}' to '{new_status}'")
    return store.orders.update(order_id, {"status": new_status})


# ------------------------ users / stats ------------------------
def public_user(user):
    return {k: v for k, v in user.items() if k != "password_hash"}


def dashboard_stats(store):
    products = store.products.all()
    orders = store.orders.all()
    revenue = sum((D(o["total_amount"]) for o in orders if o.get("status") != "cancelled"), D(0))
    return {
        "total_orders": len(orders),
        "total_products": len(products),
        "active_products": sum(1 for p in products if p.get("status") == "active"),
        "total_categories": store.categories.count(),
        "total_users": store.users.count(),
        "total_revenue": as_number(revenue),
    }
