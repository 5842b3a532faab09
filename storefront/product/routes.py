from flask import jsonify, request

from ..services.catalog_service import apply_filters, opt_int
from ..store import get_store
from ..utils.api import api_ok
from ..utils.errors import NotFound, ValidationError
from ..utils.money import D, parse_money
from . import bp


# unified response helpers
def ok(message: str, data=None, status_code=200):
    resp = jsonify(api_ok(message, data))
    resp.status_code = status_code
    return resp


def _price_bound(name):
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    value = parse_money(raw)
    if value is None or value <= 0:
        raise ValidationError(f"{name} must be a number > 0")
    return value


def _sort_products(rows, sort):
    sort = (sort or "").strip()
    mapping = {
        "id": ("product_id", False), "-id": ("product_id", True),
        "name": ("product_name", False), "-name": ("product_name", True),
        "price": ("price", False), "-price": ("price", True),
    }
    key, reverse = mapping.get(sort, ("product_id", True))  # default newest first
    return sorted(rows, key=lambda r: (r.get(key) is None, r.get(key)), reverse=reverse)


# GET /products
@bp.get("/products")
def list_products():
    """
    Query params:
      category  -> category id
      search    -> substring match on product name
      min_price, max_price -> inclusive price range
      sort      -> id, -id, name, -name, price, -price
    Only active products are listed.
    """
    store = get_store()
    rows = apply_filters(
        store.products.all(),
        equals={"status": "active", "category_id": opt_int(request.args.get("category"))},
        search=request.args.get("search"),
        search_fields=("product_name",),
    )
    low, high = _price_bound("min_price"), _price_bound("max_price")
    if low is not None and high is not None and low > high:
        raise ValidationError("min_price must not exceed max_price")
    if low is not None:
        rows = [r for r in rows if D(r["price"]) >= low]
    if high is not None:
        rows = [r for r in rows if D(r["price"]) <= high]
    rows = _sort_products(rows, request.args.get("sort"))
    return ok("products", {"data": rows, "total": len(rows)})


@bp.get("/products/<int:product_id>")
def get_product(product_id: int):
    p = get_store().products.get(product_id)
    if not p or p.get("status") != "active":
        raise NotFound("Product not found")
    return ok("product", {"data": p})


@bp.get("/categories")
def list_categories():
    rows = get_store().categories.all()
    return ok("categories", {"data": rows, "total": len(rows)})
