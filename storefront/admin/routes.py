# storefront/admin/routes.py
"""Back-office CRUD.

staff/admin (ELEVATED) read and write products, categories, promotions
and blogs, and move order status. Deletes and the user list need
super_admin (SUPER).
"""
from flask import current_app, jsonify, request

from ..services import catalog_service as catalog
from ..services.checkout_service import order_detail
from ..store import get_store
from ..utils.api import api_ok
from ..utils.decorators import Tier, current_user, requires
from ..utils.errors import NotFound
from . import bp


def ok(msg, data=None, status=200):
    r = jsonify(api_ok(msg, data)); r.status_code = status; return r


def _body():
    return request.get_json(silent=True) or {}


def _audit(entity, verb, pk):
    u = current_user() or {}
    current_app.logger.info("[admin] %s %s #%s by user #%s", entity, verb, pk, u.get("user_id"))


def _get_or_404(table, pk, label):
    row = table.get(pk)
    if not row:
        raise NotFound(f"{label} not found")
    return row


def _listing(rows):
    return {"data": rows, "total": len(rows)}


# ========== PRODUCTS ==========

@bp.get("/products")
@requires(Tier.ELEVATED)
def list_products():
    """
    Query params (all optional, combined with AND):
      category -> category id
      search   -> substring of product name
      status   -> active | inactive
    """
    store = get_store()
    rows = catalog.apply_filters(
        store.products.all(),
        equals={
            "category_id": catalog.opt_int(request.args.get("category")),
            "status": request.args.get("status"),
        },
        search=request.args.get("search"),
        search_fields=("product_name",),
    )
    names = {c["category_id"]: c["category_name"] for c in store.categories.all()}
    rows = [{**p, "category": names.get(p.get("category_id"), "N/A")} for p in rows]
    return ok("products", _listing(rows))


@bp.get("/products/<int:product_id>")
@requires(Tier.ELEVATED)
def get_product(product_id: int):
    return ok("product", {"data": _get_or_404(get_store().products, product_id, "Product")})


@bp.post("/products")
@requires(Tier.ELEVATED)
def create_product():
    store = get_store()
    fields = catalog.validate_product(store, _body())
    p = store.products.insert(fields)
    _audit("product", "created", p["product_id"])
    return ok("Product created", {"id": p["product_id"], "data": p}, status=201)


@bp.put("/products/<int:product_id>")
@requires(Tier.ELEVATED)
def update_product(product_id: int):
    store = get_store()
    current = _get_or_404(store.products, product_id, "Product")
    changes = catalog.validate_product(store, _body(), current=current)
    p = store.products.update(product_id, changes)
    _audit("product", "updated", product_id)
    return ok("Product updated", {"id": product_id, "data": p})


@bp.delete("/products/<int:product_id>")
@requires(Tier.SUPER)
def delete_product(product_id: int):
    if not get_store().products.delete(product_id):
        raise NotFound("Product not found")
    _audit("product", "deleted", product_id)
    return ok("Product deleted")


# ========== CATEGORIES ==========

@bp.get("/categories")
@requires(Tier.ELEVATED)
def list_categories():
    return ok("categories", _listing(get_store().categories.all()))


@bp.get("/categories/<int:category_id>")
@requires(Tier.ELEVATED)
def get_category(category_id: int):
    return ok("category", {"data": _get_or_404(get_store().categories, category_id, "Category")})


@bp.post("/categories")
@requires(Tier.ELEVATED)
def create_category():
    c = get_store().categories.insert(catalog.validate_category(_body()))
    _audit("category", "created", c["category_id"])
    return ok("Category created", {"data": c}, status=201)


@bp.put("/categories/<int:category_id>")
@requires(Tier.ELEVATED)
def update_category(category_id: int):
    store = get_store()
    _get_or_404(store.categories, category_id, "Category")
    c = store.categories.update(category_id, catalog.validate_category(_body(), partial=True))
    _audit("category", "updated", category_id)
    return ok("Category updated", {"data": c})


@bp.delete("/categories/<int:category_id>")
@requires(Tier.SUPER)
def delete_category(category_id: int):
    # products keep their category_id; the reference is advisory
    if not get_store().categories.delete(category_id):
        raise NotFound("Category not found")
    _audit("category", "deleted", category_id)
    return ok("Category deleted")


# ========== PROMOTIONS ==========

@bp.get("/promotions")
@requires(Tier.ELEVATED)
def list_promotions():
    rows = catalog.apply_filters(
        get_store().promotions.all(),
        equals={"category": request.args.get("category"), "status": request.args.get("status")},
        search=request.args.get("search"),
        search_fields=("code", "description", "category"),
    )
    return ok("promotions", _listing(rows))


@bp.get("/promotions/<int:promotion_id>")
@requires(Tier.ELEVATED)
def get_promotion(promotion_id: int):
    return ok("promotion", {"data": _get_or_404(get_store().promotions, promotion_id, "Promotion")})


@bp.post("/promotions")
@requires(Tier.ELEVATED)
def create_promotion():
    store = get_store()
    p = store.promotions.insert(catalog.validate_promotion(store, _body()))
    _audit("promotion", "created", p["promotion_id"])
    return ok("Promotion created", {"data": p}, status=201)


@bp.put("/promotions/<int:promotion_id>")
@requires(Tier.ELEVATED)
def update_promotion(promotion_id: int):
    store = get_store()
    current = _get_or_404(store.promotions, promotion_id, "Promotion")
    p = store.promotions.update(promotion_id, catalog.validate_promotion(store, _body(), current=current))
    _audit("promotion", "updated", promotion_id)
    return ok("Promotion updated", {"data": p})


@bp.delete("/promotions/<int:promotion_id>")
@requires(Tier.SUPER)
def delete_promotion(promotion_id: int):
    if not get_store().promotions.delete(promotion_id):
        raise NotFound("Promotion not found")
    _audit("promotion", "deleted", promotion_id)
    return ok("Promotion deleted")


# ========== BLOGS ==========

@bp.get("/blogs")
@requires(Tier.ELEVATED)
def list_blogs():
    rows = catalog.apply_filters(
        get_store().blogs.all(),
        equals={"status": request.args.get("status"), "author_id": catalog.opt_int(request.args.get("author_id"))},
        search=request.args.get("search"),
        search_fields=("title", "content"),
    )
    rows.sort(key=lambda b: (b.get("created_at") or "", b["blog_id"]), reverse=True)
    return ok("blogs", _listing(rows))


@bp.get("/blogs/<int:blog_id>")
@requires(Tier.ELEVATED)
def get_blog(blog_id: int):
    return ok("blog", {"data": _get_or_404(get_store().blogs, blog_id, "Blog")})


@bp.post("/blogs")
@requires(Tier.ELEVATED)
def create_blog():
    fields = catalog.validate_blog(_body())
    fields["author_id"] = current_user()["user_id"]
    b = get_store().blogs.insert(fields)
    _audit("blog", "created", b["blog_id"])
    return ok("Blog created", {"data": b}, status=201)


@bp.put("/blogs/<int:blog_id>")
@requires(Tier.ELEVATED)
def update_blog(blog_id: int):
    store = get_store()
    _get_or_404(store.blogs, blog_id, "Blog")
    b = store.blogs.update(blog_id, catalog.validate_blog(_body(), partial=True))
    _audit("blog", "updated", blog_id)
    return ok("Blog updated", {"data": b})


@bp.delete("/blogs/<int:blog_id>")
@requires(Tier.SUPER)
def delete_blog(blog_id: int):
    if not get_store().blogs.delete(blog_id):
        raise NotFound("Blog not found")
    _audit("blog", "deleted", blog_id)
    return ok("Blog deleted")


# ========== ORDERS ==========

@bp.get("/orders")
@requires(Tier.ELEVATED)
def list_orders():
    """
    Query params: status, customer_id
    """
    rows = catalog.apply_filters(
        get_store().orders.all(),
        equals={
            "status": request.args.get("status"),
            "customer_id": catalog.opt_int(request.args.get("customer_id")),
        },
    )
    rows.sort(key=lambda o: (o.get("created_at") or "", o["order_id"]), reverse=True)
    return ok("orders", _listing(rows))


@bp.get("/orders/<int:order_id>")
@requires(Tier.ELEVATED)
def get_order(order_id: int):
    return ok("order", {"data": order_detail(get_store(), order_id)})


@bp.put("/orders/<int:order_id>")
@requires(Tier.ELEVATED)
def update_order_status(order_id: int):
    order = catalog.advance_order_status(get_store(), order_id, _body().get("status"))
    _audit("order", f"status -> {order['status']}", order_id)
    return ok("Order status updated successfully", {"data": order})


# ========== USERS ==========

@bp.get("/users")
@requires(Tier.SUPER, message="Only super admins can list users")
def list_users():
    rows = catalog.apply_filters(
        get_store().users.all(),
        equals={"role": request.args.get("role"), "status": request.args.get("status")},
        search=request.args.get("search"),
        search_fields=("username", "email", "full_name"),
    )
    return ok("users", _listing([catalog.public_user(u) for u in rows]))


# ========== STATS ==========

@bp.get("/stats")
@requires(Tier.ELEVATED)
def stats():
    return ok("stats", {"data": catalog.dashboard_stats(get_store())})
