from flask import current_app, jsonify, request, session
from flask_jwt_extended import create_access_token, set_access_cookies, unset_jwt_cookies
from werkzeug.security import check_password_hash, generate_password_hash

from . import bp
from ..services import cart_service
from ..services.catalog_service import public_user
from ..store import get_store
from ..utils.api import api_ok
from ..utils.decorators import current_user, login_required
from ..utils.errors import Forbidden, Unauthenticated, ValidationError

def _issue_session(resp, user):
    token = create_access_token(identity=str(user["user_id"]), additional_claims={"role": user["role"]})
    set_access_cookies(resp, token)
    return token

@bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not username:
        raise ValidationError("Username required")
    if not email or "@" not in email:
        raise ValidationError("Email required")
    if len(password) < 6:
        raise ValidationError("Password required, min 6 chars")

    store = get_store()
    if store.users.first(email=email):
        raise ValidationError("Email already registered")
    if store.users.first(username=username):
        raise ValidationError("Username already taken")

    # public sign-ups are always customers; staff accounts come from the CLI
    user = store.users.insert({
        "username": username,
        "email": email,
        "password_hash": generate_password_hash(password),
        "role": "customer",
        "full_name": (data.get("full_name") or "").strip() or None,
        "phone": (data.get("phone") or "").strip() or None,
        "address": (data.get("address") or "").strip() or None,
    })
    return jsonify(api_ok("Account created successfully", {"user": public_user(user)})), 201

@bp.post("/login")
def login():
    """
    Body: { "email" | "username", "password" }
    Sets the http-only session cookie and folds any guest cart into the account.
    """
    data = request.get_json(silent=True) or {}
    login_name = (data.get("email") or data.get("username") or "").strip()
    password = data.get("password") or ""
    if not login_name or not password:
        raise ValidationError("Email and password are required")

    store = get_store()
    user = store.users.first(email=login_name.lower()) or store.users.first(username=login_name)
    if not user or not check_password_hash(user["password_hash"], password):
        raise Unauthenticated("Invalid email or password")
    if user.get("status", "active") != "active":
        raise Forbidden("Account is disabled")

    merged = 0
    guest = session.get(cart_service.GUEST_CART_KEY)
    if guest:
        _, merged = cart_service.merge_anonymous(store, user["user_id"], guest)
        session.pop(cart_service.GUEST_CART_KEY, None)

    resp = jsonify(api_ok("You've logged in successfully", {
        "user": public_user(user),
        "merged_cart_lines": merged,
    }))
    _issue_session(resp, user)
    return resp, 200

@bp.post("/logout")
def logout():
    resp = jsonify(api_ok("Logged out"))
    unset_jwt_cookies(resp)
    session.clear()
    return resp, 200

@bp.get("/checkAuth")
def check_auth():
    user = current_user(fail_open=True)
    return jsonify(api_ok("auth", {
        "authenticated": bool(user),
        "user": public_user(user) if user else None,
    })), 200

@bp.get("/profile")
@login_required
def profile():
    return jsonify(api_ok("profile", {"profile": public_user(current_user())})), 200

@bp.post("/change-password")
@login_required
def change_password():
    """
    Body: { "current_password", "new_password" }
    """
    data = request.get_json(silent=True) or {}
    current = data.get("current_password") or ""
    new = data.get("new_password") or ""
    if len(new) < 6:
        raise ValidationError("New password required, min 6 chars")

    user = current_user()
    if not check_password_hash(user["password_hash"], current):
        raise ValidationError("Current password is incorrect")
    get_store().users.update(user["user_id"], {"password_hash": generate_password_hash(new)})
    current_app.logger.info("[auth] user #%s changed password", user["user_id"])
    return jsonify(api_ok("Password updated")), 200
