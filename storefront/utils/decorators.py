# ------- storefront/utils/decorators.py -------
from enum import IntEnum
from functools import wraps

from flask import current_app, g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from ..store import get_store
from .errors import Forbidden, Unauthenticated


class Tier(IntEnum):
    CUSTOMER = 0
    ELEVATED = 1
    SUPER = 2


ROLE_TIER = {
    "customer": Tier.CUSTOMER,
    "staff": Tier.ELEVATED,
    "admin": Tier.ELEVATED,
    "super_admin": Tier.SUPER,
}
ROLES = tuple(ROLE_TIER)


def tier_for(role) -> Tier:
    return ROLE_TIER.get((role or "").strip().lower(), Tier.CUSTOMER)


def can(user, tier: Tier) -> bool:
    if not user:
        return False
    return tier_for(user.get("role")) >= tier


def _load_session_user():
    verify_jwt_in_request(optional=True)
    uid = get_jwt_identity()
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        return None
    user = get_store().users.get(uid)
    if not user or user.get("status", "active") != "active":
        return None
    return user


def current_user(fail_open=False):
    """Session user record or None.

    With fail_open, a credential that cannot be verified (expired, bad
    signature, store hiccup) reads as a guest instead of raising.
    """
    if "current_user" in g:
        return g.current_user
    try:
        user = _load_session_user()
    except (JWTExtendedException, PyJWTError) as e:
        if not fail_open:
            raise
        current_app.logger.info("session check failed, continuing as guest: %s", e)
        user = None
    except Exception as e:
        if not fail_open:
            raise
        current_app.logger.warning("session lookup failed, continuing as guest: %s", e)
        user = None
    g.current_user = user
    return user


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_user():
            raise Unauthenticated()
        return fn(*args, **kwargs)
    return wrapper


def requires(tier: Tier, message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = current_user()
            if not u:
                raise Unauthenticated("Please log in to continue")
            if tier_for(u.get("role")) < tier:
                current_app.logger.warning(
                    "[auth] user #%s with role '%s' denied %s access",
                    u.get("user_id"), u.get("role"), tier.name.lower(),
                )
                raise Forbidden(message or "You do not have permission to perform this action")
            return fn(*args, **kwargs)
        return wrapper
    return decorator
