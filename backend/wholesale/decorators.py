# Overview: Request authentication decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service
from .services.shop_service import account_owns_shop


class ShopAccessError(Exception):
    """Raised when a shop principal addresses a shop outside its account."""
    pass


def _is_authenticated() -> bool:
    return hasattr(g, 'session_context')


def require_auth(f):
    """
    Require a valid bearer token (admin or shop principal).

    Sets the following Flask g attributes:
    - g.session_context: The full SessionContext object
    - g.current_user: The admin User (None for shop principals)
    - g.current_account: The shop Account (None for admins)
    - g.shop_id: The shop the owner logged in with (None for admins)

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired, idle or revoked token
    - Principal deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.session_context = context
        g.current_user = context.user
        g.current_account = context.account
        g.shop_id = context.shop_id
        g.session_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require an admin principal. Must be stacked under @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not g.session_context.is_admin:
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)
    return decorated_function


def require_shop(f):
    """Require a shop principal. Must be stacked under @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not g.session_context.is_shop:
            return jsonify({"error": "Shop access required"}), 403
        return f(*args, **kwargs)
    return decorated_function


def resolve_shop_id(requested=None) -> int:
    """
    Shop a shop principal is acting for.

    Defaults to the session's shop. Any other shop must belong to the same
    account, otherwise ShopAccessError.
    """
    if requested is None:
        requested = request.args.get("shop_id", type=int)
    if requested is None:
        if g.shop_id is None:
            raise ShopAccessError("No shop selected")
        return g.shop_id
    try:
        shop_id = int(requested)
    except (TypeError, ValueError):
        raise ShopAccessError("Invalid shop_id")
    if not account_owns_shop(g.current_account.id, shop_id):
        raise ShopAccessError("Shop not accessible")
    return shop_id
