# Overview: Flask API routes for the shop owner's own views.

"""
Shop self-service routes.

Every financial figure here is recomputed from orders and payments before
it is returned; the cached shop balance is refreshed as a side effect.
Routes act on the session's shop unless ?shop_id= names another shop
under the same account.
"""

from flask import Blueprint, jsonify, g, current_app

from ..services import dashboard_service
from ..services import ledger_service
from ..services import shop_service
from ..services.shop_service import ShopNotFoundError
from ..decorators import require_auth, require_shop, resolve_shop_id, ShopAccessError


shop_bp = Blueprint("shop", __name__, url_prefix="/api/shop")


@shop_bp.get("/dashboard")
@require_auth
@require_shop
def dashboard_route():
    try:
        return jsonify(dashboard_service.shop_dashboard(resolve_shop_id()))
    except ShopAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to build shop dashboard")
        return jsonify({"error": "Internal server error"}), 500


@shop_bp.get("/balance")
@require_auth
@require_shop
def balance_route():
    """Reconciled balance, totals, last payment and the derived ledger."""
    try:
        return jsonify(ledger_service.get_balance_statement(resolve_shop_id()))
    except ShopAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to build balance statement")
        return jsonify({"error": "Internal server error"}), 500


@shop_bp.get("/profile")
@require_auth
@require_shop
def profile_route():
    """Profile with the recomputed balance."""
    try:
        return jsonify(shop_service.shop_profile(resolve_shop_id()))
    except ShopAccessError as e:
        return jsonify({"error": str(e)}), 403
    except ShopNotFoundError:
        return jsonify({"error": "Shop not found"}), 404


@shop_bp.get("/shops")
@require_auth
@require_shop
def shops_route():
    shops = shop_service.account_shop_profiles(g.current_account.id)
    return jsonify({"items": shops, "count": len(shops)})
