# Overview: Flask API routes for admin shop management and the admin dashboard.

"""
Admin API Routes

- Dashboard with monthly figures and open work
- Shop approval/blocking, credit limits and profile edits
- Temporary password reset for shop accounts
- Per-shop reconciled ledger

SECURITY: All routes require an admin principal.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import auth_service
from ..services import dashboard_service
from ..services import ledger_service
from ..services import session_service
from ..services import shop_service
from ..services.auth_service import PasswordValidationError
from ..services.shop_service import ShopError, ShopNotFoundError
from ..validation import ValidationError
from ..decorators import require_auth, require_admin


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/dashboard")
@require_auth
@require_admin
def dashboard_route():
    try:
        return jsonify(dashboard_service.admin_dashboard())
    except Exception:
        current_app.logger.exception("Failed to build admin dashboard")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/shops/")
@require_auth
@require_admin
def list_shops_route():
    """Query params: status (pending|approved|blocked, optional)."""
    try:
        items = shop_service.list_shops(status=request.args.get("status"))
        return jsonify({"items": items, "count": len(items)})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list shops")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/shops/<int:shop_id>")
@require_auth
@require_admin
def get_shop_route(shop_id: int):
    try:
        return jsonify(shop_service.get_shop_detail(shop_id))
    except ShopNotFoundError:
        return jsonify({"error": "Shop not found"}), 404


@admin_bp.patch("/shops/<int:shop_id>")
@require_auth
@require_admin
def update_shop_route(shop_id: int):
    """
    Request body (any subset):
    {
        "status": "approved",
        "credit_limit_paise": 5000000,
        "shop_name": "...", "owner_name": "...", "mobile": "...", "gst_number": "...",
        "address": {"street": "...", "area": "...", "city": "..."}
    }
    """
    try:
        shop = shop_service.update_shop(shop_id, request.get_json(silent=True))
        return jsonify(shop_service.shop_profile(shop.id))
    except ShopNotFoundError:
        return jsonify({"error": "Shop not found"}), 404
    except ShopError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update shop")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/shops/<int:shop_id>/reset-password")
@require_auth
@require_admin
def reset_password_route(shop_id: int):
    """
    Set a temporary password on the shop's account.

    Request body: {"temp_password": "..."}
    The owner must change it after logging in. Live sessions are revoked.
    """
    try:
        data = request.get_json(silent=True) or {}
        temp_password = data.get("temp_password")
        if not temp_password:
            return jsonify({"error": "temp_password required"}), 400

        shop = shop_service.get_shop(shop_id)
        auth_service.reset_account_password(shop.account_id, temp_password)
        session_service.revoke_account_sessions(shop.account_id, reason="Password reset by admin")
        return jsonify({"message": "Password reset", "must_change_password": True})

    except ShopNotFoundError:
        return jsonify({"error": "Shop not found"}), 404
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to reset password")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/shops/<int:shop_id>/ledger")
@require_auth
@require_admin
def shop_ledger_route(shop_id: int):
    try:
        shop_service.get_shop(shop_id)
        return jsonify(ledger_service.get_balance_statement(shop_id))
    except ShopNotFoundError:
        return jsonify({"error": "Shop not found"}), 404
