# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

One login endpoint serves both principals: admin staff are matched first,
then shop accounts. The bearer token returned must be sent as
"Authorization: Bearer <token>" on protected routes.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import shop_service
from ..services.auth_service import AuthError, PasswordValidationError
from ..services.shop_service import ShopError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_shop


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Shop self-registration. The shop starts pending until an admin approves it.

    Registering with an email that already has an account adds another shop
    to that account (the password must match).
    """
    try:
        shop = shop_service.register_shop(request.get_json(silent=True))
        return jsonify({
            "shop": shop.to_dict(),
            "message": "Registration successful. Your shop is pending approval.",
        }), 201

    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except (ValidationError, PasswordValidationError, ShopError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register shop")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Returns:
        200: {token, principal_type, user | account + shops}
        400: Missing credentials
        401: Invalid credentials
        403: Every shop under the account is blocked
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate_admin(email, password)
        if user:
            session, token = session_service.create_session(
                user_id=user.id,
                user_agent=user_agent,
                ip_address=ip_address,
            )
            return jsonify({
                "principal_type": session.principal_type,
                "user": user.to_dict(),
                "token": token,
                "session": session.to_dict(),
                "message": "Login successful",
            }), 200

        try:
            account = auth_service.authenticate_account(email, password)
        except AuthError as e:
            return jsonify({"error": str(e)}), 403

        if not account:
            return jsonify({"error": "Invalid credentials"}), 401

        shop = auth_service.default_shop_for(account)
        session, token = session_service.create_session(
            account_id=account.id,
            shop_id=shop.id if shop else None,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        shops = shop_service.account_shop_profiles(account.id)
        current = next((s for s in shops if shop and s["id"] == shop.id), None)
        return jsonify({
            "principal_type": session.principal_type,
            "account": account.to_dict(),
            "shop": current,
            "shops": shops,
            "must_change_password": account.must_change_password,
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.session_token, reason="User logout")
        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    context = g.session_context
    if context.is_admin:
        return jsonify({
            "principal_type": context.principal_type,
            "user": context.user.to_dict(),
        })

    return jsonify({
        "principal_type": context.principal_type,
        "account": context.account.to_dict(),
        "shop_id": context.shop_id,
        "shops": shop_service.account_shop_profiles(context.account.id),
        "must_change_password": context.account.must_change_password,
    })


@auth_bp.post("/change-password")
@require_auth
@require_shop
def change_password_route():
    """
    Change the shop account password. Clears must_change_password.

    Request body: {"current_password": "...", "new_password": "..."}
    """
    try:
        data = request.get_json(silent=True) or {}
        current_password = data.get("current_password")
        new_password = data.get("new_password")

        if not all([current_password, new_password]):
            return jsonify({"error": "current_password and new_password required"}), 400

        auth_service.change_account_password(g.current_account.id, current_password, new_password)
        return jsonify({"message": "Password changed"}), 200

    except (AuthError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500
