# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

"""
Payment API Routes

SECURITY:
- Admin only. Shops see their payments through /api/shop/balance.
- Payments are append-only; there is no update or delete route.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import payment_service
from ..services.payment_service import PaymentError
from ..validation import ValidationError
from ..decorators import require_auth, require_admin


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("/")
@require_auth
@require_admin
def record_payment_route():
    """
    Record a payment from a shop.

    Request body:
    {
        "shop_id": 3,
        "amount_paise": 50000,
        "mode": "upi",
        "reference": "UPI-1234",  (optional)
        "notes": "...",  (optional)
        "order_id": 12  (optional)
    }

    Returns:
        201: Payment created
        400: Invalid input or unknown shop
    """
    try:
        data = request.get_json(silent=True) or {}

        shop_id = data.get("shop_id")
        amount_paise = data.get("amount_paise")
        mode = data.get("mode")

        if not all([shop_id, amount_paise, mode]):
            return jsonify({"error": "shop_id, amount_paise and mode required"}), 400

        payment = payment_service.record_payment(
            shop_id=shop_id,
            amount_paise=amount_paise,
            mode=mode,
            recorded_by_user_id=g.current_user.id,
            reference=data.get("reference"),
            notes=data.get("notes"),
            order_id=data.get("order_id"),
        )
        return jsonify(payment.to_dict()), 201

    except (PaymentError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/")
@require_auth
@require_admin
def list_payments_route():
    """Query params: shop_id (optional), limit (optional)."""
    shop_id = request.args.get("shop_id", type=int)
    payments = payment_service.list_payments(
        shop_ids=[shop_id] if shop_id else None,
        limit=request.args.get("limit", type=int),
    )
    return jsonify({"items": [p.to_dict() for p in payments], "count": len(payments)})
