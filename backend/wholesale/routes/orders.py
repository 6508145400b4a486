# Overview: Flask API routes for order operations; parses input and returns JSON responses.

"""
Order API Routes

- Shops place orders and see the orders of shops under their account
- Admins see every order, move statuses forward, and deliver with an
  optional payment collected on the spot
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import order_service
from ..services import shop_service
from ..services.order_service import OrderError, OrderNotFoundError
from ..services.shop_service import ShopNotFoundError
from ..services.lifecycle_service import LifecycleError
from ..services.payment_service import PaymentError
from ..validation import ValidationError
from ..decorators import require_auth, require_admin, require_shop, resolve_shop_id, ShopAccessError


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _visible_shop_ids():
    """None for admins (all shops); otherwise the shops this request may see."""
    if g.session_context.is_admin:
        shop_id = request.args.get("shop_id", type=int)
        return [shop_id] if shop_id else None
    if request.args.get("shop_id") is not None:
        return [resolve_shop_id()]
    return [s.id for s in shop_service.shops_for_account(g.current_account.id)]


@orders_bp.get("/")
@require_auth
def list_orders_route():
    """
    Query params:
    - shop_id: restrict to one shop (shops: must be under the account)
    - status: order status filter
    - limit: max rows
    """
    try:
        orders = order_service.list_orders(
            shop_ids=_visible_shop_ids(),
            status=request.args.get("status"),
            limit=request.args.get("limit", type=int),
        )
        return jsonify({
            "items": [o.to_dict(include_items=False) for o in orders],
            "count": len(orders),
        })
    except ShopAccessError as e:
        return jsonify({"error": str(e)}), 403
    except LifecycleError as e:
        return jsonify({"error": str(e)}), 400


@orders_bp.post("/")
@require_auth
@require_shop
def place_order_route():
    """
    Place an order.

    Request body:
    {
        "shop_id": 3,  (optional, defaults to the session's shop)
        "items": [{"product_id": 1, "quantity": 2.5}],
        "notes": "...",  (optional)
        "delivery_address": {"street": "...", "area": "...", "city": "..."},  (optional)
        "preferred_delivery_date": "2024-06-01"  (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        shop_id = resolve_shop_id(data.get("shop_id"))

        order = order_service.place_order(
            shop_id,
            data.get("items"),
            notes=data.get("notes"),
            delivery_address=data.get("delivery_address"),
            preferred_delivery_date=data.get("preferred_delivery_date"),
        )
        return jsonify(order.to_dict()), 201

    except ShopAccessError as e:
        return jsonify({"error": str(e)}), 403
    except ShopNotFoundError:
        return jsonify({"error": "Shop not found"}), 404
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        shop_ids = None
        if g.session_context.is_shop:
            shop_ids = [s.id for s in shop_service.shops_for_account(g.current_account.id)]
        order = order_service.get_order(order_id, shop_ids=shop_ids)
        return jsonify(order.to_dict())
    except OrderNotFoundError:
        return jsonify({"error": "Order not found"}), 404


@orders_bp.patch("/<int:order_id>")
@require_auth
@require_admin
def update_status_route(order_id: int):
    """
    Change order status.

    Request body: {"status": "confirmed"}

    Moving to delivered adds the order total to the shop's balance.
    Requesting the current status again changes nothing.
    """
    try:
        data = request.get_json(silent=True) or {}
        if "status" not in data:
            return jsonify({"error": "status required"}), 400

        order = order_service.advance_status(order_id, data.get("status"), g.current_user.id)
        return jsonify(order.to_dict())

    except OrderNotFoundError:
        return jsonify({"error": "Order not found"}), 404
    except LifecycleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/deliver")
@require_auth
@require_admin
def deliver_route(order_id: int):
    """
    Deliver an order and optionally collect payment, atomically.

    Request body (optional):
    {
        "collect_payment": {"amount_paise": 50000, "mode": "cash", "reference": "..."}
    }

    Mode "credit" always defers payment, whatever the amount, and so does a
    missing or zero amount: the total stays on the shop's balance and no
    payment row is written. To record money received under mode "credit",
    use POST /api/payments/ instead.
    """
    try:
        data = request.get_json(silent=True) or {}
        order, payment = order_service.deliver_order(
            order_id,
            g.current_user.id,
            collect_payment=data.get("collect_payment"),
        )
        return jsonify({
            "order": order.to_dict(),
            "payment": payment.to_dict() if payment else None,
        })

    except OrderNotFoundError:
        return jsonify({"error": "Order not found"}), 404
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except (LifecycleError, PaymentError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to deliver order")
        return jsonify({"error": "Internal server error"}), 500
