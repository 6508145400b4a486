# Overview: Service-layer operations for orders; placement, status changes and delivery.

"""
Order Service

PLACEMENT (shop):
- Shop must be approved; cart must be non-empty; every product must exist
  and be active.
- Product name, rate and unit are copied onto each line. Later catalog
  edits never change a placed order.
- line_total = round_half_up(quantity * rate); total = sum(line totals).
- Order number comes from the persistent sequence; everything is one
  transaction, so a failed placement leaves nothing behind.

STATUS (admin):
- Transition rules live in lifecycle_service.
- Entering delivered adds the order total to the shop's cached balance.
  That is the only status with a balance side effect.

DELIVER + COLLECT (admin):
- deliver_order() marks the order delivered and optionally records the
  payment collected at the door, in a single transaction.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models import Order, OrderItem, Product, Shop
from ..models.shops import SHOP_STATUS_APPROVED
from ..validation import ValidationError, parse_quantity, parse_address, parse_amount_paise
from wholesale.time_utils import utcnow, parse_iso_date
from .balance_service import apply_balance_delta, compute_balance, open_orders_total
from .concurrency import lock_for_update, run_with_retry
from .lifecycle_service import (
    STATUS_PENDING,
    STATUS_DELIVERED,
    check_transition,
    validate_status,
    timestamp_field,
)
from .payment_service import MODE_CREDIT, validate_mode, _insert_payment
from .sequence_service import next_order_number
from .shop_service import ShopNotFoundError


class OrderError(Exception):
    """Raised for order operation errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrderNotFoundError(OrderError):
    pass


def line_total_paise(quantity: Decimal, rate_paise: int) -> int:
    """quantity * rate rounded half-up to whole paise."""
    return int((quantity * rate_paise).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _parse_items(items) -> list[tuple[int, Decimal]]:
    if not isinstance(items, list) or not items:
        raise OrderError("Order must have at least one item")

    parsed = []
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object with product_id and quantity")
        product_id = raw.get("product_id")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValidationError("product_id must be an integer")
        parsed.append((product_id, parse_quantity(raw.get("quantity"))))
    return parsed


def _check_credit_limit(shop: Shop, order_total: int) -> None:
    if not current_app.config.get("ENFORCE_CREDIT_LIMIT"):
        return
    if not shop.credit_limit_paise:
        return

    exposure = compute_balance(shop.id).pending_balance_paise + open_orders_total(shop.id)
    if exposure + order_total > shop.credit_limit_paise:
        raise OrderError(
            "Credit limit exceeded",
            details={
                "credit_limit_paise": shop.credit_limit_paise,
                "current_exposure_paise": exposure,
                "order_total_paise": order_total,
            },
        )


def place_order(
    shop_id: int,
    items,
    notes: str | None = None,
    delivery_address: dict | None = None,
    preferred_delivery_date: str | None = None,
) -> Order:
    """
    Create a pending order for a shop.

    Args:
        shop_id: Ordering shop
        items: [{"product_id": int, "quantity": number}, ...]
        notes: Free text (optional)
        delivery_address: {street, area, city}; defaults to the shop address
        preferred_delivery_date: "YYYY-MM-DD" (optional)

    Returns:
        The committed Order

    Raises:
        ShopNotFoundError: Shop not found
        OrderError: Shop not approved, empty cart, unknown product, credit limit
        ValidationError: Malformed quantity, address or date
    """
    parsed_items = _parse_items(items)
    address = parse_address(delivery_address, required=False)
    try:
        delivery_date = parse_iso_date(preferred_delivery_date) if preferred_delivery_date else None
    except (TypeError, ValueError, AttributeError):
        raise ValidationError("preferred_delivery_date must be YYYY-MM-DD")

    def _op():
        # Number first: the sequence may roll back the session on a creation race
        order_number = next_order_number()

        shop = db.session.get(Shop, shop_id)
        if not shop:
            raise ShopNotFoundError(f"Shop {shop_id} not found")
        if shop.status != SHOP_STATUS_APPROVED:
            raise OrderError("Shop is not approved", details={"shop_status": shop.status})

        lines = []
        total = 0
        for product_id, quantity in parsed_items:
            product = db.session.get(Product, product_id)
            if not product or not product.is_active:
                raise OrderError(f"Product not found: {product_id}")
            line_total = line_total_paise(quantity, product.rate_paise)
            total += line_total
            lines.append(OrderItem(
                product_id=product.id,
                product_name=product.name,
                quantity=quantity,
                rate_paise=product.rate_paise,
                unit_type=product.unit_type,
                line_total_paise=line_total,
            ))

        _check_credit_limit(shop, total)

        target = address or shop.address_dict()
        now = utcnow()
        order = Order(
            order_number=order_number,
            shop_id=shop.id,
            total_amount_paise=total,
            status=STATUS_PENDING,
            notes=(notes or "").strip() or None,
            preferred_delivery_date=delivery_date,
            delivery_street=target["street"],
            delivery_area=target["area"],
            delivery_city=target["city"],
            created_at=now,
            updated_at=now,
        )
        order.items = lines
        db.session.add(order)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "Order placed: %s shop=%s total_paise=%s items=%s",
        order.order_number, order.shop_id, order.total_amount_paise, len(order.items),
    )
    return order


def _strict_transitions() -> bool:
    return bool(current_app.config.get("ORDER_STRICT_TRANSITIONS", False))


def _apply_status_locked(order: Order, new_status: str, actor_user_id: int | None) -> bool:
    """
    Move a locked order to new_status. No commit.

    Returns False when the order already has that status (nothing changes).
    """
    if not check_transition(order.status, new_status, strict=_strict_transitions()):
        return False

    previous = order.status
    now = utcnow()
    order.status = new_status
    order.updated_at = now
    order.last_status_by_user_id = actor_user_id

    field = timestamp_field(new_status)
    if field and getattr(order, field) is None:
        setattr(order, field, now)

    if new_status == STATUS_DELIVERED:
        apply_balance_delta(order.shop_id, order.total_amount_paise)

    current_app.logger.info(
        "Order %s status %s -> %s by user %s", order.order_number, previous, new_status, actor_user_id
    )
    return True


def _get_locked(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if not order:
        raise OrderNotFoundError(f"Order {order_id} not found")
    return order


def advance_status(order_id: int, new_status: str, actor_user_id: int | None = None) -> Order:
    """
    Change an order's status.

    Raises:
        LifecycleError: Unknown status or disallowed transition
        OrderNotFoundError: Order not found
    """
    validate_status(new_status)

    def _op():
        order = _get_locked(order_id)
        if _apply_status_locked(order, new_status, actor_user_id):
            db.session.commit()
        return order

    return run_with_retry(_op)


def deliver_order(order_id: int, actor_user_id: int, collect_payment: dict | None = None):
    """
    Mark an order delivered and optionally record the payment collected.

    collect_payment: {"amount_paise": int, "mode": str, "reference": str?}.
    Mode "credit" or a missing/zero amount defers payment: the order total
    simply stays on the shop's balance.

    Returns:
        (order, payment or None)

    Raises:
        OrderError: Order already delivered
        LifecycleError: Order cancelled (or strict mode forbids the move)
        ValidationError: Malformed payment
    """
    payment_args = None
    if collect_payment is not None:
        if not isinstance(collect_payment, dict):
            raise ValidationError("collect_payment must be an object")
        mode = validate_mode(collect_payment.get("mode"))
        amount = collect_payment.get("amount_paise")
        if mode != MODE_CREDIT and amount not in (None, 0, "0", ""):
            payment_args = {
                "amount_paise": parse_amount_paise(amount),
                "mode": mode,
                "reference": collect_payment.get("reference"),
                "notes": collect_payment.get("notes"),
            }

    def _op():
        order = _get_locked(order_id)
        if order.status == STATUS_DELIVERED:
            raise OrderError("Order is already delivered", details={"order_number": order.order_number})

        _apply_status_locked(order, STATUS_DELIVERED, actor_user_id)

        payment = None
        if payment_args:
            payment = _insert_payment(
                shop_id=order.shop_id,
                recorded_by_user_id=actor_user_id,
                order_id=order.id,
                **payment_args,
            )
        db.session.commit()
        return order, payment

    order, payment = run_with_retry(_op)
    if payment:
        current_app.logger.info(
            "Collected payment %s (%s paise) on delivery of %s",
            payment.id, payment.amount_paise, order.order_number,
        )
    return order, payment


def get_order(order_id: int, shop_ids=None) -> Order:
    """shop_ids, when given, hides orders of other shops (reported as not found)."""
    query = db.session.query(Order).filter(Order.id == order_id)
    if shop_ids is not None:
        query = query.filter(Order.shop_id.in_(list(shop_ids)))
    order = query.first()
    if not order:
        raise OrderNotFoundError(f"Order {order_id} not found")
    return order


def list_orders(shop_ids=None, status: str | None = None, limit: int | None = None) -> list[Order]:
    query = db.session.query(Order)
    if shop_ids is not None:
        query = query.filter(Order.shop_id.in_(list(shop_ids)))
    if status:
        validate_status(status)
        query = query.filter(Order.status == status)
    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()
