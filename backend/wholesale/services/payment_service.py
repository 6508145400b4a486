# Overview: Service-layer operations for shop payments.

"""
Payment Recording Service

WHY: Shops buy on credit and settle later. Every payment lowers what the
shop owes.

DESIGN PRINCIPLES:
- Payments are append-only: no update or delete path exists
- Mode is informational; every recorded payment reduces the balance by its amount
- Insert + cached-balance decrement happen in one transaction
- Overpayment is accepted; the displayed balance clamps at zero
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Order, Payment, Shop
from ..validation import parse_amount_paise, parse_id, ValidationError
from wholesale.time_utils import utcnow
from .balance_service import apply_balance_delta
from .concurrency import lock_for_update, run_with_retry


class PaymentError(Exception):
    """Raised for payment operation errors."""
    pass


# =============================================================================
# PAYMENT MODES (CONSTANTS)
# =============================================================================

MODE_CASH = "cash"
MODE_UPI = "upi"
MODE_BANK = "bank"
MODE_BANK_TRANSFER = "bank_transfer"
MODE_CREDIT = "credit"

PAYMENT_MODES = (MODE_CASH, MODE_UPI, MODE_BANK, MODE_BANK_TRANSFER, MODE_CREDIT)


def validate_mode(mode) -> str:
    normalized = (mode or "").strip().lower() if isinstance(mode, str) else ""
    if normalized not in PAYMENT_MODES:
        raise ValidationError(f"mode must be one of: {', '.join(PAYMENT_MODES)}")
    return normalized


def _insert_payment(
    *,
    shop_id: int,
    amount_paise: int,
    mode: str,
    recorded_by_user_id: int,
    reference: str | None = None,
    notes: str | None = None,
    order_id: int | None = None,
) -> Payment:
    """
    Insert a payment and decrement the cached balance. No commit.

    Shared by record_payment() and order_service.deliver_order() so both run
    the same rules inside their own transaction.
    """
    shop = lock_for_update(db.session.query(Shop).filter_by(id=shop_id)).first()
    if not shop:
        raise PaymentError(f"Shop {shop_id} not found")

    if order_id is not None:
        order_shop_id = db.session.query(Order.shop_id).filter(Order.id == order_id).scalar()
        if order_shop_id is None:
            raise PaymentError(f"Order {order_id} not found")
        if order_shop_id != shop_id:
            raise PaymentError("Order does not belong to this shop")

    payment = Payment(
        shop_id=shop_id,
        amount_paise=amount_paise,
        mode=mode,
        reference=(reference or "").strip() or None,
        notes=(notes or "").strip() or None,
        order_id=order_id,
        recorded_by_user_id=recorded_by_user_id,
        created_at=utcnow(),
    )
    db.session.add(payment)
    db.session.flush()

    apply_balance_delta(shop_id, -amount_paise)
    return payment


def record_payment(
    shop_id: int,
    amount_paise,
    mode: str,
    recorded_by_user_id: int,
    reference: str | None = None,
    notes: str | None = None,
    order_id: int | None = None,
) -> Payment:
    """
    Record money received from a shop.

    Args:
        shop_id: Paying shop
        amount_paise: Positive integer amount
        mode: cash, upi, bank, bank_transfer, credit
        recorded_by_user_id: Admin user recording the payment
        reference: UPI txn id, cheque number, ... (optional)
        notes: Free text (optional)
        order_id: Order this payment settles (optional)

    Returns:
        Payment record

    Raises:
        ValidationError: If an id, the amount or the mode is invalid
        PaymentError: If shop or order not found
    """
    shop_id = parse_id(shop_id, "shop_id")
    if order_id is not None:
        order_id = parse_id(order_id, "order_id")
    amount = parse_amount_paise(amount_paise)
    normalized_mode = validate_mode(mode)

    def _op():
        payment = _insert_payment(
            shop_id=shop_id,
            amount_paise=amount,
            mode=normalized_mode,
            recorded_by_user_id=recorded_by_user_id,
            reference=reference,
            notes=notes,
            order_id=order_id,
        )
        db.session.commit()
        return payment

    payment = run_with_retry(_op)
    current_app.logger.info(
        "Payment recorded: id=%s shop=%s amount_paise=%s mode=%s",
        payment.id, shop_id, amount, normalized_mode,
    )
    return payment


def list_payments(shop_ids=None, limit: int | None = None) -> list[Payment]:
    """Newest first. shop_ids restricts to those shops when given."""
    query = db.session.query(Payment)
    if shop_ids is not None:
        query = query.filter(Payment.shop_id.in_(list(shop_ids)))
    query = query.order_by(Payment.created_at.desc(), Payment.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()
