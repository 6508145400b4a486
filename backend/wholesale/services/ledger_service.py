# Overview: Derived shop ledger (delivered orders + payments), recomputed on every read.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Order, Payment
from wholesale.time_utils import to_utc_z
from .balance_service import reconcile_balance
from .lifecycle_service import STATUS_DELIVERED
"""
Ledger Invariants

- Nothing here is persisted; the ledger is rebuilt from Order and Payment rows.
- Order entries are positive (amount owed), dated delivered_at
  (falling back to created_at for rows delivered before the column existed).
- Payment entries are negative, dated created_at.
- Entries are sorted newest first; ties keep orders before payments.
"""


def _order_entry(order: Order) -> dict:
    return {
        "type": "order",
        "date": order.delivered_at or order.created_at,
        "description": f"Order #{order.order_number}",
        "amount_paise": order.total_amount_paise,
        "reference": order.order_number,
        "order_id": order.id,
        "payment_id": None,
    }


def _payment_entry(payment: Payment) -> dict:
    return {
        "type": "payment",
        "date": payment.created_at,
        "description": f"Payment ({payment.mode.upper()})",
        "amount_paise": -payment.amount_paise,
        "reference": payment.reference or "",
        "order_id": payment.order_id,
        "payment_id": payment.id,
    }


def build_ledger(shop_id: int) -> list[dict]:
    orders = db.session.query(Order).filter(
        Order.shop_id == shop_id,
        Order.status == STATUS_DELIVERED,
    ).all()
    payments = db.session.query(Payment).filter(Payment.shop_id == shop_id).all()

    entries = [_order_entry(o) for o in orders] + [_payment_entry(p) for p in payments]
    type_rank = {"order": 0, "payment": 1}
    entries.sort(key=lambda e: (e["date"] or datetime.min, -type_rank[e["type"]]), reverse=True)

    for entry in entries:
        entry["date"] = to_utc_z(entry["date"])
    return entries


def get_balance_statement(shop_id: int) -> dict:
    """
    Balance view for a shop: reconciled totals, last payment, and ledger.

    Reconciles (and persists) the cached balance as a side effect.
    """
    summary = reconcile_balance(shop_id)

    last_payment = (
        db.session.query(Payment)
        .filter(Payment.shop_id == shop_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .first()
    )

    data = summary.to_dict()
    data["last_payment"] = (
        {
            "amount_paise": last_payment.amount_paise,
            "date": to_utc_z(last_payment.created_at),
            "mode": last_payment.mode,
        }
        if last_payment
        else None
    )
    data["ledger"] = build_ledger(shop_id)
    return data
