# Overview: Shop balance computation and the cached pending_balance field.

"""
Balance Reconciliation

    pending_balance = max(0, SUM(delivered order totals) - SUM(payments))

TWO PATHS, ONE ANSWER:
- Incremental: apply_balance_delta() nudges Shop.pending_balance_paise with a
  single atomic UPDATE when an order is delivered (+total) or a payment is
  recorded (-amount). Keeps list views roughly fresh. May go negative until
  the next reconcile.
- Recompute: compute_balance() sums the source rows. reconcile_balance()
  additionally overwrites the cached field with the result. Every financial
  display reads through reconcile_balance().

Drift between the two is not an error. It is corrected on read and logged.
Overpayment clamps to zero: a shop that paid too much shows nothing due,
not negative credit.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import func, update

from ..extensions import db
from ..models import Order, Payment, Shop
from .lifecycle_service import STATUS_DELIVERED, OPEN_STATUSES


class BalanceError(Exception):
    """Raised when a balance cannot be computed."""
    pass


@dataclass(frozen=True)
class BalanceSummary:
    shop_id: int
    pending_balance_paise: int
    total_orders_value_paise: int
    total_payments_paise: int

    @property
    def raw_balance_paise(self) -> int:
        """Unclamped difference; negative means the shop has overpaid."""
        return self.total_orders_value_paise - self.total_payments_paise

    def to_dict(self) -> dict:
        return {
            "shop_id": self.shop_id,
            "pending_balance_paise": self.pending_balance_paise,
            "total_orders_value_paise": self.total_orders_value_paise,
            "total_payments_paise": self.total_payments_paise,
        }


def delivered_total(shop_id: int) -> int:
    total = db.session.query(
        func.coalesce(func.sum(Order.total_amount_paise), 0)
    ).filter(
        Order.shop_id == shop_id,
        Order.status == STATUS_DELIVERED,
    ).scalar()
    return int(total or 0)


def payments_total(shop_id: int) -> int:
    total = db.session.query(
        func.coalesce(func.sum(Payment.amount_paise), 0)
    ).filter(Payment.shop_id == shop_id).scalar()
    return int(total or 0)


def open_orders_total(shop_id: int) -> int:
    """Value of orders that will hit the balance once delivered."""
    total = db.session.query(
        func.coalesce(func.sum(Order.total_amount_paise), 0)
    ).filter(
        Order.shop_id == shop_id,
        Order.status.in_(OPEN_STATUSES),
    ).scalar()
    return int(total or 0)


def compute_balance(shop_id: int) -> BalanceSummary:
    """
    Pure read: recompute a shop's balance from Order and Payment rows.

    Integer sums are exact and order-independent.
    """
    orders_value = delivered_total(shop_id)
    payments_value = payments_total(shop_id)
    return BalanceSummary(
        shop_id=shop_id,
        pending_balance_paise=max(0, orders_value - payments_value),
        total_orders_value_paise=orders_value,
        total_payments_paise=payments_value,
    )


def apply_balance_delta(shop_id: int, delta_paise: int) -> None:
    """
    Incremental path: atomic in-database add to the cached balance.

    Does not commit; runs inside the caller's transaction.
    """
    result = db.session.execute(
        update(Shop)
        .where(Shop.id == shop_id)
        .values(pending_balance_paise=Shop.pending_balance_paise + delta_paise)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise BalanceError(f"Shop {shop_id} not found")


def reconcile_balance(shop_id: int, *, commit: bool = True) -> BalanceSummary:
    """
    Recompute the balance and write it back onto the shop (read-with-write-back).

    Raises:
        BalanceError: If the shop does not exist
    """
    cached = db.session.query(Shop.pending_balance_paise).filter(Shop.id == shop_id).scalar()
    if cached is None:
        raise BalanceError(f"Shop {shop_id} not found")

    summary = compute_balance(shop_id)

    if cached != summary.pending_balance_paise:
        current_app.logger.info(
            "Balance drift corrected for shop %s: cached=%s recomputed=%s",
            shop_id, cached, summary.pending_balance_paise,
        )
        db.session.execute(
            update(Shop)
            .where(Shop.id == shop_id)
            .values(pending_balance_paise=summary.pending_balance_paise)
            .execution_options(synchronize_session=False)
        )
        if commit:
            db.session.commit()
        else:
            db.session.flush()

    return summary


def find_drift(shop_id: int | None = None) -> list[dict]:
    """List shops whose cached balance disagrees with the recomputed one."""
    query = db.session.query(Shop.id, Shop.shop_name, Shop.pending_balance_paise)
    if shop_id is not None:
        query = query.filter(Shop.id == shop_id)

    drifted = []
    for sid, name, cached in query.order_by(Shop.id).all():
        summary = compute_balance(sid)
        if cached != summary.pending_balance_paise:
            drifted.append({
                "shop_id": sid,
                "shop_name": name,
                "cached_paise": cached,
                "recomputed_paise": summary.pending_balance_paise,
            })
    return drifted


def reconcile_all_balances() -> int:
    """Heal every shop's cached balance. Returns the number of shops corrected."""
    drifted = find_drift()
    for row in drifted:
        reconcile_balance(row["shop_id"], commit=False)
    db.session.commit()
    return len(drifted)


def total_outstanding() -> int:
    """Business-wide dues: delivered totals minus all payments, clamped."""
    delivered = db.session.query(
        func.coalesce(func.sum(Order.total_amount_paise), 0)
    ).filter(Order.status == STATUS_DELIVERED).scalar() or 0
    paid = db.session.query(func.coalesce(func.sum(Payment.amount_paise), 0)).scalar() or 0
    return max(0, int(delivered) - int(paid))
