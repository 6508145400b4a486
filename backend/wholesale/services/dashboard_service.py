# Overview: Summary figures for the admin and shop dashboards.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Order, Payment, Shop
from ..models.shops import SHOP_STATUS_APPROVED, SHOP_STATUS_PENDING
from wholesale.time_utils import utcnow, month_start, day_start, to_utc_z
from .balance_service import reconcile_balance, total_outstanding
from .lifecycle_service import STATUS_DELIVERED, OPEN_STATUSES


def _sum(column, *criteria) -> int:
    total = db.session.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar()
    return int(total or 0)


def _count(column, *criteria) -> int:
    return int(db.session.query(func.count(column)).filter(*criteria).scalar() or 0)


def admin_dashboard(now=None) -> dict:
    """
    Business-wide figures. "This month" and "today" are UTC calendar periods.

    Sales count delivered orders by delivered_at; the outstanding figure is
    recomputed from orders and payments, not read from the cached shop fields.
    """
    now = now or utcnow()
    first_of_month = month_start(now)
    today = day_start(now)

    recent_orders = (
        db.session.query(Order)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(5)
        .all()
    )

    return {
        "total_sales_this_month_paise": _sum(
            Order.total_amount_paise,
            Order.status == STATUS_DELIVERED,
            Order.delivered_at >= first_of_month,
        ),
        "total_orders_this_month": _count(Order.id, Order.created_at >= first_of_month),
        "total_payments_this_month_paise": _sum(
            Payment.amount_paise, Payment.created_at >= first_of_month
        ),
        "pending_balance_paise": total_outstanding(),
        "pending_orders": _count(Order.id, Order.status.in_(OPEN_STATUSES)),
        "active_shops": _count(Shop.id, Shop.status == SHOP_STATUS_APPROVED),
        "pending_shops": _count(Shop.id, Shop.status == SHOP_STATUS_PENDING),
        "today_orders": _count(Order.id, Order.created_at >= today),
        "recent_orders": [o.to_dict(include_items=False) for o in recent_orders],
    }


def shop_dashboard(shop_id: int) -> dict:
    """Reconciled balance, last order and order count for one shop."""
    summary = reconcile_balance(shop_id)

    last_order = (
        db.session.query(Order)
        .filter(Order.shop_id == shop_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .first()
    )

    return {
        "shop_id": shop_id,
        "pending_balance_paise": summary.pending_balance_paise,
        "total_orders": _count(Order.id, Order.shop_id == shop_id),
        "open_orders": _count(Order.id, Order.shop_id == shop_id, Order.status.in_(OPEN_STATUSES)),
        "last_order": (
            {
                "id": last_order.id,
                "order_number": last_order.order_number,
                "status": last_order.status,
                "total_amount_paise": last_order.total_amount_paise,
                "created_at": to_utc_z(last_order.created_at),
            }
            if last_order
            else None
        ),
    }
