# Overview: Atomic allocation of human-facing order numbers.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Order, OrderSequence


ORDER_SEQUENCE = "order"


class SequenceError(Exception):
    """Raised when a number cannot be allocated."""
    pass


def format_order_number(number: int) -> str:
    prefix = current_app.config.get("ORDER_NUMBER_PREFIX", "ORD")
    pad = current_app.config.get("ORDER_NUMBER_PAD", 6)
    return f"{prefix}{number:0{pad}d}"


def _initial_number() -> int:
    """
    First number for a fresh sequence.

    Seeded past any orders that already exist (imported or created before
    the sequence table) so allocation never collides with legacy numbers.
    """
    start = current_app.config.get("ORDER_NUMBER_START", 1001)
    existing = db.session.query(db.func.count(Order.id)).scalar() or 0
    return start + existing


def _bump_existing() -> int | None:
    stmt = (
        update(OrderSequence)
        .where(OrderSequence.name == ORDER_SEQUENCE)
        .values(next_number=OrderSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    db.session.flush()
    current = (
        db.session.query(OrderSequence.next_number)
        .filter_by(name=ORDER_SEQUENCE)
        .scalar()
    )
    return current - 1


def next_order_number() -> str:
    """
    Atomically allocate the next order number.

    Runs inside the caller's transaction (flush only, no commit), so the
    increment rolls back together with an aborted placement. Call it before
    any other writes in the transaction: if two requests race to create the
    sequence row, the loser rolls back and takes the number from the winner.
    """
    allocated = _bump_existing()
    if allocated is not None:
        return format_order_number(allocated)

    first = _initial_number()
    seq = OrderSequence(name=ORDER_SEQUENCE, next_number=first + 1)
    db.session.add(seq)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        allocated = _bump_existing()
        if allocated is None:
            raise SequenceError("Order sequence could not be initialised")
        return format_order_number(allocated)

    return format_order_number(first)


def peek_next_order_number() -> str:
    """Next number that would be handed out (read-only)."""
    current = (
        db.session.query(OrderSequence.next_number)
        .filter_by(name=ORDER_SEQUENCE)
        .scalar()
    )
    return format_order_number(current if current is not None else _initial_number())
