# Overview: Order status state machine; pure rules, no database access.

"""
Order Lifecycle

================================================================================
STATE MACHINE:
    pending -> confirmed -> packed -> out_for_delivery -> delivered
        \\__________\\__________\\_____________\\-> cancelled

    delivered, cancelled: TERMINAL
================================================================================

RULES:
1. Status values come from a closed set; anything else is rejected before
   any mutation.
2. Terminal orders never change status again.
3. Requesting the status an order already has is a no-op (no timestamp
   rewrite, no second balance increment on delivered).
4. Backward moves (packed -> confirmed) are rejected.
5. Skipping ahead is allowed unless strict mode is on
   (Config.ORDER_STRICT_TRANSITIONS). In strict mode the only legal targets
   are the next happy-path step and cancelled.

Only the transition INTO delivered has a balance side effect; that lives in
order_service, not here.
"""

from __future__ import annotations
from typing import Literal


STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_PACKED = "packed"
STATUS_OUT_FOR_DELIVERY = "out_for_delivery"
STATUS_DELIVERED = "delivered"
STATUS_CANCELLED = "cancelled"

# Happy path, in order
PIPELINE = (
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_PACKED,
    STATUS_OUT_FOR_DELIVERY,
    STATUS_DELIVERED,
)

VALID_STATUSES = set(PIPELINE) | {STATUS_CANCELLED}
TERMINAL_STATUSES = {STATUS_DELIVERED, STATUS_CANCELLED}
OPEN_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_PACKED, STATUS_OUT_FOR_DELIVERY)

OrderStatus = Literal[
    "pending", "confirmed", "packed", "out_for_delivery", "delivered", "cancelled"
]

# Order column written the first time each status is reached
TIMESTAMP_FIELDS = {
    STATUS_CONFIRMED: "confirmed_at",
    STATUS_PACKED: "packed_at",
    STATUS_OUT_FOR_DELIVERY: "out_for_delivery_at",
    STATUS_DELIVERED: "delivered_at",
    STATUS_CANCELLED: "cancelled_at",
}


class LifecycleError(ValueError):
    """
    Raised when a status value is unknown or a transition is not allowed.

    This is a domain error, not a technical error.
    """
    pass


def validate_status(status) -> None:
    if not isinstance(status, str) or status not in VALID_STATUSES:
        raise LifecycleError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def next_status(current: str) -> str | None:
    """Next happy-path step, or None from a terminal status."""
    if current not in PIPELINE or current == STATUS_DELIVERED:
        return None
    return PIPELINE[PIPELINE.index(current) + 1]


def allowed_targets(current: str, *, strict: bool = False) -> list[str]:
    """Statuses that check_transition() would accept from current (excluding no-op)."""
    if is_terminal(current):
        return []
    if strict:
        return [next_status(current), STATUS_CANCELLED]
    position = PIPELINE.index(current)
    return list(PIPELINE[position + 1:]) + [STATUS_CANCELLED]


def check_transition(current: str, target: str, *, strict: bool = False) -> bool:
    """
    Validate current -> target.

    Returns:
        True if the transition changes the order, False for a same-status no-op.

    Raises:
        LifecycleError: unknown target, terminal source, backward move,
        or a skipped step in strict mode.
    """
    validate_status(target)

    if target == current:
        return False

    if is_terminal(current):
        raise LifecycleError(f"Order is {current}; no further status changes are allowed")

    if target not in allowed_targets(current, strict=strict):
        if strict and target in PIPELINE and PIPELINE.index(target) > PIPELINE.index(current):
            raise LifecycleError(
                f"Cannot move from {current} to {target}; next step is {next_status(current)}"
            )
        raise LifecycleError(f"Cannot move order back from {current} to {target}")

    return True


def timestamp_field(status: str) -> str | None:
    return TIMESTAMP_FIELDS.get(status)
