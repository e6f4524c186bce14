"""
ORDER LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed lifecycle transitions
for Order entities.

    pending -> preparing -> ready -> delivered -> billed -> paid
    pending -> rejected -> pending (recycle)

Soft deletion is out-of-band and not a status value.

DESIGN PRINCIPLES:
- No persistence
- No side effects
- Single source of truth
"""
from typing import Dict, FrozenSet, Optional

from .enums import OrderStatus
from .exceptions import InvalidTransition

# ============================================================
# STATE DEFINITIONS
# ============================================================

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PREPARING, OrderStatus.REJECTED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY}),
    OrderStatus.READY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.BILLED}),
    OrderStatus.BILLED: frozenset({OrderStatus.PAID}),
    OrderStatus.REJECTED: frozenset({OrderStatus.PENDING}),
    OrderStatus.PAID: frozenset(),
}

# Entering a status stamps the matching timestamp field.
# Entering pending again (recycle) stamps nothing; createdAt is never rewritten.
TIMESTAMP_FIELDS: Dict[OrderStatus, str] = {
    OrderStatus.PREPARING: "accepted_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.REJECTED: "rejected_at",
    OrderStatus.BILLED: "billed_at",
    OrderStatus.PAID: "paid_at",
}

# Terminal statuses; admin edits are accepted everywhere else.
EDIT_LOCKED_STATES = frozenset({
    OrderStatus.PAID,
})

# Statuses from which an invoice may be derived.
COLLECTIBLE_STATES = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.BILLED,
    OrderStatus.PAID,
})


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def validate_transition(*, order_id: str, from_status: OrderStatus, to_status: OrderStatus) -> None:
    if not can_transition(from_status=from_status, to_status=to_status):
        raise InvalidTransition(
            f"Order {order_id} cannot transition from "
            f"'{from_status.value}' to '{to_status.value}'"
        )


def timestamp_field_for(status: OrderStatus) -> Optional[str]:
    return TIMESTAMP_FIELDS.get(status)


def is_editable(status: OrderStatus) -> bool:
    return status not in EDIT_LOCKED_STATES
