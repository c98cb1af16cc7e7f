"""
Order status workflow.

    Pending ──► Preparing ──► Served
       │
       └──► Rejected

Served and Rejected are terminal. Anything not in the table, including
setting an order to the status it already has, is refused.
"""

from qrar.models import OrderStatus

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PREPARING, OrderStatus.REJECTED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.SERVED}),
    OrderStatus.SERVED: frozenset(),
    OrderStatus.REJECTED: frozenset(),
}


class InvalidStatusTransition(ValueError):
    def __init__(self, current: OrderStatus, requested: OrderStatus):
        self.current = current
        self.requested = requested
        allowed = sorted(s.value for s in ALLOWED_TRANSITIONS[current])
        super().__init__(
            f"Cannot move order from {current.value} to {requested.value}. "
            f"Allowed: {allowed or 'none (final state)'}"
        )


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def next_status(current: OrderStatus, requested: OrderStatus) -> OrderStatus:
    """Validate a requested status change and return the new status."""
    current = OrderStatus(current)
    requested = OrderStatus(requested)
    if not can_transition(current, requested):
        raise InvalidStatusTransition(current, requested)
    return requested
