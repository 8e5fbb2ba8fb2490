"""Order status transitions.

pending → confirmed → shipped → delivered, and pending|confirmed → cancelled.
Transitions are one-directional and operator driven; each stamps
``<status>_at``.
"""

from datetime import datetime, timezone
from typing import Any

ORDER_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}


class OrderTransitionError(Exception):
    """Raised when an order status change is not allowed."""


def validate_order_transition(current: str, target: str) -> None:
    """Raise OrderTransitionError unless ``current → target`` is a legal move."""
    if target not in ORDER_TRANSITIONS:
        raise OrderTransitionError(f"Unknown order status: {target}")

    if current == target:
        raise OrderTransitionError(f"Order is already {current}")

    if target not in ORDER_TRANSITIONS.get(current, set()):
        raise OrderTransitionError(f"Cannot move order from {current} to {target}")


def transition_updates(current: str, target: str, now: datetime | None = None) -> dict[str, Any]:
    """Validate and build the column updates for a status change."""
    validate_order_transition(current, target)
    now = now or datetime.now(timezone.utc)
    return {"status": target, f"{target}_at": now.isoformat()}
