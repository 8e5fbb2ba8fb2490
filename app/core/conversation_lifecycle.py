"""Conversation lifecycle: active → closed.

Closed is terminal. A conversation closes on an operator action or when it
has been idle longer than the inactivity timeout; the customer's next message
then opens a fresh active conversation.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Literal

ConversationStatus = Literal["active", "closed"]
CloseReason = Literal["operator", "inactivity"]

TRANSITIONS: dict[str, set[str]] = {
    "active": {"closed"},
    "closed": set(),
}


class ConversationTransitionError(Exception):
    """Raised when a conversation status change is not allowed."""


def validate_transition(current: str, target: str) -> None:
    """Raise ConversationTransitionError unless ``current → target`` is legal."""
    if target not in TRANSITIONS:
        raise ConversationTransitionError(f"Unknown conversation status: {target}")
    if target not in TRANSITIONS.get(current, set()):
        raise ConversationTransitionError(f"Cannot move conversation from {current} to {target}")


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_inactive(
    conversation: dict[str, Any],
    inactivity_hours: int,
    now: datetime | None = None,
) -> bool:
    """
    Whether an active conversation has been idle past the timeout.

    The idle clock starts at last_message_at, falling back to created_at.
    A conversation with no timestamps is never considered idle.
    """
    if conversation.get("status", "active") != "active" or inactivity_hours <= 0:
        return False

    last = parse_timestamp(conversation.get("last_message_at")) or parse_timestamp(conversation.get("created_at"))
    if last is None:
        return False

    now = now or datetime.now(timezone.utc)
    return now - last > timedelta(hours=inactivity_hours)


def close_updates(reason: CloseReason, now: datetime | None = None) -> dict[str, Any]:
    """Column updates for the active → closed transition."""
    now = now or datetime.now(timezone.utc)
    return {
        "status": "closed",
        "closed_at": now.isoformat(),
        "close_reason": reason,
    }
