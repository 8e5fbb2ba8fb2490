"""Tests for conversation and order state machines."""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.conversation_lifecycle import (
    ConversationTransitionError,
    close_updates,
    is_inactive,
    validate_transition,
)
from app.core.order_lifecycle import (
    OrderTransitionError,
    transition_updates,
    validate_order_transition,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestOrderTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "confirmed"),
            ("confirmed", "shipped"),
            ("shipped", "delivered"),
            ("pending", "cancelled"),
            ("confirmed", "cancelled"),
        ],
    )
    def test_legal(self, current: str, target: str) -> None:
        validate_order_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("confirmed", "pending"),
            ("shipped", "cancelled"),
            ("delivered", "shipped"),
            ("cancelled", "confirmed"),
            ("pending", "shipped"),
            ("pending", "pending"),
            ("pending", "refunded"),
        ],
    )
    def test_illegal(self, current: str, target: str) -> None:
        with pytest.raises(OrderTransitionError):
            validate_order_transition(current, target)

    def test_updates_stamp_target_time(self) -> None:
        updates = transition_updates("confirmed", "shipped", now=NOW)
        assert updates == {"status": "shipped", "shipped_at": NOW.isoformat()}


class TestConversationLifecycle:
    def test_active_to_closed_only(self) -> None:
        validate_transition("active", "closed")
        with pytest.raises(ConversationTransitionError):
            validate_transition("closed", "active")
        with pytest.raises(ConversationTransitionError):
            validate_transition("closed", "closed")

    def test_idle_past_timeout(self) -> None:
        conversation = {"status": "active", "last_message_at": (NOW - timedelta(hours=73)).isoformat()}
        assert is_inactive(conversation, 72, now=NOW)

    def test_recent_conversation_not_idle(self) -> None:
        conversation = {"status": "active", "last_message_at": (NOW - timedelta(hours=1)).isoformat()}
        assert not is_inactive(conversation, 72, now=NOW)

    def test_created_at_used_without_messages(self) -> None:
        conversation = {
            "status": "active",
            "last_message_at": None,
            "created_at": (NOW - timedelta(days=5)).isoformat(),
        }
        assert is_inactive(conversation, 72, now=NOW)

    def test_naive_timestamp_treated_as_utc(self) -> None:
        conversation = {"status": "active", "last_message_at": "2026-02-20T12:00:00"}
        assert is_inactive(conversation, 72, now=NOW)

    def test_closed_or_disabled_timeout_never_idle(self) -> None:
        old = (NOW - timedelta(days=30)).isoformat()
        assert not is_inactive({"status": "closed", "last_message_at": old}, 72, now=NOW)
        assert not is_inactive({"status": "active", "last_message_at": old}, 0, now=NOW)

    def test_close_updates(self) -> None:
        assert close_updates("operator", now=NOW) == {
            "status": "closed",
            "closed_at": NOW.isoformat(),
            "close_reason": "operator",
        }
