"""Conversation database operations.

The message log is a JSON array column appended through read-modify-write.
Callers serialize writers per conversation with ``app.core.conversation_locks``.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_conversation(conversation_id: UUID | str) -> dict[str, Any] | None:
    """Get a conversation by id, or None."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("conversations")
            .select("*")
            .eq("id", str(conversation_id))
            .maybe_single()
            .execute()
        )
        return response.data if response else None
    except Exception as e:
        logger.error(f"Failed to get conversation {conversation_id}: {e}")
        raise


def find_active_conversation(
    project_id: UUID | str,
    customer_id: UUID | str,
) -> dict[str, Any] | None:
    """Find the customer's active conversation (at most one is kept active)."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("conversations")
            .select("*")
            .eq("project_id", str(project_id))
            .eq("customer_id", str(customer_id))
            .eq("status", "active")
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return rows[0] if rows else None
    except Exception as e:
        logger.error(f"Failed to find active conversation for customer {customer_id}: {e}")
        raise


def find_conversation_by_session(
    project_id: UUID | str,
    platform: str,
    session_id: str,
) -> dict[str, Any] | None:
    """Find the active conversation bound to a widget session id."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("conversations")
            .select("*")
            .eq("project_id", str(project_id))
            .eq("platform", platform)
            .eq("platform_conversation_id", session_id)
            .eq("status", "active")
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return rows[0] if rows else None
    except Exception as e:
        logger.error(f"Failed to find conversation for session {session_id}: {e}")
        raise


def create_conversation(
    project_id: UUID | str,
    customer_id: UUID | str,
    platform: str,
    platform_conversation_id: str | None = None,
) -> dict[str, Any]:
    """
    Open a new active conversation with AI enabled and an empty log.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("conversations")
            .insert(
                {
                    "project_id": str(project_id),
                    "customer_id": str(customer_id),
                    "platform": platform,
                    "platform_conversation_id": platform_conversation_id,
                    "status": "active",
                    "ai_enabled": True,
                    "messages": [],
                    "message_count": 0,
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from create_conversation")

        conversation = response.data[0]
        logger.info(
            f"Opened conversation {conversation['id']} on {platform}",
            extra={"project_id": str(project_id), "conversation_id": conversation["id"]},
        )
        return conversation

    except Exception as e:
        logger.error(f"Failed to create conversation for customer {customer_id}: {e}")
        raise


def append_messages(
    conversation_id: UUID | str,
    new_messages: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """
    Append entries to the message log in one update.

    Re-reads the stored log first, then writes log, message_count and
    last_message_at together.

    Args:
        conversation_id: Conversation UUID
        new_messages: Entries ({role, content, created_at?, author?}) in order

    Returns:
        The full log after the append

    Raises:
        ValueError: If the conversation does not exist
        Exception: If database operation fails
    """
    conversation = get_conversation(conversation_id)
    if not conversation:
        raise ValueError(f"Conversation {conversation_id} not found")

    now = _utc_now_iso()
    stamped = [{**m, "created_at": m.get("created_at") or now} for m in new_messages]
    messages = list(conversation.get("messages") or []) + stamped

    supabase = get_supabase()

    try:
        supabase.table("conversations").update(
            {
                "messages": messages,
                "message_count": len(messages),
                "last_message_at": now,
            }
        ).eq("id", str(conversation_id)).execute()

        logger.debug(
            f"Appended {len(stamped)} messages",
            extra={"conversation_id": str(conversation_id)},
        )
        return messages

    except Exception as e:
        logger.error(f"Failed to append messages to conversation {conversation_id}: {e}")
        raise


def update_conversation(
    conversation_id: UUID | str,
    updates: dict[str, Any],
) -> dict[str, Any] | None:
    """
    Apply a partial update (ai_enabled, status, closed_at, ...).

    Returns:
        Updated row, or None if nothing matched
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("conversations")
            .update(updates)
            .eq("id", str(conversation_id))
            .execute()
        )
        rows = response.data or []
        return rows[0] if rows else None
    except Exception as e:
        logger.error(f"Failed to update conversation {conversation_id}: {e}")
        raise
