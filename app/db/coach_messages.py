"""Coach chat history and analytics reads for the business coach."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_coach_messages(project_id: UUID | str, limit: int | None = None) -> list[dict[str, Any]]:
    """List coach messages oldest first (optionally only the first ``limit``)."""
    supabase = get_supabase()

    try:
        query = (
            supabase.table("ai_coach_messages")
            .select("*")
            .eq("project_id", str(project_id))
            .order("created_at")
        )
        if limit:
            query = query.limit(limit)
        response = query.execute()
        return response.data or []
    except Exception as e:
        logger.error(f"Failed to list coach messages for project {project_id}: {e}")
        raise


def insert_coach_message(project_id: UUID | str, role: str, content: str) -> None:
    """Persist one coach chat message."""
    supabase = get_supabase()

    try:
        supabase.table("ai_coach_messages").insert(
            {"project_id": str(project_id), "role": role, "content": content}
        ).execute()
    except Exception as e:
        logger.error(f"Failed to store coach message for project {project_id}: {e}")
        raise


def list_recent_analytics(project_id: UUID | str, days: int = 7) -> list[dict[str, Any]]:
    """Daily analytics rows for the last ``days`` days, newest first."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("daily_analytics")
            .select("*")
            .eq("project_id", str(project_id))
            .order("date", desc=True)
            .limit(days)
            .execute()
        )
        return response.data or []
    except Exception as e:
        logger.error(f"Failed to load analytics for project {project_id}: {e}")
        raise
