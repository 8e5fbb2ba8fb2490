"""Projects (tenants) database operations."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_project(project_id: UUID | str) -> dict[str, Any] | None:
    """
    Get a single project by ID.

    Args:
        project_id: Project UUID

    Returns:
        Project row as dict, or None if not found

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("projects")
            .select("*")
            .eq("id", str(project_id))
            .maybe_single()
            .execute()
        )
        return response.data if response else None

    except Exception as e:
        logger.error(f"Failed to get project {project_id}: {e}")
        raise
