"""Brand profile reads (at most one row per project)."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_brand_profile(project_id: UUID | str) -> dict[str, Any] | None:
    """
    Get the brand profile for a project.

    Returns:
        Brand profile dict or None when the tenant never filled one in
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("brand_profiles")
            .select("*")
            .eq("project_id", str(project_id))
            .maybe_single()
            .execute()
        )
        return response.data if response else None
    except Exception as e:
        logger.error(f"Error getting brand profile for project {project_id}: {e}")
        raise
