"""Connected social page lookups for the Meta channel."""

from typing import Any

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_social_account_by_page(page_id: str, platform: str | None = None) -> dict[str, Any] | None:
    """
    Find the connected page (and so the tenant) a webhook event was addressed to.

    Args:
        page_id: Facebook page id / Instagram account id
        platform: Optional platform filter ("facebook" | "instagram")

    Returns:
        social_accounts row (project_id, access_token, is_active, ...) or None
    """
    supabase = get_supabase()

    try:
        query = supabase.table("social_accounts").select("*").eq("page_id", page_id)
        if platform:
            query = query.eq("platform", platform)
        response = query.limit(1).execute()
        rows = response.data or []
        return rows[0] if rows else None
    except Exception as e:
        logger.error(f"Failed to look up social account for page {page_id}: {e}")
        raise


def get_social_account_for_project(project_id: str, platform: str) -> dict[str, Any] | None:
    """Find a project's connected account on a platform (operator replies)."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("social_accounts")
            .select("*")
            .eq("project_id", str(project_id))
            .eq("platform", platform)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return rows[0] if rows else None
    except Exception as e:
        logger.error(f"Failed to look up {platform} account for project {project_id}: {e}")
        raise
