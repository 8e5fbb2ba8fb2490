"""Knowledge snippet (ai_base_knowledge) database operations."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_active_snippets(
    project_id: UUID | str | None,
    categories: list[str],
) -> list[dict[str, Any]]:
    """
    List active snippets visible to a project in the given categories.

    Visibility is the global defaults (project_id IS NULL) plus the project's
    own rows. Rows come back in insertion order; priority ordering is applied
    by the aggregator.

    Args:
        project_id: Project UUID, or None for global rows only
        categories: Eligible category tags

    Returns:
        Snippet rows

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        query = (
            supabase.table("ai_base_knowledge")
            .select("id, project_id, category, title, content, is_active, priority, created_at")
            .eq("is_active", True)
            .in_("category", categories)
        )
        if project_id:
            query = query.or_(f"project_id.is.null,project_id.eq.{project_id}")
        else:
            query = query.is_("project_id", "null")

        response = query.order("created_at").execute()
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list knowledge snippets for {categories}: {e}")
        raise


def insert_snippet(
    content: str,
    category: str = "general",
    title: str = "",
    priority: int = 0,
    project_id: UUID | str | None = None,
) -> dict[str, Any]:
    """
    Insert an active knowledge snippet.

    Args:
        content: Instruction body
        category: Category tag (sales, research, general, objections, ...)
        title: Short title
        priority: Ordering weight (higher first)
        project_id: Owning project, or None for a global default

    Returns:
        Inserted row

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("ai_base_knowledge")
            .insert(
                {
                    "project_id": str(project_id) if project_id else None,
                    "category": category,
                    "title": title,
                    "content": content,
                    "priority": priority,
                    "is_active": True,
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from insert_snippet")

        snippet = response.data[0]
        logger.info(
            f"Stored knowledge snippet {snippet.get('id')} ({category})",
            extra={"project_id": str(project_id) if project_id else "global"},
        )
        return snippet

    except Exception as e:
        logger.error(f"Failed to insert knowledge snippet: {e}")
        raise
