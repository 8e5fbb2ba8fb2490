"""Research profile (research_data) database operations.

One row per project. The profile itself is stored as JSON text in
``ai_instructions``; ``last_research_at`` stamps synthesizer runs and
``manually_edited_at`` stamps profile-editor saves.
"""

import json
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_research_row(project_id: UUID | str) -> dict[str, Any] | None:
    """
    Get the research_data row for a project.

    Returns:
        Row dict with ai_instructions / last_research_at / manually_edited_at,
        or None if the project was never researched
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("research_data")
            .select("project_id, ai_instructions, last_research_at, manually_edited_at")
            .eq("project_id", str(project_id))
            .maybe_single()
            .execute()
        )
        return response.data if response else None

    except Exception as e:
        logger.error(f"Failed to get research data for project {project_id}: {e}")
        raise


def upsert_research_profile(
    project_id: UUID | str,
    profile: dict[str, Any],
    manual_edit: bool = False,
) -> dict[str, Any]:
    """
    Replace the project's current research profile.

    Args:
        project_id: Project UUID
        profile: Validated research profile as a dict
        manual_edit: True for profile-editor saves (stamps manually_edited_at);
            False for synthesizer runs (stamps last_research_at and clears the
            manual edit marker)

    Returns:
        Stored row

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()
    now = _utc_now_iso()

    data: dict[str, Any] = {
        "project_id": str(project_id),
        "ai_instructions": json.dumps(profile, ensure_ascii=False),
    }
    if manual_edit:
        data["manually_edited_at"] = now
    else:
        data["last_research_at"] = now
        data["manually_edited_at"] = None

    try:
        response = (
            supabase.table("research_data")
            .upsert(data, on_conflict="project_id")
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from upsert_research_profile")

        logger.info(
            f"Saved research profile for project {project_id}",
            extra={"project_id": str(project_id), "extra_data": {"manual_edit": manual_edit}},
        )
        return response.data[0]

    except Exception as e:
        logger.error(f"Failed to save research profile for project {project_id}: {e}")
        raise
