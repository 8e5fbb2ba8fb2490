"""Customer database operations.

A customer is unique per (project_id, platform, platform_user_id).
"""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_customer(customer_id: UUID | str) -> dict[str, Any] | None:
    """Get a customer by id, or None."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("customers")
            .select("*")
            .eq("id", str(customer_id))
            .maybe_single()
            .execute()
        )
        return response.data if response else None
    except Exception as e:
        logger.error(f"Failed to get customer {customer_id}: {e}")
        raise


def find_customer(
    project_id: UUID | str,
    platform: str,
    platform_user_id: str,
) -> dict[str, Any] | None:
    """Find the customer for a channel identity within a project."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("customers")
            .select("*")
            .eq("project_id", str(project_id))
            .eq("platform", platform)
            .eq("platform_user_id", platform_user_id)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return rows[0] if rows else None
    except Exception as e:
        logger.error(f"Failed to find customer {platform}:{platform_user_id}: {e}")
        raise


def create_customer(
    project_id: UUID | str,
    platform: str,
    platform_user_id: str,
    name: str | None = None,
    lead_score: str = "cold",
) -> dict[str, Any]:
    """
    Create a customer on first contact.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()
    now = _utc_now_iso()

    try:
        response = (
            supabase.table("customers")
            .insert(
                {
                    "project_id": str(project_id),
                    "platform": platform,
                    "platform_user_id": platform_user_id,
                    "name": name,
                    "lead_score": lead_score,
                    "total_orders": 0,
                    "total_spent": 0,
                    "first_contact_at": now,
                    "last_interaction_at": now,
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from create_customer")

        customer = response.data[0]
        logger.info(
            f"Created customer {customer['id']} on {platform}",
            extra={"project_id": str(project_id), "customer_id": customer["id"]},
        )
        return customer

    except Exception as e:
        logger.error(f"Failed to create customer {platform}:{platform_user_id}: {e}")
        raise


def update_customer(customer_id: UUID | str, updates: dict[str, Any]) -> dict[str, Any] | None:
    """
    Apply a partial update to a customer.

    Returns:
        Updated row, or None if nothing matched

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("customers")
            .update(updates)
            .eq("id", str(customer_id))
            .execute()
        )
        rows = response.data or []
        return rows[0] if rows else None
    except Exception as e:
        logger.error(f"Failed to update customer {customer_id}: {e}")
        raise


def touch_customer(customer_id: UUID | str) -> None:
    """Stamp last_interaction_at."""
    update_customer(customer_id, {"last_interaction_at": _utc_now_iso()})
