"""Order database operations."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def insert_order(project_id: UUID | str, data: dict[str, Any]) -> dict[str, Any]:
    """
    Insert an order with status=pending.

    Args:
        project_id: Owning project
        data: Order columns (items, total_amount, contact fields, links)

    Returns:
        Inserted order row

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("orders")
            .insert({**data, "project_id": str(project_id), "status": "pending"})
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from insert_order")

        order = response.data[0]
        logger.info(
            f"Created order {order['id']} total={order.get('total_amount')}",
            extra={"project_id": str(project_id), "customer_id": data.get("customer_id")},
        )
        return order

    except Exception as e:
        logger.error(f"Failed to create order for project {project_id}: {e}")
        raise


def list_orders(project_id: UUID | str) -> list[dict[str, Any]]:
    """List a project's orders, newest first, with the linked customer's name and platform."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("orders")
            .select("*, customers(name, platform, platform_user_id)")
            .eq("project_id", str(project_id))
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []
    except Exception as e:
        logger.error(f"Failed to list orders for project {project_id}: {e}")
        raise


def get_order(order_id: UUID | str) -> dict[str, Any] | None:
    """Get an order by id, or None."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("orders")
            .select("*")
            .eq("id", str(order_id))
            .maybe_single()
            .execute()
        )
        return response.data if response else None
    except Exception as e:
        logger.error(f"Failed to get order {order_id}: {e}")
        raise


def update_order(order_id: UUID | str, updates: dict[str, Any]) -> dict[str, Any] | None:
    """Apply a partial update to an order; returns the updated row or None."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("orders")
            .update(updates)
            .eq("id", str(order_id))
            .execute()
        )
        rows = response.data or []
        return rows[0] if rows else None
    except Exception as e:
        logger.error(f"Failed to update order {order_id}: {e}")
        raise
