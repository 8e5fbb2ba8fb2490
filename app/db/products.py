"""Product catalog reads used by the research and sales paths."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

_SALES_COLUMNS = "id, project_id, name, description, price, features, stock, is_active, images"


def list_products(project_id: UUID | str, active_only: bool = True) -> list[dict[str, Any]]:
    """
    List a project's products.

    Sales turns must only ever see active products; research runs describe
    the full catalog and pass ``active_only=False``.

    Args:
        project_id: Project UUID
        active_only: Filter to is_active=true rows

    Returns:
        Product rows in creation order

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        query = supabase.table("products").select(_SALES_COLUMNS).eq("project_id", str(project_id))
        if active_only:
            query = query.eq("is_active", True)

        response = query.order("created_at").execute()
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list products for project {project_id}: {e}")
        raise


def get_products_by_ids(project_id: UUID | str, product_ids: list[str]) -> list[dict[str, Any]]:
    """
    Fetch the given products, scoped to the project.

    Ids belonging to another tenant are simply not returned.
    """
    if not product_ids:
        return []

    supabase = get_supabase()

    try:
        response = (
            supabase.table("products")
            .select(_SALES_COLUMNS)
            .eq("project_id", str(project_id))
            .in_("id", product_ids)
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to fetch products {product_ids} for project {project_id}: {e}")
        raise
