"""Order management endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, Query

from app.core.logging import get_logger
from app.core.order_lifecycle import OrderTransitionError
from app.core.schemas_orders import CreateOrderRequest, Order, UpdateOrderRequest
from app.services.lead_service import (
    OrderNotFoundError,
    OrderOwnershipError,
    create_order,
    get_project_orders,
    update_order_status,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/orders")


@router.get("")
async def list_orders(project_id: str = Query(..., description="Project UUID")) -> list[dict[str, Any]]:
    """List a project's orders, newest first."""
    try:
        return get_project_orders(project_id)
    except Exception as e:
        logger.exception("Failed to list orders", extra={"project_id": project_id})
        raise HTTPException(status_code=500, detail="Failed to fetch orders") from e


@router.post("", response_model=Order)
async def post_order(request: CreateOrderRequest) -> Order:
    """
    Create an order (status pending) and credit the linked customer.

    Raises:
        HTTPException 400: project_id missing
        HTTPException 403: Customer or conversation belongs to another project
    """
    if not request.project_id:
        raise HTTPException(status_code=400, detail="project_id required")

    try:
        return create_order(request.project_id, request)
    except OrderOwnershipError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except Exception as e:
        logger.exception("Failed to create order", extra={"project_id": request.project_id})
        raise HTTPException(status_code=500, detail="Failed to create order") from e


@router.patch("/{order_id}", response_model=Order)
async def patch_order(
    order_id: str,
    request: UpdateOrderRequest,
    project_id: str = Query(..., description="Project UUID"),
) -> Order:
    """
    Update an order's status or contact fields.

    Raises:
        HTTPException 404: Order not found in the project
        HTTPException 409: Illegal status transition (code INVALID_TRANSITION)
    """
    try:
        return update_order_status(project_id, order_id, request)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail="Order not found") from e
    except OrderTransitionError as e:
        raise HTTPException(
            status_code=409, detail={"code": "INVALID_TRANSITION", "message": str(e)}
        ) from e
    except Exception as e:
        logger.exception("Failed to update order", extra={"project_id": project_id})
        raise HTTPException(status_code=500, detail="Failed to update order") from e
