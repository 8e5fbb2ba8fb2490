"""Pydantic schemas for orders."""

from typing import Any, Literal

from pydantic import BaseModel, Field

OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]


class OrderItem(BaseModel):
    """One order line. ``unit_price`` is captured at order time."""

    product_id: str | None = None
    product_name: str | None = None
    quantity: int = Field(1, ge=1)
    unit_price: float | None = Field(None, ge=0)


class OrderRequest(BaseModel):
    """
    Order creation request, from an operator or from the sales agent's
    ``create_order`` decision.
    """

    customer_id: str | None = None
    conversation_id: str | None = None
    items: list[OrderItem] = Field(default_factory=list)
    total_amount: float | None = Field(None, ge=0)
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    notes: str | None = None


class CreateOrderRequest(OrderRequest):
    """Request body for POST /orders."""

    project_id: str | None = None


class UpdateOrderRequest(BaseModel):
    """Request body for PATCH /orders/{order_id}."""

    status: OrderStatus | None = None
    notes: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None


class Order(BaseModel):
    """Persisted order row."""

    id: str
    project_id: str
    customer_id: str | None = None
    conversation_id: str | None = None
    items: list[dict[str, Any]] = Field(default_factory=list)
    total_amount: float = 0
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    notes: str | None = None
    status: OrderStatus = "pending"
    created_at: str | None = None
    confirmed_at: str | None = None
    shipped_at: str | None = None
    delivered_at: str | None = None
    cancelled_at: str | None = None
