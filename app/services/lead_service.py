"""Order and lead side effects.

Orders are created from the sales agent's ``create_order`` decision or by an
operator. Lead scores only ever move up: cold → warm → hot.
"""

from typing import Any
from uuid import UUID

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.order_lifecycle import transition_updates
from app.core.schemas_leads import EngagementSignal, max_lead_score
from app.core.schemas_orders import Order, OrderItem, OrderRequest, UpdateOrderRequest
from app.db.conversations import get_conversation
from app.db.customers import get_customer, update_customer
from app.db.orders import get_order, insert_order, list_orders, update_order
from app.db.products import get_products_by_ids

logger = get_logger(__name__)


class OrderOwnershipError(Exception):
    """The order references a customer or conversation of another tenant."""


class OrderNotFoundError(Exception):
    """No such order in the project."""


def _check_ownership(project_id: str, request: OrderRequest) -> dict[str, Any] | None:
    """Return the linked customer row after checking links stay inside the tenant."""
    customer: dict[str, Any] | None = None

    if request.customer_id:
        customer = get_customer(request.customer_id)
        if not customer or str(customer.get("project_id")) != project_id:
            raise OrderOwnershipError(
                f"Customer {request.customer_id} does not belong to project {project_id}"
            )

    if request.conversation_id:
        conversation = get_conversation(request.conversation_id)
        if not conversation or str(conversation.get("project_id")) != project_id:
            raise OrderOwnershipError(
                f"Conversation {request.conversation_id} does not belong to project {project_id}"
            )
        if customer and str(conversation.get("customer_id")) != str(customer["id"]):
            raise OrderOwnershipError(
                f"Conversation {request.conversation_id} belongs to another customer"
            )

    return customer


def price_items(project_id: str, items: list[OrderItem]) -> list[dict[str, Any]]:
    """
    Capture unit prices at order time.

    A price given in the request wins; otherwise the current catalog price is
    used (0 when the product is unknown or priced on request).
    """
    missing = [i.product_id for i in items if i.product_id and (i.unit_price is None or not i.product_name)]
    catalog = {str(p["id"]): p for p in get_products_by_ids(project_id, missing)} if missing else {}

    priced: list[dict[str, Any]] = []
    for item in items:
        product = catalog.get(item.product_id or "")
        unit_price = item.unit_price
        if unit_price is None:
            unit_price = float((product or {}).get("price") or 0)
        priced.append(
            {
                "product_id": item.product_id,
                "product_name": item.product_name or (product or {}).get("name"),
                "quantity": item.quantity,
                "unit_price": unit_price,
            }
        )
    return priced


def _apply_purchase(customer: dict[str, Any], amount: float) -> None:
    updates = {
        "total_orders": int(customer.get("total_orders") or 0) + 1,
        "total_spent": float(customer.get("total_spent") or 0) + amount,
        "lead_score": "hot",
    }
    try:
        update_customer(customer["id"], updates)
    except Exception as e:
        # The order is already stored; the counters catch up on the next order
        logger.error(
            f"Order stored but customer totals not updated: {e}",
            extra={"customer_id": str(customer["id"])},
        )


def create_order(project_id: UUID | str, request: OrderRequest) -> Order:
    """
    Validate and persist an order, then credit the customer.

    Args:
        project_id: Owning project
        request: Order draft

    Returns:
        The stored order (status ``pending``)

    Raises:
        OrderOwnershipError: Linked customer/conversation is outside the project
        Exception: If the insert fails (customer is not touched)
    """
    project_id = str(project_id)
    customer = _check_ownership(project_id, request)

    items = price_items(project_id, request.items)
    total = request.total_amount
    if total is None:
        total = sum(i["unit_price"] * i["quantity"] for i in items)

    row = insert_order(
        project_id,
        {
            "customer_id": request.customer_id,
            "conversation_id": request.conversation_id,
            "items": items,
            "total_amount": total,
            "customer_name": request.customer_name,
            "customer_phone": request.customer_phone,
            "customer_address": request.customer_address,
            "notes": request.notes,
        },
    )

    if customer is not None:
        _apply_purchase(customer, float(total))

    return Order.model_validate(row)


def record_classification(customer_id: UUID | str, signal: EngagementSignal) -> str | None:
    """
    Raise a customer's lead score from engagement or a classifier verdict.

    ``message_count`` at or above WARM_LEAD_MESSAGE_THRESHOLD makes the lead
    at least warm. Scores never go down.

    Returns:
        The customer's lead score after the update, or None for an unknown customer
    """
    customer = get_customer(customer_id)
    if not customer:
        logger.warning(f"Cannot score unknown customer {customer_id}")
        return None

    current = customer.get("lead_score")
    candidate = signal.suggested_score
    if signal.message_count >= get_settings().WARM_LEAD_MESSAGE_THRESHOLD:
        candidate = max_lead_score(candidate, "warm")

    new_score = max_lead_score(current, candidate)
    if new_score != current:
        update_customer(customer_id, {"lead_score": new_score})
        logger.info(
            f"Lead score {current} -> {new_score} ({signal.source})",
            extra={"customer_id": str(customer_id)},
        )
    return new_score


def get_project_orders(project_id: UUID | str) -> list[dict[str, Any]]:
    return list_orders(project_id)


def update_order_status(
    project_id: UUID | str,
    order_id: UUID | str,
    request: UpdateOrderRequest,
) -> Order:
    """
    Apply an operator update to an order.

    Raises:
        OrderNotFoundError: Unknown order or another project's order
        OrderTransitionError: Illegal status change
    """
    order = get_order(order_id)
    if not order or str(order.get("project_id")) != str(project_id):
        raise OrderNotFoundError(f"Order {order_id} not found")

    updates: dict[str, Any] = {}
    if request.status is not None:
        updates.update(transition_updates(order.get("status", "pending"), request.status))
    for field_name in ("notes", "customer_phone", "customer_address"):
        value = getattr(request, field_name)
        if value is not None:
            updates[field_name] = value

    if not updates:
        return Order.model_validate(order)

    updated = update_order(order_id, updates)
    if not updated:
        raise OrderNotFoundError(f"Order {order_id} not found")

    logger.info(
        f"Updated order {order_id}: {sorted(updates)}",
        extra={"project_id": str(project_id)},
    )
    return Order.model_validate(updated)
