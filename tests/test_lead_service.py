"""Tests for order creation and lead scoring."""

import pytest

from app.core.order_lifecycle import OrderTransitionError
from app.core.schemas_leads import EngagementSignal, max_lead_score
from app.core.schemas_orders import OrderItem, OrderRequest, UpdateOrderRequest
from app.services.lead_service import (
    OrderNotFoundError,
    OrderOwnershipError,
    create_order,
    record_classification,
    update_order_status,
)


@pytest.fixture
def shop(store):
    """A project with one customer, their conversation and a priced product."""
    project_id = store.add_project("Shop")
    customer = store.create_customer(project_id, "facebook", "psid-1", name="Болд")
    conversation = store.create_conversation(project_id, customer["id"], "facebook")
    product_id = store.add_product(project_id, "Гутал", price=89000)
    return {
        "project_id": project_id,
        "customer_id": customer["id"],
        "conversation_id": conversation["id"],
        "product_id": product_id,
    }


class TestCreateOrder:
    def test_zero_amount_order_still_makes_lead_hot(self, store, shop) -> None:
        order = create_order(
            shop["project_id"],
            OrderRequest(customer_id=shop["customer_id"], total_amount=0),
        )

        assert order.status == "pending"
        assert order.total_amount == 0
        customer = store.customers[shop["customer_id"]]
        assert customer["lead_score"] == "hot"
        assert customer["total_orders"] == 1
        assert customer["total_spent"] == 0

    def test_catalog_price_captured_and_totalled(self, store, shop) -> None:
        order = create_order(
            shop["project_id"],
            OrderRequest(
                customer_id=shop["customer_id"],
                conversation_id=shop["conversation_id"],
                items=[OrderItem(product_id=shop["product_id"], quantity=2)],
            ),
        )

        assert order.items == [
            {"product_id": shop["product_id"], "product_name": "Гутал", "quantity": 2, "unit_price": 89000.0}
        ]
        assert order.total_amount == 178000
        assert store.customers[shop["customer_id"]]["total_spent"] == 178000

    def test_later_price_change_does_not_touch_order(self, store, shop) -> None:
        order = create_order(
            shop["project_id"],
            OrderRequest(items=[OrderItem(product_id=shop["product_id"])]),
        )
        store.products[0]["price"] = 120000

        assert store.orders[order.id]["items"][0]["unit_price"] == 89000

    def test_request_price_wins(self, shop) -> None:
        order = create_order(
            shop["project_id"],
            OrderRequest(items=[OrderItem(product_id=shop["product_id"], unit_price=70000)]),
        )
        assert order.items[0]["unit_price"] == 70000
        assert order.total_amount == 70000

    def test_foreign_customer_rejected(self, store, shop) -> None:
        other_project = store.add_project("Other")
        stranger = store.create_customer(other_project, "web", "visitor")

        with pytest.raises(OrderOwnershipError):
            create_order(shop["project_id"], OrderRequest(customer_id=stranger["id"]))
        assert store.orders == {}

    def test_conversation_of_another_customer_rejected(self, store, shop) -> None:
        other = store.create_customer(shop["project_id"], "facebook", "psid-2")

        with pytest.raises(OrderOwnershipError):
            create_order(
                shop["project_id"],
                OrderRequest(customer_id=other["id"], conversation_id=shop["conversation_id"]),
            )

    def test_customer_update_failure_keeps_order(self, store, shop) -> None:
        store.fail_customer_updates = True

        order = create_order(
            shop["project_id"],
            OrderRequest(customer_id=shop["customer_id"], total_amount=5000),
        )

        assert order.id in store.orders
        assert store.customers[shop["customer_id"]]["lead_score"] == "cold"

    def test_anonymous_order(self, store, shop) -> None:
        order = create_order(shop["project_id"], OrderRequest(customer_phone="99112233", total_amount=1000))
        assert order.customer_id is None
        assert store.orders[order.id]["customer_phone"] == "99112233"


class TestRecordClassification:
    def test_engagement_threshold_makes_warm(self, store, shop) -> None:
        score = record_classification(shop["customer_id"], EngagementSignal(message_count=3))
        assert score == "warm"
        assert store.customers[shop["customer_id"]]["lead_score"] == "warm"

    def test_below_threshold_stays_cold(self, store, shop) -> None:
        assert record_classification(shop["customer_id"], EngagementSignal(message_count=2)) == "cold"

    def test_never_lowers(self, store, shop) -> None:
        store.customers[shop["customer_id"]]["lead_score"] = "hot"
        score = record_classification(
            shop["customer_id"],
            EngagementSignal(message_count=10, suggested_score="cold", source="classifier"),
        )
        assert score == "hot"

    def test_classifier_can_raise_to_hot(self, store, shop) -> None:
        score = record_classification(
            shop["customer_id"], EngagementSignal(suggested_score="hot", source="classifier")
        )
        assert score == "hot"

    def test_unknown_customer(self, store) -> None:
        assert record_classification("missing", EngagementSignal(message_count=5)) is None

    def test_max_lead_score(self) -> None:
        assert max_lead_score(None, "warm") == "warm"
        assert max_lead_score("hot", "warm") == "hot"
        assert max_lead_score("bogus", None) == "cold"


class TestUpdateOrderStatus:
    def test_forward_transition_stamps_time(self, store, shop) -> None:
        order = create_order(shop["project_id"], OrderRequest(total_amount=1))

        updated = update_order_status(shop["project_id"], order.id, UpdateOrderRequest(status="confirmed"))

        assert updated.status == "confirmed"
        assert updated.confirmed_at is not None

    def test_illegal_transition(self, store, shop) -> None:
        order = create_order(shop["project_id"], OrderRequest(total_amount=1))

        with pytest.raises(OrderTransitionError):
            update_order_status(shop["project_id"], order.id, UpdateOrderRequest(status="delivered"))
        assert store.orders[order.id]["status"] == "pending"

    def test_notes_only_update(self, store, shop) -> None:
        order = create_order(shop["project_id"], OrderRequest(total_amount=1))

        updated = update_order_status(shop["project_id"], order.id, UpdateOrderRequest(notes="Call after 6pm"))

        assert updated.status == "pending"
        assert updated.notes == "Call after 6pm"

    def test_other_projects_order_not_found(self, store, shop) -> None:
        order = create_order(shop["project_id"], OrderRequest(total_amount=1))
        other_project = store.add_project("Other")

        with pytest.raises(OrderNotFoundError):
            update_order_status(other_project, order.id, UpdateOrderRequest(status="confirmed"))
