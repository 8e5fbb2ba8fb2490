"""Channel-independent turn processing.

Every channel (test chat API, web widget, Meta webhook) normalizes its input
into a CustomerMessageEvent and calls ``process_customer_message``. This is
where customers and conversations are resolved, the sales agent is run, the
log is appended and the order/lead side effects are applied.
"""

import uuid
from typing import Awaitable, Callable

from app.chains.sales_agent import handle_turn
from app.core.config import get_settings
from app.core.conversation_lifecycle import close_updates, is_inactive
from app.core.conversation_locks import conversation_key, conversation_locks, identity_key
from app.core.logging import get_logger
from app.core.sales_prompt import mark_images_sent
from app.core.schemas_leads import EngagementSignal
from app.core.schemas_orders import Order
from app.core.schemas_sales import (
    ConversationMessage,
    ConversationState,
    CustomerInfo,
    CustomerMessageEvent,
    TurnDecision,
    TurnOutcome,
)
from app.db.conversations import (
    append_messages,
    create_conversation,
    find_active_conversation,
    find_conversation_by_session,
    get_conversation,
    update_conversation,
)
from app.db.customers import (
    create_customer,
    find_customer,
    get_customer,
    touch_customer,
    update_customer,
)
from app.services.lead_service import create_order, record_classification

logger = get_logger(__name__)

# Resolves a display name for a new or nameless customer (e.g. Meta profile API)
ProfileLookup = Callable[[], Awaitable[str | None]]

MESSENGER_INVITATION = "\n\n💬 Дэлгэрэнгүй мэдээлэл авахыг хүсвэл Messenger-ээр бичээрэй!"
COMMENT_INVITATION_MIN_LENGTH = 100


class UnknownParticipantError(Exception):
    """A referenced customer or conversation does not exist in the project."""


def new_session_key(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def _customer_info(customer: dict) -> CustomerInfo:
    return CustomerInfo(
        name=customer.get("name"),
        previous_purchases=int(customer.get("total_orders") or 0),
        lead_score=customer.get("lead_score"),
    )


async def _resolve_customer(
    event: CustomerMessageEvent,
    profile_lookup: ProfileLookup | None,
) -> dict:
    customer_id = event.customer_id
    if not customer_id and event.conversation_id:
        conversation = get_conversation(event.conversation_id)
        if conversation and str(conversation.get("project_id")) == event.project_id:
            customer_id = conversation.get("customer_id")

    if customer_id:
        customer = get_customer(customer_id)
        if not customer or str(customer.get("project_id")) != event.project_id:
            raise UnknownParticipantError(f"Customer {customer_id} not found")
        return customer

    customer = find_customer(event.project_id, event.platform, event.sender_key)
    if customer is None:
        name = event.display_name
        if not name and profile_lookup is not None:
            name = await profile_lookup()
        return create_customer(event.project_id, event.platform, event.sender_key, name=name)

    if not customer.get("name") and profile_lookup is not None:
        name = await profile_lookup()
        if name:
            customer = update_customer(customer["id"], {"name": name}) or {**customer, "name": name}
    return customer


def _resolve_conversation(event: CustomerMessageEvent, customer: dict) -> dict:
    settings = get_settings()
    conversation: dict | None = None

    if event.conversation_id:
        conversation = get_conversation(event.conversation_id)
        if not conversation or str(conversation.get("project_id")) != event.project_id:
            raise UnknownParticipantError(f"Conversation {event.conversation_id} not found")
        if conversation.get("status", "active") != "active":
            conversation = None
    elif event.platform == "web":
        conversation = find_conversation_by_session(event.project_id, "web", event.sender_key)
    else:
        conversation = find_active_conversation(event.project_id, customer["id"])

    if conversation is not None and is_inactive(conversation, settings.CONVERSATION_INACTIVITY_HOURS):
        update_conversation(conversation["id"], close_updates("inactivity"))
        logger.info(
            "Closed idle conversation",
            extra={"project_id": event.project_id, "conversation_id": conversation["id"]},
        )
        conversation = None

    if conversation is None:
        conversation = create_conversation(
            event.project_id,
            customer["id"],
            event.platform,
            platform_conversation_id=event.sender_key if event.platform == "web" else None,
        )
    return conversation


async def resolve_participants(
    event: CustomerMessageEvent,
    profile_lookup: ProfileLookup | None = None,
) -> tuple[dict, dict]:
    """
    Find or create the customer and their active conversation.

    Serialized per sender identity so concurrent first messages cannot create
    duplicate customers or conversations.
    """
    key = identity_key(event.project_id, event.platform, event.sender_key)
    async with conversation_locks.hold(key):
        customer = await _resolve_customer(event, profile_lookup)
        conversation = _resolve_conversation(event, customer)
    return customer, conversation


def _apply_side_effects(
    event: CustomerMessageEvent,
    customer: dict,
    conversation_id: str,
    decision: TurnDecision,
    prior_message_count: int,
) -> Order | None:
    """Order, lead score and interaction stamp. Failures are logged, never raised."""
    order: Order | None = None
    log_extra = {"project_id": event.project_id, "conversation_id": conversation_id}

    if decision.order_request is not None:
        request = decision.order_request.model_copy(
            update={"customer_id": customer["id"], "conversation_id": conversation_id}
        )
        try:
            order = create_order(event.project_id, request)
        except Exception as e:
            logger.error(f"Order from sales turn was not created: {e}", extra=log_extra)

    try:
        record_classification(
            customer["id"],
            EngagementSignal(message_count=prior_message_count, source="engagement"),
        )
    except Exception as e:
        logger.error(f"Lead engagement update failed: {e}", extra=log_extra)

    try:
        touch_customer(customer["id"])
    except Exception as e:
        logger.error(f"Customer interaction stamp failed: {e}", extra=log_extra)

    return order


async def process_customer_message(
    event: CustomerMessageEvent,
    *,
    knowledge_limit: int | None = None,
    profile_lookup: ProfileLookup | None = None,
) -> TurnOutcome:
    """
    Run one inbound customer message end to end.

    Args:
        event: Normalized inbound message
        knowledge_limit: Snippet cap for this channel
        profile_lookup: Optional display-name resolver for new customers

    Returns:
        TurnOutcome to deliver; ``handed_off`` when a human owns the conversation

    Raises:
        UnknownParticipantError: Referenced customer/conversation not in the project
        ResearchProfileMissingError: The tenant is not trained yet
        Exception: Model or storage failures (nothing is appended)
    """
    customer, conversation = await resolve_participants(event, profile_lookup)
    conversation_id = str(conversation["id"])

    async with conversation_locks.hold(conversation_key(conversation_id)):
        current = get_conversation(conversation_id) or conversation

        if current.get("ai_enabled") is False:
            append_messages(conversation_id, [{"role": "user", "content": event.text}])
            touch_customer(customer["id"])
            logger.info(
                "AI disabled, message stored for operator",
                extra={"project_id": event.project_id, "conversation_id": conversation_id},
            )
            return TurnOutcome(
                conversation_id=conversation_id,
                customer_id=str(customer["id"]),
                handed_off=True,
            )

        if event.history_override is not None:
            history = event.history_override
        else:
            history = [ConversationMessage.model_validate(m) for m in current.get("messages") or []]

        decision = await handle_turn(
            event.project_id,
            ConversationState(id=conversation_id, messages=history, ai_enabled=True),
            event.text,
            _customer_info(customer),
            knowledge_limit=knowledge_limit,
        )

        assistant_content = mark_images_sent(decision.message) if decision.image_urls else decision.message
        append_messages(
            conversation_id,
            [
                {"role": "user", "content": event.text},
                {"role": "assistant", "content": assistant_content},
            ],
        )

    order = _apply_side_effects(event, customer, conversation_id, decision, len(history))

    return TurnOutcome(
        reply=decision.message,
        image_urls=decision.image_urls,
        conversation_id=conversation_id,
        customer_id=str(customer["id"]),
        order=order,
    )


async def process_comment(
    project_id: str,
    commenter_id: str,
    commenter_name: str | None,
    text: str,
) -> list[str]:
    """
    Answer a public page comment.

    A comment is a fresh exchange: no history and a smaller knowledge cap.
    The commenter is recorded as at least a warm lead.

    Returns:
        Reply texts to post under the comment, in order
    """
    settings = get_settings()

    decision = await handle_turn(
        project_id,
        ConversationState(),
        text,
        CustomerInfo(name=commenter_name),
        knowledge_limit=settings.KNOWLEDGE_COMMENT_LIMIT,
    )

    replies = [decision.message]
    if len(decision.message) > COMMENT_INVITATION_MIN_LENGTH:
        replies.append(MESSENGER_INVITATION.strip())

    try:
        customer = find_customer(project_id, "facebook", commenter_id)
        if customer is None:
            create_customer(project_id, "facebook", commenter_id, name=commenter_name, lead_score="warm")
        else:
            record_classification(
                customer["id"],
                EngagementSignal(suggested_score="warm", source="comment"),
            )
    except Exception as e:
        logger.error(f"Commenter lead update failed: {e}", extra={"project_id": project_id})

    return replies
