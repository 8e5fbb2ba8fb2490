"""Operator-side conversation actions: AI hand-off, manual replies, close, classify."""

from app.chains.classify_conversation import classify_conversation
from app.core.conversation_lifecycle import close_updates, validate_transition
from app.core.conversation_locks import conversation_key, conversation_locks
from app.core.logging import get_logger
from app.core.schemas_leads import ConversationClassification, EngagementSignal
from app.core.schemas_sales import ConversationMessage
from app.db.conversations import append_messages, get_conversation, update_conversation
from app.db.customers import get_customer
from app.db.social_accounts import get_social_account_for_project
from app.services import meta_messenger
from app.services.lead_service import record_classification

logger = get_logger(__name__)

META_PLATFORMS = ("facebook", "instagram")


class ConversationNotFoundError(Exception):
    """No such conversation in the project."""


def _load(project_id: str, conversation_id: str) -> dict:
    conversation = get_conversation(conversation_id)
    if not conversation or str(conversation.get("project_id")) != str(project_id):
        raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
    return conversation


def set_ai_enabled(project_id: str, conversation_id: str, enabled: bool) -> dict:
    """Hand the conversation to a human (False) or back to the AI (True)."""
    _load(project_id, conversation_id)
    updated = update_conversation(conversation_id, {"ai_enabled": enabled})
    logger.info(
        f"AI {'enabled' if enabled else 'disabled'}",
        extra={"project_id": str(project_id), "conversation_id": conversation_id},
    )
    return updated or {}


def close_conversation(project_id: str, conversation_id: str) -> dict:
    """
    Operator close: active → closed.

    Raises:
        ConversationTransitionError: Already closed
    """
    conversation = _load(project_id, conversation_id)
    validate_transition(conversation.get("status", "active"), "closed")
    return update_conversation(conversation_id, close_updates("operator")) or {}


async def send_operator_reply(project_id: str, conversation_id: str, text: str) -> list[dict]:
    """
    Append a human-authored reply and deliver it on the conversation's channel.

    Bypasses the sales agent. Meta conversations are delivered through the
    Graph API; web conversations pick the reply up from the log.

    Returns:
        The full message log after the append
    """
    conversation = _load(project_id, conversation_id)

    async with conversation_locks.hold(conversation_key(conversation_id)):
        messages = append_messages(
            conversation_id,
            [{"role": "assistant", "content": text, "author": "operator"}],
        )

    platform = conversation.get("platform")
    if platform in META_PLATFORMS:
        account = get_social_account_for_project(project_id, platform)
        customer = get_customer(conversation["customer_id"]) if conversation.get("customer_id") else None
        if account and customer:
            await meta_messenger.send_text(account["access_token"], customer["platform_user_id"], text)
        else:
            logger.warning(
                f"Operator reply stored but not delivered: no {platform} account or customer",
                extra={"project_id": str(project_id), "conversation_id": conversation_id},
            )

    return messages


async def classify_and_score(
    project_id: str,
    conversation_id: str,
) -> tuple[ConversationClassification, str | None]:
    """Classify the conversation and raise the customer's lead score from the verdict."""
    conversation = _load(project_id, conversation_id)
    messages = [ConversationMessage.model_validate(m) for m in conversation.get("messages") or []]

    classification = await classify_conversation(messages)

    lead_score = None
    if conversation.get("customer_id"):
        lead_score = record_classification(
            conversation["customer_id"],
            EngagementSignal(
                message_count=len(messages),
                suggested_score=classification.lead_score,
                source="classifier",
            ),
        )
    return classification, lead_score
