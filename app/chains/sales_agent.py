"""Sales agent: one customer turn in, one structured decision out.

Composes the per-turn prompt from the research profile, platform knowledge,
catalog, conversation state and customer metadata; calls the model under a
JSON output contract; then validates and repairs the result. Persisting the
conversation and applying order/lead side effects is the caller's job.
"""

import json
import re
import uuid
from dataclasses import dataclass, field
from uuid import UUID

from pydantic import ValidationError

from app.core.config import get_settings
from app.core.intent import IntentClassifier, IntentTag, default_classifier
from app.core.knowledge import aggregate_knowledge
from app.core.llm import complete_chat, parse_llm_json_dict
from app.core.logging import get_logger
from app.core.sales_prompt import build_chat_messages, build_sales_system_prompt, has_sent_images
from app.core.schemas_catalog import Product
from app.core.schemas_knowledge import AggregatedKnowledge, KnowledgePurpose
from app.core.schemas_orders import OrderRequest
from app.core.schemas_research import ResearchProfile
from app.core.schemas_sales import (
    ConversationState,
    CustomerInfo,
    SalesAgentOutput,
    TurnDecision,
)
from app.db.products import list_products
from app.db.projects import get_project
from app.db.research_profiles import get_research_row

logger = get_logger(__name__)

FALLBACK_MESSAGE = "Уучлаарай, түр алдаа гарлаа. Дахин бичнэ үү."
# Sent instead of a reply that was nothing but a repeated greeting.
CONTINUATION_MESSAGE = "Өөр юугаар туслах вэ?"

_GREETINGS = (
    r"сайн\s+байна\s+уу",
    r"сайн\s+байцгаана\s+уу",
    r"сайн\s+уу",
    r"сайнуу",
    r"мэнд\s+хүргэе",
    r"холбогдсон(?:д|ы\s+төлөө)\s+баярлалаа",
    r"баярлалаа\s+холбогдсон(?:д|ы\s+төлөө)",
    r"hello",
    r"hi",
    r"hey",
    r"good\s+(?:morning|afternoon|evening)",
)
# A greeting opening the reply or a sentence, with its trailing punctuation/emoji.
# Group 1 keeps the preceding sentence end.
_GREETING_RE = re.compile(
    r"(^\s*|[.!?\n]\s*)(?:" + "|".join(_GREETINGS) + r")(?=[\s,.!?🙏😊👋]|$)[\s,.!?🙏😊👋]*",
    re.IGNORECASE,
)


class ResearchProfileMissingError(Exception):
    """The tenant has no usable research profile yet ("not trained")."""


class AiDisabledError(Exception):
    """The conversation was handed to a human operator."""


@dataclass
class TurnContext:
    """Tenant data a turn is composed from."""

    research: ResearchProfile
    knowledge: AggregatedKnowledge
    products: list[Product] = field(default_factory=list)
    assistant_name: str | None = None


def load_turn_context(project_id: UUID | str, knowledge_limit: int) -> TurnContext:
    """
    Load the research profile, sales knowledge and active catalog.

    Raises:
        ResearchProfileMissingError: No research row, or the stored profile
            no longer validates (the tenant has to retrain)
    """
    row = get_research_row(project_id)
    if not row or not row.get("ai_instructions"):
        raise ResearchProfileMissingError(f"Project {project_id} has no research profile")

    try:
        research = ResearchProfile.model_validate_json(row["ai_instructions"])
    except ValidationError as e:
        logger.error(
            f"Stored research profile is invalid: {e.error_count()} errors",
            extra={"project_id": str(project_id)},
        )
        raise ResearchProfileMissingError(
            f"Project {project_id} research profile is invalid; run research again"
        ) from e

    knowledge = aggregate_knowledge(project_id, KnowledgePurpose.SALES, knowledge_limit)
    products = [
        Product.model_validate(p)
        for p in list_products(project_id, active_only=True)
        if p.get("is_active", True)
    ]
    project = get_project(project_id)

    return TurnContext(
        research=research,
        knowledge=knowledge,
        products=products,
        assistant_name=(project or {}).get("ai_name"),
    )


# =========================
# Output interpretation
# =========================


def parse_agent_output(raw_output: str) -> tuple[SalesAgentOutput | None, OrderRequest | None]:
    """
    Validate raw model text against the canonical output schema.

    Returns (None, None) when the text is not a JSON object or lacks a
    non-blank ``message``. A malformed ``create_order`` is dropped on its
    own without discarding the reply.
    """
    try:
        data = parse_llm_json_dict(raw_output)
    except json.JSONDecodeError as e:
        logger.warning(f"Sales agent output is not JSON: {e}; raw={raw_output[:300]!r}")
        return None, None

    order_raw = data.pop("create_order", None)

    try:
        output = SalesAgentOutput.model_validate(data)
    except (ValidationError, TypeError) as e:
        logger.warning(
            f"Sales agent output failed validation: {e}; keys={sorted(data)}"
        )
        return None, None

    order: OrderRequest | None = None
    if order_raw:
        try:
            order = OrderRequest.model_validate(order_raw)
        except ValidationError as e:
            logger.warning(f"Dropping malformed create_order: {e.error_count()} errors")

    return output, order


def resolve_images(
    product_ids: list[str],
    products: list[Product],
    max_products: int = 3,
) -> tuple[list[str], list[str]]:
    """
    Map requested product ids to image URLs.

    Unknown ids and products without images are skipped silently; the URL
    lists of the first ``max_products`` resolved products are concatenated.

    Returns:
        (image_urls, resolved_product_ids)
    """
    by_id = {p.id: p for p in products}
    urls: list[str] = []
    resolved: list[str] = []

    for product_id in product_ids:
        if len(resolved) >= max_products:
            break
        product = by_id.get(product_id)
        if product is None or not product.has_images or product_id in resolved:
            continue
        resolved.append(product_id)
        urls.extend(product.images)

    return urls, resolved


def find_detail_product(
    customer_message: str,
    reply: str,
    requested_ids: list[str],
    products: list[Product],
) -> Product | None:
    """
    Pick the product a detail request is about.

    Preference: named in the customer message, named in the reply, requested
    for images, or the only product in the catalog. Only products with
    features qualify.
    """
    candidates = [p for p in products if p.features]
    if not candidates:
        return None

    lowered_message = customer_message.lower()
    for product in candidates:
        if product.name.lower() in lowered_message:
            return product

    lowered_reply = reply.lower()
    for product in candidates:
        if product.name.lower() in lowered_reply:
            return product

    by_id = {p.id: p for p in candidates}
    for product_id in requested_ids:
        if product_id in by_id:
            return by_id[product_id]

    if len(products) == 1:
        return candidates[0]
    return None


def complete_feature_list(reply: str, product: Product) -> str:
    """Append the product's features verbatim unless the reply already has all of them."""
    if all(feature in reply for feature in product.features):
        return reply
    feature_lines = "\n".join(f"- {feature}" for feature in product.features)
    return f"{reply}\n\n{product.name}:\n{feature_lines}"


def strip_repeated_greeting(reply: str) -> str:
    """Remove sentence-opening greetings. A reply that is nothing but greetings becomes a neutral follow-up."""
    stripped = reply.strip()
    while True:
        updated = _GREETING_RE.sub(r"\1", stripped).strip()
        if updated == stripped:
            break
        stripped = updated

    if not stripped:
        return CONTINUATION_MESSAGE
    return stripped[0].upper() + stripped[1:]


def interpret_agent_output(
    raw_output: str,
    *,
    products: list[Product],
    customer_message: str,
    already_greeted: bool,
    images_already_sent: bool,
    intent: IntentTag,
    max_image_products: int = 3,
) -> TurnDecision:
    """
    Turn raw model text into the turn's decision.

    Never raises for bad model output: unparseable or message-less output
    yields the fixed fallback reply with no images and no order.
    """
    output, order = parse_agent_output(raw_output)
    if output is None:
        return TurnDecision(message=FALLBACK_MESSAGE, used_fallback=True)

    message = output.message
    requested = output.send_images_for_products

    image_urls: list[str] = []
    image_product_ids: list[str] = []
    if requested and not images_already_sent:
        image_urls, image_product_ids = resolve_images(requested, products, max_image_products)
    elif requested:
        logger.info(f"Suppressed image request {requested}: images already sent")

    if already_greeted:
        message = strip_repeated_greeting(message)

    if intent == IntentTag.DETAIL_REQUEST:
        product = find_detail_product(customer_message, message, requested, products)
        if product is not None:
            message = complete_feature_list(message, product)

    return TurnDecision(
        message=message,
        image_urls=image_urls,
        image_product_ids=image_product_ids,
        order_request=order,
    )


# =========================
# Turn entry point
# =========================


async def handle_turn(
    project_id: UUID | str,
    conversation: ConversationState,
    customer_message: str,
    customer_info: CustomerInfo | None = None,
    *,
    knowledge_limit: int | None = None,
    intent_classifier: IntentClassifier | None = None,
) -> TurnDecision:
    """
    Run one sales turn.

    Args:
        project_id: Tenant
        conversation: Prior messages (not including customer_message)
        customer_message: The inbound text
        customer_info: Known customer metadata
        knowledge_limit: Snippet cap (defaults to KNOWLEDGE_SALES_LIMIT)
        intent_classifier: Intent tagger (defaults to keyword matching)

    Returns:
        TurnDecision with reply text, resolved image URLs and an optional
        order request

    Raises:
        AiDisabledError: The conversation is handed off to a human
        ResearchProfileMissingError: The tenant is not trained yet
        openai.OpenAIError: Model invocation failed (not retried)
    """
    if not conversation.ai_enabled:
        raise AiDisabledError(f"AI is disabled for conversation {conversation.id}")

    settings = get_settings()
    classifier = intent_classifier or default_classifier
    turn_id = str(uuid.uuid4())

    context = load_turn_context(project_id, knowledge_limit or settings.KNOWLEDGE_SALES_LIMIT)

    history = conversation.messages
    already_greeted = conversation.already_greeted
    images_already_sent = has_sent_images(history)
    intent = classifier.classify(customer_message)

    system_prompt = build_sales_system_prompt(
        research=context.research,
        knowledge=context.knowledge,
        products=context.products,
        customer_info=customer_info,
        already_greeted=already_greeted,
        images_already_sent=images_already_sent,
        detail_request=intent == IntentTag.DETAIL_REQUEST,
        reply_language=settings.REPLY_LANGUAGE,
        assistant_name=context.assistant_name,
    )
    messages = build_chat_messages(system_prompt, history, customer_message)

    logger.info(
        "Running sales turn",
        extra={
            "project_id": str(project_id),
            "conversation_id": conversation.id,
            "turn_id": turn_id,
            "extra_data": {
                "history": len(history),
                "products": len(context.products),
                "knowledge": len(context.knowledge.blocks),
                "intent": intent.value,
            },
        },
    )

    raw_output = await complete_chat(
        messages,
        model=settings.SALES_AGENT_MODEL,
        temperature=settings.SALES_AGENT_TEMPERATURE,
        max_tokens=settings.SALES_AGENT_MAX_TOKENS,
        json_mode=True,
    )

    decision = interpret_agent_output(
        raw_output,
        products=context.products,
        customer_message=customer_message,
        already_greeted=already_greeted,
        images_already_sent=images_already_sent,
        intent=intent,
        max_image_products=settings.MAX_IMAGE_PRODUCTS,
    )

    if decision.used_fallback:
        logger.warning(
            f"Malformed sales agent output replaced with fallback: {raw_output[:500]!r}",
            extra={"project_id": str(project_id), "turn_id": turn_id},
        )

    return decision
