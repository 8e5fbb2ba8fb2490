"""Prompt composition for sales turns."""

import json
from typing import Any

from app.core.schemas_catalog import Product
from app.core.schemas_knowledge import AggregatedKnowledge
from app.core.schemas_research import ResearchProfile
from app.core.schemas_sales import ConversationMessage, CustomerInfo

# Appended to stored assistant messages of turns that sent images
IMAGE_SENT_MARKER = "[ЗУРАГ ИЛГЭЭСЭН]"

_RULE = "#" * 60


def has_sent_images(messages: list[ConversationMessage]) -> bool:
    """Whether any assistant turn in the log already sent images."""
    return any(m.role == "assistant" and IMAGE_SENT_MARKER in m.content for m in messages)


def mark_images_sent(text: str) -> str:
    """Tag an assistant message as having sent images."""
    return f"{text} {IMAGE_SENT_MARKER}"


def strip_image_marker(text: str) -> str:
    return text.replace(IMAGE_SENT_MARKER, "").rstrip()


def format_price(price: float | None) -> str:
    """150000 → '150,000₮'; None → price on request."""
    if price is None:
        return "price on request"
    if float(price).is_integer():
        return f"{int(price):,}₮"
    return f"{price:,.2f}₮"


def build_product_listing(products: list[Product], detailed: bool = False) -> str:
    """
    Render the catalog for the prompt.

    Compact form: one line per product with name, price, id and an image
    marker. Detailed form adds description and the full feature list; it is
    used only when the customer is asking for details.
    """
    if not products:
        return "(no products in the catalog)"

    lines: list[str] = []
    for product in products:
        images = f"{len(product.images)} images" if product.has_images else "no images"
        lines.append(
            f"- {product.name} | {format_price(product.price)} | id: {product.id} | {images}"
        )
        if detailed:
            if product.description:
                lines.append(f"  description: {product.description}")
            for feature in product.features:
                lines.append(f"  * {feature}")
    return "\n".join(lines)


def build_platform_block(knowledge: AggregatedKnowledge, purpose_line: str) -> str:
    """
    Wrap platform-operator knowledge in its highest-precedence frame.

    Returns "" for an empty aggregate so callers can skip the section.
    """
    if knowledge.is_empty:
        return ""

    lines: list[str] = [_RULE, "## PLATFORM OPERATOR INSTRUCTIONS - HIGHEST PRIORITY", _RULE, ""]
    for i, block in enumerate(knowledge.blocks, start=1):
        lines.append(f"### {i}. {block}")
        lines.append("")
    lines.append(_RULE)
    lines.append(purpose_line)
    lines.append(_RULE)
    return "\n".join(lines)


def _customer_section(customer_info: CustomerInfo | None) -> list[str]:
    if customer_info is None:
        return ["New customer, nothing known yet."]
    return [
        f"- Name: {customer_info.name or 'unknown'}",
        f"- Previous purchases: {customer_info.previous_purchases}",
        f"- Lead score: {customer_info.lead_score or 'unknown'}",
    ]


def build_sales_system_prompt(
    *,
    research: ResearchProfile,
    knowledge: AggregatedKnowledge,
    products: list[Product],
    customer_info: CustomerInfo | None,
    already_greeted: bool,
    images_already_sent: bool,
    detail_request: bool,
    reply_language: str = "Mongolian",
    assistant_name: str | None = None,
) -> str:
    """
    Build the system instruction for one sales turn.

    Args:
        research: Tenant research profile (embedded in full)
        knowledge: Platform-operator knowledge for purpose=sales
        products: Active catalog
        customer_info: Known customer metadata, if any
        already_greeted: Conversation has at least one prior message
        images_already_sent: An earlier assistant turn carries the image marker
        detail_request: Customer message asks for details/features
        reply_language: Language every reply must be written in
        assistant_name: Tenant-configured assistant display name

    Returns:
        System prompt text
    """
    lines: list[str] = []

    who = f'You are "{assistant_name}", ' if assistant_name else "You are "
    lines.append(f'{who}the AI sales assistant for this business: "{research.business_summary}".')
    lines.append("")

    platform_block = build_platform_block(
        knowledge,
        "These instructions OUTRANK the business research below and your own judgement.\n"
        "If they specify call-to-action wording, say it VERBATIM. Paraphrasing it is a violation.",
    )
    if platform_block:
        lines.append(platform_block)
        lines.append("")

    lines.append("## MOST IMPORTANT RULE")
    if already_greeted:
        lines.append("!!! This conversation is ALREADY IN PROGRESS. You have ALREADY greeted the customer.")
        lines.append("- DO NOT greet again. No 'Сайн байна уу', no 'hello', no thanks-for-contacting.")
        lines.append("- Answer the question or continue the conversation directly.")
    else:
        lines.append("- This is a NEW conversation. You may greet the customer.")
    lines.append("")

    lines.append("## Persona")
    lines.append("- A friendly, helpful salesperson. Sound human, not robotic.")
    lines.append(f"- Tone: {research.tone_guidelines or 'respectful and friendly'}")
    lines.append(f"- Greeting style: {research.greeting_style}")
    lines.append("")

    lines.append("## Business knowledge (research profile)")
    lines.append(json.dumps(research.model_dump(), ensure_ascii=False, indent=2))
    lines.append("")

    lines.append("## Customer")
    lines.extend(_customer_section(customer_info))
    lines.append("")

    lines.append("## Products")
    lines.append(build_product_listing(products, detailed=detail_request))
    if detail_request:
        lines.append("The customer is asking for details: list the product's features in full.")
    else:
        lines.append("Give full feature lists only when the customer asks for details.")
    lines.append("")

    lines.append("## Purchase")
    if research.is_digital_product:
        lines.append("- This is a DIGITAL product. NEVER ask for a delivery or home address.")
    lines.append(f"- How to buy: {research.purchase_instructions}")
    lines.append(f"- Sales channel: {research.sales_channel}")
    if research.website_url:
        lines.append(f"- Website: {research.website_url}")
    lines.append("")

    lines.append("## Reply rules")
    lines.append(f"1. Reply in {reply_language}.")
    lines.append("2. Keep it short and clear (1-3 sentences).")
    lines.append('3. Never address the customer as "Эрхэм үйлчлүүлэгч".')
    lines.append(f"4. {'DO NOT GREET AGAIN!' if already_greeted else 'You may greet.'}")
    lines.append("5. At checkout, use the platform operator's call-to-action wording exactly.")
    if research.do_not_say:
        lines.append(f"6. Never say: {', '.join(research.do_not_say)}")
    lines.append("")

    lines.append("## Image sending policy")
    if images_already_sent:
        lines.append("Images were ALREADY sent in this conversation. Do NOT send images again:")
        lines.append("send_images_for_products MUST be an empty list.")
    else:
        with_images = [p for p in products if p.has_images]
        if with_images:
            lines.append("Products with images:")
            for p in with_images:
                lines.append(f'- "{p.name}": {len(p.images)} images (id: {p.id})')
            lines.append("Send images when the customer wants to see a product or shows interest in it.")
            lines.append("Reference products by id. At most 3 products per reply.")
        else:
            lines.append("No product has images. send_images_for_products must be empty.")
    lines.append("")

    lines.append("## Output format (JSON)")
    lines.append("Your ENTIRE output must be ONE JSON object:")
    lines.append("{")
    lines.append('  "message": "your reply to the customer",')
    lines.append('  "send_images_for_products": ["product_id", ...],')
    lines.append('  "create_order": {')
    lines.append('    "items": [{"product_id": "...", "product_name": "...", "quantity": 1, "unit_price": 0}],')
    lines.append('    "total_amount": 0,')
    lines.append('    "customer_name": "...", "customer_phone": "...", "customer_address": "...",')
    lines.append('    "notes": "..."')
    lines.append("  }")
    lines.append("}")
    lines.append("- send_images_for_products is [] when no images should be sent.")
    lines.append(
        "- Include create_order ONLY when the customer has genuinely committed to buy and "
        "given the contact details needed; otherwise omit it."
    )

    return "\n".join(lines)


def build_chat_messages(
    system_prompt: str,
    history: list[ConversationMessage],
    customer_message: str,
) -> list[dict[str, Any]]:
    """System prompt, replayed history (markers stripped), then the new customer message."""
    messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for entry in history:
        content = strip_image_marker(entry.content) if entry.role == "assistant" else entry.content
        messages.append({"role": entry.role, "content": content})
    messages.append({"role": "user", "content": customer_message})
    return messages
