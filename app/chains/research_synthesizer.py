"""LLM chain that synthesizes a tenant's research profile.

The profile is regenerated wholesale from the project record, the full
catalog, the brand profile and platform-operator research knowledge, then
persisted as the tenant's current profile.
"""

import json
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from app.core.config import get_settings
from app.core.conversation_lifecycle import parse_timestamp
from app.core.knowledge import aggregate_knowledge
from app.core.llm import complete_chat, parse_llm_json
from app.core.logging import get_logger
from app.core.sales_prompt import build_platform_block, format_price
from app.core.schemas_catalog import BrandProfile, Product, Project
from app.core.schemas_knowledge import AggregatedKnowledge, KnowledgePurpose
from app.core.schemas_research import ResearchProfile, ResearchStatusResponse
from app.db.brand_profiles import get_brand_profile
from app.db.products import list_products
from app.db.projects import get_project
from app.db.research_profiles import get_research_row, upsert_research_profile

logger = get_logger(__name__)


class ProjectNotFoundError(Exception):
    """The project does not exist."""


class ResearchSynthesisError(Exception):
    """The model's research document could not be validated."""


class ManualEditsPendingError(Exception):
    """Regeneration would discard manual profile edits and was not confirmed."""


# ruff: noqa: E501
SYSTEM_PROMPT = """You are a research analyst preparing an AI sales assistant for a business.

Your job:
1. Analyze the business information
2. Identify each product's features and advantages
3. Define the target customers and what drives them
4. Prepare common questions with answers
5. Build a sales strategy with scripts for every funnel stage
6. Prepare responses to objections

Decide whether the product is digital (delivered online, no shipping) and how customers buy it.
EVERY field below is mandatory. When the business information does not state something, infer a plausible value; never omit a field.

Output ONLY one JSON object matching this exact schema:

{
  "business_summary": "string",
  "core_value_proposition": "string",
  "sales_channel": "website|delivery|both",
  "is_digital_product": true,
  "purchase_instructions": "string - how a customer buys",
  "website_url": "string or null",
  "market_analysis": "string",
  "target_audience": "string",
  "customer_psychology": {"pain_points": ["..."], "desires": ["..."], "fears": ["..."], "buying_triggers": ["..."]},
  "customer_behavior": "string",
  "brand_voice": "string",
  "key_selling_points": ["..."],
  "product_usps": [{"product_name": "...", "usp": "..."}],
  "product_knowledge": [{"product_name": "...", "short_pitch": "...", "benefits": ["..."], "features": ["..."], "ideal_for": "...", "not_for": "..."}],
  "sales_scripts": {"opening": "...", "qualifying": "...", "presenting": "...", "closing": "...", "follow_up": "..."},
  "common_questions": [{"question": "...", "answer": "..."}],
  "objection_handling": [{"objection": "...", "response": "..."}],
  "urgency_tactics": ["..."],
  "social_proof": "string",
  "sales_tips": ["..."],
  "greeting_style": "string",
  "tone_guidelines": "string",
  "do_not_say": ["..."]
}"""

_PLATFORM_RESEARCH_LINE = (
    "Reflect these instructions in the research 100%. They OUTRANK the business owner's information.\n"
    "A research document that contradicts them is a failure."
)


def _format_product(index: int, product: Product) -> str:
    features = ", ".join(product.features) if product.features else "none"
    status = "" if product.is_active else " (inactive)"
    return (
        f"{index}. {product.name}{status}\n"
        f"   - Description: {product.description or 'none'}\n"
        f"   - Price: {format_price(product.price)}\n"
        f"   - Features: {features}"
    )


def build_research_prompt(
    project: Project,
    products: list[Product],
    brand_profile: BrandProfile | None,
    knowledge: AggregatedKnowledge,
) -> tuple[str, str]:
    """
    Build (system, user) prompts for research synthesis.

    Platform-operator knowledge leads the system prompt; tenant facts go in
    the user prompt.
    """
    platform_block = build_platform_block(knowledge, _PLATFORM_RESEARCH_LINE)
    system_prompt = f"{platform_block}\n\n{SYSTEM_PROMPT}" if platform_block else SYSTEM_PROMPT

    lines: list[str] = [
        "Research the following business and prepare detailed instructions for its AI sales assistant.",
        "",
        f"Business name: {project.name}",
        f"Industry: {project.industry or 'unknown'}",
        f"Description: {project.description or 'none'}",
        "",
        "Products:",
    ]
    if products:
        lines.extend(_format_product(i, p) for i, p in enumerate(products, start=1))
    else:
        lines.append("(no products yet)")

    if brand_profile is not None:
        lines.append("")
        lines.append("Brand:")
        lines.append(f"- Story: {brand_profile.brand_story or 'none'}")
        lines.append(f"- Voice: {brand_profile.brand_voice or 'none'}")
        lines.append(f"- Values: {', '.join(brand_profile.brand_values) or 'none'}")
        lines.append(f"- Target audience: {brand_profile.target_audience or 'none'}")
        lines.append(f"- Unique selling points: {', '.join(brand_profile.unique_selling_points) or 'none'}")
        if brand_profile.website_url:
            lines.append(f"- Website: {brand_profile.website_url}")

    return system_prompt, "\n".join(lines)


def has_pending_manual_edits(row: dict[str, Any] | None) -> bool:
    """Whether the stored profile was edited by hand after the last synthesis run."""
    if not row:
        return False
    edited = parse_timestamp(row.get("manually_edited_at"))
    if edited is None:
        return False
    trained = parse_timestamp(row.get("last_research_at"))
    return trained is None or edited > trained


async def synthesize_research(
    project_id: UUID | str,
    *,
    confirm_overwrite: bool = False,
) -> ResearchProfile:
    """
    Regenerate and persist the tenant's research profile.

    Args:
        project_id: Project UUID
        confirm_overwrite: Proceed even when the current profile carries
            manual edits newer than the last run

    Returns:
        The stored ResearchProfile

    Raises:
        ProjectNotFoundError: Unknown project
        ManualEditsPendingError: Manual edits would be discarded
        ResearchSynthesisError: Model output is not a complete profile
            (nothing is persisted)
    """
    settings = get_settings()

    project_row = get_project(project_id)
    if not project_row:
        raise ProjectNotFoundError(f"Project {project_id} not found")

    if not confirm_overwrite and has_pending_manual_edits(get_research_row(project_id)):
        raise ManualEditsPendingError(
            "Regenerating research will discard manual profile edits"
        )

    project = Project.model_validate(project_row)
    products = [Product.model_validate(p) for p in list_products(project_id, active_only=False)]
    brand_row = get_brand_profile(project_id)
    brand_profile = BrandProfile.model_validate(brand_row) if brand_row else None
    knowledge = aggregate_knowledge(
        project_id, KnowledgePurpose.RESEARCH, settings.KNOWLEDGE_RESEARCH_LIMIT
    )

    system_prompt, user_prompt = build_research_prompt(project, products, brand_profile, knowledge)

    logger.info(
        f"Running research synthesis with {settings.RESEARCH_MODEL}",
        extra={
            "project_id": str(project_id),
            "extra_data": {"products": len(products), "knowledge": len(knowledge.blocks)},
        },
    )

    raw_output = await complete_chat(
        [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        model=settings.RESEARCH_MODEL,
        temperature=settings.RESEARCH_TEMPERATURE,
        json_mode=True,
    )

    try:
        profile = parse_llm_json(raw_output, ResearchProfile)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(
            f"Research output failed validation: {e}",
            extra={"project_id": str(project_id)},
        )
        # Do NOT leak raw model output in exception
        raise ResearchSynthesisError("Research output could not be validated to schema") from e

    if brand_profile is not None and brand_profile.website_url:
        profile.website_url = brand_profile.website_url

    upsert_research_profile(project_id, profile.model_dump())
    return profile


def update_research_profile(project_id: UUID | str, profile: ResearchProfile) -> ResearchProfile:
    """Save a hand-edited profile. Stamps manually_edited_at."""
    if not get_project(project_id):
        raise ProjectNotFoundError(f"Project {project_id} not found")
    upsert_research_profile(project_id, profile.model_dump(), manual_edit=True)
    return profile


def get_research_status(project_id: UUID | str) -> ResearchStatusResponse:
    """Whether the tenant is trained, and when."""
    row = get_research_row(project_id)
    if not row or not row.get("ai_instructions"):
        return ResearchStatusResponse(ready=False)
    return ResearchStatusResponse(
        ready=True,
        last_trained=row.get("last_research_at"),
        manually_edited_at=row.get("manually_edited_at"),
    )
