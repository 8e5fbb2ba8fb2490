"""Research profile schema: the structured sales knowledge synthesized per tenant."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SalesChannel = Literal["website", "delivery", "both"]


class CustomerPsychology(BaseModel):
    """What drives the tenant's customers"""

    pain_points: list[str]
    desires: list[str]
    fears: list[str]
    buying_triggers: list[str]


class ProductUSP(BaseModel):
    """Unique selling proposition for one product"""

    product_name: str
    usp: str


class ProductKnowledge(BaseModel):
    """Sales knowledge for one product"""

    product_name: str
    short_pitch: str
    benefits: list[str]
    features: list[str]
    ideal_for: str
    not_for: str


class SalesScripts(BaseModel):
    """Scripts keyed by funnel stage"""

    opening: str
    qualifying: str
    presenting: str
    closing: str
    follow_up: str


class FAQ(BaseModel):
    """Frequently asked question with its answer"""

    question: str
    answer: str


class ObjectionResponse(BaseModel):
    """Customer objection and how to answer it"""

    objection: str
    response: str


class ResearchProfile(BaseModel):
    """
    The tenant's synthesized sales knowledge, read on every sales turn.

    Every field except ``website_url`` is mandatory: the synthesizer demands
    the model infer plausible values rather than omit them, and a document
    missing any of them is rejected before it is persisted.
    """

    model_config = ConfigDict(extra="ignore")

    business_summary: str
    core_value_proposition: str
    sales_channel: SalesChannel
    is_digital_product: bool
    purchase_instructions: str
    website_url: str | None = None
    market_analysis: str
    target_audience: str
    customer_psychology: CustomerPsychology
    customer_behavior: str
    brand_voice: str
    key_selling_points: list[str]
    product_usps: list[ProductUSP]
    product_knowledge: list[ProductKnowledge]
    sales_scripts: SalesScripts
    common_questions: list[FAQ]
    objection_handling: list[ObjectionResponse]
    urgency_tactics: list[str]
    social_proof: str
    sales_tips: list[str]
    greeting_style: str
    tone_guidelines: str
    do_not_say: list[str]


# =========================
# API request / response
# =========================


class ResearchRunRequest(BaseModel):
    """Request body for POST /research/run."""

    project_id: str | None = Field(None, description="Project to (re)train")
    confirm_overwrite: bool = Field(
        False,
        description="Acknowledge that regeneration discards manual profile edits",
    )


class ResearchRunResponse(BaseModel):
    """Response body for POST /research/run."""

    success: bool = True
    research: ResearchProfile


class ResearchStatusResponse(BaseModel):
    """Response body for GET /research/status."""

    ready: bool
    last_trained: str | None = None
    manually_edited_at: str | None = None


class ResearchProfileUpdateRequest(BaseModel):
    """Request body for PUT /research/profile (manual profile editor)."""

    project_id: str
    research: ResearchProfile
