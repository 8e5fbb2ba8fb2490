"""Pydantic schemas for sales turns: conversation state, agent contract, channel I/O."""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from app.core.schemas_orders import Order, OrderRequest

LeadScore = Literal["hot", "warm", "cold"]
Platform = Literal["web", "facebook", "instagram", "api"]


class ConversationMessage(BaseModel):
    """One entry of a conversation's append-only message log."""

    role: Literal["user", "assistant"]
    content: str
    created_at: str | None = None
    # "operator" marks a human-authored assistant message
    author: str | None = None


class ConversationState(BaseModel):
    """What the orchestrator reads about a conversation."""

    id: str | None = None
    messages: list[ConversationMessage] = Field(default_factory=list)
    ai_enabled: bool = True

    @property
    def already_greeted(self) -> bool:
        return len(self.messages) >= 1


class CustomerInfo(BaseModel):
    """Customer metadata embedded into the sales prompt when known."""

    name: str | None = None
    previous_purchases: int = 0
    lead_score: LeadScore | None = None


# =========================
# Structured output contract
# =========================


class SalesAgentOutput(BaseModel):
    """
    The single JSON object the model must emit on every sales turn.

    ``create_order`` is validated separately so a malformed order draft never
    costs the customer their reply.
    """

    message: str = Field(..., min_length=1)
    send_images_for_products: list[str] = Field(default_factory=list)

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message is blank")
        return value.strip()

    @field_validator("send_images_for_products", mode="before")
    @classmethod
    def _normalize_ids(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (str, int)):
            value = [value]
        if not isinstance(value, list):
            raise ValueError("expected a list of product ids")
        return [str(v) for v in value]


class TurnDecision(BaseModel):
    """Everything one sales turn decided. Side effects are applied by the caller."""

    message: str
    image_urls: list[str] = Field(default_factory=list)
    image_product_ids: list[str] = Field(default_factory=list)
    order_request: OrderRequest | None = None
    used_fallback: bool = False


# =========================
# Channel normalization
# =========================


class CustomerMessageEvent(BaseModel):
    """An inbound customer message normalized from any channel."""

    project_id: str
    platform: Platform
    # Channel-native user id (PSID, widget session id, or API customer key)
    sender_key: str
    text: str
    display_name: str | None = None
    conversation_id: str | None = None
    customer_id: str | None = None
    history_override: list[ConversationMessage] | None = None


class TurnOutcome(BaseModel):
    """What a channel adapter delivers after a turn."""

    reply: str | None = None
    image_urls: list[str] = Field(default_factory=list)
    conversation_id: str | None = None
    customer_id: str | None = None
    order: Order | None = None
    handed_off: bool = False


# =========================
# HTTP request / response
# =========================


class SalesChatRequest(BaseModel):
    """Request body for POST /sales/chat."""

    project_id: str | None = None
    conversation_id: str | None = None
    message: str | None = None
    customer_id: str | None = None
    history: list[ConversationMessage] | None = None


class SalesChatResponse(BaseModel):
    """Response body for POST /sales/chat."""

    success: bool = True
    response: str
    images: list[str] = Field(default_factory=list)
    conversation_id: str | None = None
    order: Order | None = None


class VisitorInfo(BaseModel):
    """Anonymous widget visitor metadata."""

    name: str | None = None


class WidgetChatRequest(BaseModel):
    """Request body for POST /sales/widget-chat."""

    project_id: str | None = None
    session_id: str | None = None
    message: str | None = None
    visitor_info: VisitorInfo | None = None


class WidgetChatResponse(BaseModel):
    """Response body for POST /sales/widget-chat."""

    success: bool = True
    response: str
    images: list[str] = Field(default_factory=list)
    session_id: str | None = None
