"""Pydantic schemas for operator-side conversation management."""

from pydantic import BaseModel, Field

from app.core.schemas_leads import ConversationClassification


class AiToggleRequest(BaseModel):
    """Request body for PATCH /conversations/{id}/ai."""

    ai_enabled: bool


class OperatorReplyRequest(BaseModel):
    """Request body for POST /conversations/{id}/reply."""

    message: str = Field(..., min_length=1)


class ConversationResponse(BaseModel):
    """Trimmed conversation row returned by operator endpoints."""

    id: str
    status: str
    ai_enabled: bool
    message_count: int = 0
    last_message_at: str | None = None
    closed_at: str | None = None


class ClassifyConversationResponse(BaseModel):
    """Response body for POST /conversations/{id}/classify."""

    classification: ConversationClassification
    lead_score: str | None = None
