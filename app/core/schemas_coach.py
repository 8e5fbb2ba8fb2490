"""Pydantic schemas for operator-facing assistants: business coach and knowledge trainer."""

from typing import Literal

from pydantic import BaseModel, Field


class ChatTurn(BaseModel):
    """A prior message replayed into an operator assistant."""

    role: Literal["user", "assistant"]
    content: str


class CoachChatRequest(BaseModel):
    """Request body for POST /coach/chat."""

    project_id: str | None = None
    message: str | None = None


class CoachChatResponse(BaseModel):
    """Response body for POST /coach/chat."""

    success: bool = True
    response: str


class SnippetDraft(BaseModel):
    """A knowledge snippet the trainer proposes to store."""

    category: str = "general"
    title: str = ""
    content: str = Field(..., min_length=1)
    priority: int = 0


class TrainerOutput(BaseModel):
    """Structured output of the knowledge trainer model."""

    message: str
    snippet: SnippetDraft | None = None


class TrainerChatRequest(BaseModel):
    """Request body for POST /admin/knowledge/chat."""

    message: str | None = None
    history: list[ChatTurn] = Field(default_factory=list)
    # None stores a global snippet shared by every tenant
    project_id: str | None = None


class TrainerChatResponse(BaseModel):
    """Response body for POST /admin/knowledge/chat."""

    success: bool = True
    response: str
    knowledge_added: bool = False
    snippet_id: str | None = None
