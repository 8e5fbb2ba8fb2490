"""Pydantic schemas for platform-operator knowledge snippets."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class KnowledgePurpose(str, Enum):
    """Which consumer a knowledge aggregation is built for."""

    SALES = "sales"
    RESEARCH = "research"


class KnowledgeSnippet(BaseModel):
    """
    An instructional text fragment authored by the platform operator.

    ``project_id=None`` marks a global default shared by every tenant;
    a tenant-scoped row only reaches that tenant's prompts.
    """

    id: str | None = None
    project_id: str | None = None
    category: str = "general"
    title: str = ""
    content: str
    is_active: bool = True
    priority: int = 0
    created_at: str | None = None

    @field_validator("priority", mode="before")
    @classmethod
    def _null_priority(cls, value: Any) -> Any:
        return value or 0


class AggregatedKnowledge(BaseModel):
    """Ordered snippet bodies ready for prompt embedding."""

    blocks: list[str] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n\n".join(self.blocks)

    @property
    def is_empty(self) -> bool:
        return not self.blocks
