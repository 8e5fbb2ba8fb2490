"""Pydantic schemas for tenant (project), product catalog and brand profile rows."""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

AiTone = Literal["friendly", "professional", "casual"]
ProjectStatus = Literal["active", "paused", "archived"]

MAX_PRODUCT_IMAGES = 10


class Project(BaseModel):
    """A tenant business account."""

    id: str
    name: str
    industry: str | None = None
    description: str | None = None
    ai_name: str | None = None
    ai_tone: AiTone | None = "friendly"
    status: ProjectStatus = "active"

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class Product(BaseModel):
    """A catalog item. ``price=None`` means "price on request"."""

    id: str
    project_id: str | None = None
    name: str
    description: str | None = None
    price: float | None = None
    features: list[str] = Field(default_factory=list)
    stock: int | None = None
    is_active: bool = True
    images: list[str] = Field(default_factory=list)

    @field_validator("features", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        # Nullable array columns come back as None
        return value or []

    @field_validator("images", mode="before")
    @classmethod
    def _cap_images(cls, value: Any) -> Any:
        return list(value or [])[:MAX_PRODUCT_IMAGES]

    @property
    def has_images(self) -> bool:
        return bool(self.images)


class BrandProfile(BaseModel):
    """Optional per-tenant brand and voice profile."""

    brand_story: str | None = None
    brand_voice: str | None = None
    target_audience: str | None = None
    website_url: str | None = None
    brand_values: list[str] = Field(default_factory=list)
    unique_selling_points: list[str] = Field(default_factory=list)
    greeting_templates: list[str] = Field(default_factory=list)
    forbidden_words: list[str] = Field(default_factory=list)
    preferred_phrases: list[str] = Field(default_factory=list)

    @field_validator(
        "brand_values",
        "unique_selling_points",
        "greeting_templates",
        "forbidden_words",
        "preferred_phrases",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return value or []
