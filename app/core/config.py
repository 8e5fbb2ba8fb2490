"""Configuration management for the sales agent engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # OpenAI configuration (required)
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key")

    # Environment
    SALES_ENGINE_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Sales agent (per-turn orchestrator)
    SALES_AGENT_MODEL: str = Field(default="gpt-4o", description="Model for sales turns")
    SALES_AGENT_TEMPERATURE: float = Field(default=0.8, description="Sales turn temperature")
    SALES_AGENT_MAX_TOKENS: int = Field(default=500, description="Max tokens per sales reply")
    REPLY_LANGUAGE: str = Field(default="Mongolian", description="Language the agent replies in")

    # Research synthesizer
    RESEARCH_MODEL: str = Field(default="gpt-4o", description="Model for research synthesis")
    RESEARCH_TEMPERATURE: float = Field(default=0.7, description="Research temperature")

    # Conversation classifier, coach and knowledge trainer
    CLASSIFIER_MODEL: str = Field(default="gpt-4o", description="Model for lead classification")
    COACH_MODEL: str = Field(default="gpt-4o", description="Model for the business coach")
    TRAINER_MODEL: str = Field(default="gpt-4o", description="Model for the knowledge trainer")

    # Knowledge aggregation caps
    KNOWLEDGE_SALES_LIMIT: int = Field(
        default=10, description="Max knowledge snippets for chat/widget/webhook turns"
    )
    KNOWLEDGE_COMMENT_LIMIT: int = Field(
        default=5, description="Max knowledge snippets for low-latency comment replies"
    )
    KNOWLEDGE_RESEARCH_LIMIT: int = Field(
        default=10, description="Max knowledge snippets for research runs"
    )

    # Images
    MAX_IMAGE_PRODUCTS: int = Field(
        default=3, description="Max products whose images are attached in one turn"
    )
    MAX_IMAGE_SENDS_PER_TURN: int = Field(
        default=3, description="Max image send calls per webhook turn"
    )

    # Leads and conversations
    WARM_LEAD_MESSAGE_THRESHOLD: int = Field(
        default=3, description="Stored messages needed before a customer becomes warm"
    )
    CONVERSATION_INACTIVITY_HOURS: int = Field(
        default=72, description="Idle hours after which an active conversation is closed"
    )

    # Meta (Facebook / Instagram) channel
    META_WEBHOOK_VERIFY_TOKEN: str = Field(
        default="", description="Shared secret echoed back during webhook verification"
    )
    META_APP_SECRET: str | None = Field(
        default=None, description="App secret for X-Hub-Signature-256 checks (optional)"
    )
    META_GRAPH_API_VERSION: str = Field(default="v18.0", description="Graph API version")

    # Widget
    WIDGET_ALLOWED_ORIGINS: str = Field(
        default="*", description="Comma separated origins allowed to call the widget endpoint"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
