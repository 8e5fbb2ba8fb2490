"""Lead scoring schemas."""

from typing import Literal

from pydantic import BaseModel, Field

from app.core.schemas_sales import LeadScore

# cold < warm < hot; scores only ever move right
LEAD_SCORE_RANK: dict[str, int] = {"cold": 0, "warm": 1, "hot": 2}


class EngagementSignal(BaseModel):
    """Input to record_classification: conversational engagement without an order."""

    message_count: int = Field(0, ge=0)
    suggested_score: LeadScore | None = None
    source: Literal["engagement", "classifier", "comment"] = "engagement"


class ConversationClassification(BaseModel):
    """LLM classifier verdict for a conversation."""

    lead_score: LeadScore
    intent: Literal["purchase", "inquiry", "complaint", "support", "other"] = "other"
    sentiment: Literal["positive", "neutral", "negative"] = "neutral"
    should_follow_up: bool = False
    follow_up_reason: str | None = None
    summary: str = ""
    next_action: str = ""


def max_lead_score(current: str | None, candidate: str | None) -> str:
    """Return the warmer of two lead scores (unknown values count as cold)."""
    current_rank = LEAD_SCORE_RANK.get(current or "cold", 0)
    candidate_rank = LEAD_SCORE_RANK.get(candidate or "cold", 0)
    if candidate_rank > current_rank:
        return candidate or "cold"
    return current if current in LEAD_SCORE_RANK else "cold"
