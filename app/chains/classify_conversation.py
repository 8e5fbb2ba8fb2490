"""LLM chain that classifies a conversation for lead follow-up."""

import json

from pydantic import ValidationError

from app.core.config import get_settings
from app.core.llm import complete_chat, parse_llm_json
from app.core.logging import get_logger
from app.core.schemas_leads import ConversationClassification
from app.core.schemas_sales import ConversationMessage

logger = get_logger(__name__)


class ClassificationError(Exception):
    """The classifier's verdict could not be validated."""


SYSTEM_PROMPT = """You analyze sales conversations between a customer and an AI sales assistant.

Output ONLY one JSON object:
{
  "lead_score": "hot" | "warm" | "cold",
  "intent": "purchase" | "inquiry" | "complaint" | "support" | "other",
  "sentiment": "positive" | "neutral" | "negative",
  "should_follow_up": true | false,
  "follow_up_reason": "string or null",
  "summary": "short summary of the conversation",
  "next_action": "what the business should do next"
}"""


def render_transcript(messages: list[ConversationMessage]) -> str:
    return "\n".join(f"{m.role}: {m.content}" for m in messages)


async def classify_conversation(messages: list[ConversationMessage]) -> ConversationClassification:
    """
    Classify a conversation log.

    Raises:
        ClassificationError: Output is not a valid verdict
    """
    settings = get_settings()

    raw_output = await complete_chat(
        [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"Analyze this conversation:\n\n{render_transcript(messages)}"},
        ],
        model=settings.CLASSIFIER_MODEL,
        temperature=0.3,
        json_mode=True,
    )

    try:
        return parse_llm_json(raw_output, ConversationClassification)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Classifier output failed validation: {e}")
        raise ClassificationError("Classifier output could not be validated") from e
