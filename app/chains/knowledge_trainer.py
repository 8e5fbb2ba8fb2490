"""Knowledge trainer: a platform-operator chat that turns instructions into snippets.

The model proposes a snippet and asks for confirmation; a snippet is stored
only when the operator's latest message is a save confirmation.
"""

import json

from pydantic import ValidationError

from app.core.config import get_settings
from app.core.intent import IntentClassifier, IntentTag, default_classifier
from app.core.llm import complete_chat, parse_llm_json
from app.core.logging import get_logger
from app.core.schemas_coach import ChatTurn, TrainerChatResponse, TrainerOutput
from app.db.knowledge import insert_snippet

logger = get_logger(__name__)

# ruff: noqa: E501
SYSTEM_PROMPT = """You are the AI trainer of a sales-assistant platform. The platform owner is talking to you.

Your job:
1. Receive instructions and knowledge for the AI sales assistants
2. Turn them into clear, structured knowledge snippets
3. Ask clarifying questions when something is vague

When the owner gives knowledge to teach:
- Restate it as a snippet with category, title and content
- Ask "Shall I save this knowledge?"
- When the owner confirms, return the snippet in the "snippet" field

Categories: sales (sales-turn instructions), research (research instructions), general (both), or a free-form tag such as objections or greetings.

Output ONLY one JSON object:
{
  "message": "your reply to the owner",
  "snippet": {"category": "...", "title": "...", "content": "...", "priority": 0} or null
}

Reply in {language}. Be friendly and helpful."""


def saved_message(title: str, content: str) -> str:
    return f"✅ Мэдлэг амжилттай хадгалагдлаа!\n\n📚 **{title}**\n{content}\n\nӨөр юу заах вэ?"


async def run_trainer(
    message: str,
    history: list[ChatTurn],
    project_id: str | None = None,
    intent_classifier: IntentClassifier | None = None,
) -> TrainerChatResponse:
    """
    Answer an operator message and store a snippet when confirmed.

    Args:
        message: Operator's latest message
        history: Prior trainer chat
        project_id: Tenant the snippet applies to; None stores a global default
        intent_classifier: Confirmation detector (defaults to keyword matching)

    Returns:
        Reply text and whether knowledge was added
    """
    settings = get_settings()
    classifier = intent_classifier or default_classifier

    messages = [{"role": "system", "content": SYSTEM_PROMPT.replace("{language}", settings.REPLY_LANGUAGE)}]
    messages += [{"role": turn.role, "content": turn.content} for turn in history]
    messages.append({"role": "user", "content": message})

    raw_output = await complete_chat(
        messages,
        model=settings.TRAINER_MODEL,
        temperature=0.7,
        max_tokens=1000,
        json_mode=True,
    )

    try:
        output = parse_llm_json(raw_output, TrainerOutput)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Trainer output failed validation: {e}")
        return TrainerChatResponse(response=raw_output.strip())

    confirmed = classifier.classify(message) == IntentTag.SAVE_CONFIRMATION
    if output.snippet is None or not confirmed:
        if output.snippet is not None:
            logger.info("Trainer proposed a snippet without confirmation; not saved")
        return TrainerChatResponse(response=output.message)

    snippet = output.snippet
    title = snippet.title or "Шинэ мэдлэг"
    row = insert_snippet(
        content=snippet.content,
        category=snippet.category or "general",
        title=title,
        priority=snippet.priority,
        project_id=project_id,
    )

    return TrainerChatResponse(
        response=saved_message(title, snippet.content),
        knowledge_added=True,
        snippet_id=str(row["id"]) if row.get("id") else None,
    )
