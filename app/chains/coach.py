"""Business coach: an advisor chat for tenant operators."""

import json
from typing import Any
from uuid import UUID

from app.core.config import get_settings
from app.core.llm import complete_chat
from app.core.logging import get_logger
from app.db.coach_messages import insert_coach_message, list_coach_messages, list_recent_analytics
from app.db.projects import get_project
from app.db.research_profiles import get_research_row

logger = get_logger(__name__)

HISTORY_LIMIT = 20
COACH_FALLBACK = "Уучлаарай, түр алдаа гарлаа."


def build_coach_prompt(
    project: dict[str, Any] | None,
    research: dict[str, Any] | None,
    analytics: list[dict[str, Any]],
    reply_language: str,
) -> str:
    lines = [
        "You are an AI business advisor for the owner of this business.",
        "",
        "## Your role",
        "- Advise on business performance",
        "- Suggest improvements to the AI sales assistant",
        "- Advise on sales strategy and answer questions",
        "",
        "## Business",
        json.dumps({**(project or {}), "research": research}, ensure_ascii=False, indent=2, default=str),
    ]
    if analytics:
        lines += ["", "## Last 7 days", json.dumps(analytics, ensure_ascii=False, indent=2, default=str)]
    lines += [
        "",
        "## Rules",
        f"1. Reply in {reply_language}.",
        "2. Give practical advice that is easy to act on.",
        "3. Ground your analysis in the numbers.",
        "4. Encourage; do not criticize.",
    ]
    return "\n".join(lines)


async def run_coach(project_id: UUID | str, message: str) -> str:
    """
    Answer an operator's message. Both sides are persisted.

    Raises:
        Exception: Model or storage failure
    """
    settings = get_settings()

    project = get_project(project_id)
    research = get_research_row(project_id)
    history = list_coach_messages(project_id)[-HISTORY_LIMIT:]
    analytics = list_recent_analytics(project_id)

    insert_coach_message(project_id, "user", message)

    messages: list[dict[str, Any]] = [
        {"role": "system", "content": build_coach_prompt(project, research, analytics, settings.REPLY_LANGUAGE)}
    ]
    messages += [{"role": m["role"], "content": m["content"]} for m in history]
    messages.append({"role": "user", "content": message})

    reply = await complete_chat(
        messages,
        model=settings.COACH_MODEL,
        temperature=0.7,
        max_tokens=1000,
    )
    reply = reply or COACH_FALLBACK

    insert_coach_message(project_id, "assistant", reply)
    logger.info("Coach replied", extra={"project_id": str(project_id)})
    return reply
