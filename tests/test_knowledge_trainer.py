"""Tests for the knowledge trainer chat."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from app.chains.knowledge_trainer import run_trainer
from app.core.schemas_coach import ChatTurn

PATCH_CHAT = "app.chains.knowledge_trainer.complete_chat"

PROPOSAL = json.dumps(
    {
        "message": "Энэ мэдлэгийг хадгалах уу?",
        "snippet": {
            "category": "sales",
            "title": "CTA",
            "content": 'Төлбөрийн үед "утасны дугаараа үлдээгээрэй" гэж хэл.',
            "priority": 5,
        },
    },
    ensure_ascii=False,
)


@pytest.mark.asyncio
async def test_proposal_not_saved_without_confirmation(store) -> None:
    with patch(PATCH_CHAT, new=AsyncMock(return_value=PROPOSAL)):
        result = await run_trainer("Төлбөрийн үед дугаар асуудаг болго", [])

    assert result.response == "Энэ мэдлэгийг хадгалах уу?"
    assert result.knowledge_added is False
    assert store.snippets == []


@pytest.mark.asyncio
async def test_confirmation_saves_snippet(store) -> None:
    history = [
        ChatTurn(role="user", content="Төлбөрийн үед дугаар асуудаг болго"),
        ChatTurn(role="assistant", content="Энэ мэдлэгийг хадгалах уу?"),
    ]
    with patch(PATCH_CHAT, new=AsyncMock(return_value=PROPOSAL)) as mock_chat:
        result = await run_trainer("Тийм, хадгал", history)

    assert result.knowledge_added is True
    assert result.snippet_id == store.snippets[0]["id"]
    assert "CTA" in result.response
    snippet = store.snippets[0]
    assert snippet["category"] == "sales"
    assert snippet["priority"] == 5
    assert snippet["project_id"] is None

    messages = mock_chat.call_args.args[0]
    assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
    assert "{language}" not in messages[0]["content"]


@pytest.mark.asyncio
async def test_tenant_scoped_snippet(store) -> None:
    with patch(PATCH_CHAT, new=AsyncMock(return_value=PROPOSAL)):
        await run_trainer("yes", [], project_id="project-1")

    assert store.snippets[0]["project_id"] == "project-1"


@pytest.mark.asyncio
async def test_untitled_snippet_gets_default_title(store) -> None:
    raw = json.dumps({"message": "ok", "snippet": {"content": "Always smile"}})
    with patch(PATCH_CHAT, new=AsyncMock(return_value=raw)):
        result = await run_trainer("ok", [])

    assert store.snippets[0]["title"] == "Шинэ мэдлэг"
    assert store.snippets[0]["category"] == "general"
    assert result.knowledge_added is True


@pytest.mark.asyncio
async def test_unparseable_output_returned_as_text(store) -> None:
    with patch(PATCH_CHAT, new=AsyncMock(return_value="  Plain text answer  ")):
        result = await run_trainer("yes", [])

    assert result.response == "Plain text answer"
    assert result.knowledge_added is False
    assert store.snippets == []
