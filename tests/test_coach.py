"""Tests for the business coach and the admin knowledge chat endpoint."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.chains.coach import COACH_FALLBACK, HISTORY_LIMIT, build_coach_prompt, run_coach
from app.main import app

client = TestClient(app)


def test_prompt_includes_analytics_only_when_present():
    prompt = build_coach_prompt({"name": "Shop"}, None, [], "Mongolian")
    assert "## Last 7 days" not in prompt
    assert "Reply in Mongolian" in prompt

    prompt = build_coach_prompt({"name": "Shop"}, None, [{"date": "2026-03-01", "orders": 4}], "English")
    assert "## Last 7 days" in prompt
    assert '"orders": 4' in prompt


@pytest.mark.asyncio
async def test_run_coach_persists_both_sides(store):
    project_id = store.add_project("Shop")
    with patch("app.chains.coach.complete_chat", new=AsyncMock(return_value="Хямдрал зарлаарай")):
        reply = await run_coach(project_id, "Борлуулалт яаж өсгөх вэ?")

    assert reply == "Хямдрал зарлаарай"
    assert [(m["role"], m["content"]) for m in store.coach_messages] == [
        ("user", "Борлуулалт яаж өсгөх вэ?"),
        ("assistant", "Хямдрал зарлаарай"),
    ]


@pytest.mark.asyncio
async def test_run_coach_replays_latest_history(store):
    project_id = store.add_project("Shop")
    for i in range(HISTORY_LIMIT + 5):
        store.insert_coach_message(project_id, "user" if i % 2 == 0 else "assistant", f"m{i}")

    with patch("app.chains.coach.complete_chat", new=AsyncMock(return_value="")) as mock_chat:
        reply = await run_coach(project_id, "Сүүлийн асуулт")

    assert reply == COACH_FALLBACK
    messages = mock_chat.call_args.args[0]
    assert len(messages) == HISTORY_LIMIT + 2
    assert messages[1]["content"] == "m5"
    assert messages[-1]["content"] == "Сүүлийн асуулт"


def test_coach_endpoints(store):
    project_id = store.add_project("Shop")
    with patch("app.chains.coach.complete_chat", new=AsyncMock(return_value="Сайн зөвлөгөө")):
        response = client.post("/v1/coach/chat", json={"project_id": project_id, "message": "Юу хийх вэ?"})

    assert response.json() == {"success": True, "response": "Сайн зөвлөгөө"}
    history = client.get("/v1/coach/messages", params={"project_id": project_id}).json()
    assert [m["role"] for m in history] == ["user", "assistant"]


def test_coach_requires_message(store):
    assert client.post("/v1/coach/chat", json={"project_id": "p"}).status_code == 400


def test_admin_knowledge_chat(store):
    raw = json.dumps({"message": "Хадгалах уу?", "snippet": {"content": "Always offer a trial"}})
    with patch("app.chains.knowledge_trainer.complete_chat", new=AsyncMock(return_value=raw)):
        response = client.post("/v1/admin/knowledge/chat", json={"message": "yes"})

    data = response.json()
    assert data["knowledge_added"] is True
    assert store.snippets[0]["content"] == "Always offer a trial"
