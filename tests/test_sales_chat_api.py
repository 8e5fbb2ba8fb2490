"""Tests for the /sales chat and widget endpoints."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.main import app

PATCH_CHAT = "app.chains.sales_agent.complete_chat"

client = TestClient(app)


@pytest.fixture
def trained(store):
    project_id = store.add_project("Shop")
    store.train(project_id)
    return project_id


def _reply(message: str, **extra) -> str:
    return json.dumps({"message": message, **extra}, ensure_ascii=False)


class TestSalesChat:
    def test_missing_fields(self, store) -> None:
        response = client.post("/v1/sales/chat", json={"message": "hi"})
        assert response.status_code == 400

    def test_not_trained(self, store) -> None:
        project_id = store.add_project()
        response = client.post("/v1/sales/chat", json={"project_id": project_id, "message": "Сайн уу"})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "NO_RESEARCH"

    def test_successful_turn(self, store, trained) -> None:
        with patch(PATCH_CHAT, new=AsyncMock(return_value=_reply("Сайн байна уу!"))):
            response = client.post("/v1/sales/chat", json={"project_id": trained, "message": "Сайн уу"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["response"] == "Сайн байна уу!"
        assert data["images"] == []
        assert data["conversation_id"] in store.conversations

    def test_conversation_continued_by_id(self, store, trained) -> None:
        with patch(PATCH_CHAT, new=AsyncMock(return_value=_reply("Сайн байна уу!"))):
            first = client.post("/v1/sales/chat", json={"project_id": trained, "message": "Сайн уу"}).json()

        with patch(PATCH_CHAT, new=AsyncMock(return_value=_reply("150,000₮"))) as mock_chat:
            second = client.post(
                "/v1/sales/chat",
                json={"project_id": trained, "message": "Үнэ?", "conversation_id": first["conversation_id"]},
            ).json()

        assert second["conversation_id"] == first["conversation_id"]
        assert len(mock_chat.call_args.args[0]) == 4

    def test_unknown_customer(self, store, trained) -> None:
        response = client.post(
            "/v1/sales/chat",
            json={"project_id": trained, "message": "Сайн уу", "customer_id": "nobody"},
        )
        assert response.status_code == 404

    def test_model_error_is_500(self, store, trained) -> None:
        with patch(PATCH_CHAT, new=AsyncMock(side_effect=RuntimeError("timeout"))):
            response = client.post("/v1/sales/chat", json={"project_id": trained, "message": "Сайн уу"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Chat failed"

    def test_ai_disabled_conflict(self, store, trained) -> None:
        customer = store.create_customer(trained, "api", "cust-key")
        conversation = store.create_conversation(trained, customer["id"], "api")
        store.conversations[conversation["id"]]["ai_enabled"] = False

        response = client.post(
            "/v1/sales/chat",
            json={"project_id": trained, "message": "Hello?", "conversation_id": conversation["id"]},
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "AI_DISABLED"
        assert store.conversations[conversation["id"]]["messages"][0]["content"] == "Hello?"


class TestWidgetChat:
    def test_preflight_cors(self) -> None:
        response = client.options("/v1/sales/widget-chat")

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]

    def test_inactive_project(self, store) -> None:
        project_id = store.add_project(status="paused")
        response = client.post("/v1/sales/widget-chat", json={"project_id": project_id, "message": "hi"})
        assert response.status_code == 404

    def test_unknown_project(self, store) -> None:
        response = client.post("/v1/sales/widget-chat", json={"project_id": "missing", "message": "hi"})
        assert response.status_code == 404

    def test_new_session_issued_and_reused(self, store, trained) -> None:
        with patch(PATCH_CHAT, new=AsyncMock(return_value=_reply("Сайн байна уу!"))):
            first = client.post("/v1/sales/widget-chat", json={"project_id": trained, "message": "Сайн уу"})

        assert first.status_code == 200
        assert first.headers["access-control-allow-origin"] == "*"
        session_id = first.json()["session_id"]
        assert session_id.startswith("web_")

        with patch(PATCH_CHAT, new=AsyncMock(return_value=_reply("Тийм"))) as mock_chat:
            second = client.post(
                "/v1/sales/widget-chat",
                json={"project_id": trained, "message": "Байгаа юу?", "session_id": session_id},
            )

        assert second.json()["session_id"] == session_id
        assert len(mock_chat.call_args.args[0]) == 4
        assert len(store.conversations) == 1

    def test_visitor_name_defaults(self, store, trained) -> None:
        with patch(PATCH_CHAT, new=AsyncMock(return_value=_reply("Сайн байна уу!"))):
            client.post("/v1/sales/widget-chat", json={"project_id": trained, "message": "Сайн уу"})
            client.post(
                "/v1/sales/widget-chat",
                json={"project_id": trained, "message": "Сайн уу", "visitor_info": {"name": "Дулмаа"}},
            )

        names = sorted(c["name"] for c in store.customers.values())
        assert names == ["Web Visitor", "Дулмаа"]

    def test_not_trained(self, store) -> None:
        project_id = store.add_project()
        response = client.post("/v1/sales/widget-chat", json={"project_id": project_id, "message": "hi"})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "NO_RESEARCH"
