"""Test health check endpoint."""

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


def test_health_check():
    """Test that /health returns 200 with status ok."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


def test_v1_routes_mounted():
    """Sales, webhook and research routes live under /v1."""
    paths = set(app.openapi()["paths"])
    assert "/v1/sales/chat" in paths
    assert "/v1/sales/widget-chat" in paths
    assert "/v1/webhooks/meta" in paths
    assert "/v1/research/run" in paths
