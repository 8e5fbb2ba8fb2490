"""Pytest configuration and fixtures."""

import os

import pytest

from tests.fakes.fake_store import FakeStore


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["OPENAI_API_KEY"] = "test-openai-key"
    os.environ["SALES_ENGINE_ENV"] = "test"
    os.environ["META_WEBHOOK_VERIFY_TOKEN"] = "test-verify-token"


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings so per-test env overrides apply."""
    from app.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store(monkeypatch) -> FakeStore:
    """In-memory data layer patched into every service module."""
    return FakeStore().install(monkeypatch)
