"""Tests for research profile synthesis."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from app.chains.research_synthesizer import (
    ManualEditsPendingError,
    ProjectNotFoundError,
    ResearchSynthesisError,
    build_research_prompt,
    get_research_status,
    has_pending_manual_edits,
    synthesize_research,
    update_research_profile,
)
from app.core.schemas_catalog import BrandProfile, Product, Project
from app.core.schemas_knowledge import AggregatedKnowledge
from app.core.schemas_research import ResearchProfile
from tests.fakes.fake_store import sample_research_profile

PATCH_CHAT = "app.chains.research_synthesizer.complete_chat"


def _model_output(**overrides) -> str:
    return json.dumps(sample_research_profile(**overrides), ensure_ascii=False)


class TestBuildResearchPrompt:
    def test_includes_inactive_products(self) -> None:
        project = Project(id="p", name="Номин Шоп", industry="retail")
        products = [
            Product(id="1", name="Гутал", price=89000, features=["арьс"]),
            Product(id="2", name="Хуучин цүнх", is_active=False),
        ]
        _, user_prompt = build_research_prompt(project, products, None, AggregatedKnowledge())

        assert "Business name: Номин Шоп" in user_prompt
        assert "1. Гутал" in user_prompt
        assert "89,000₮" in user_prompt
        assert "2. Хуучин цүнх (inactive)" in user_prompt

    def test_platform_block_leads_system_prompt(self) -> None:
        project = Project(id="p", name="Shop")
        knowledge = AggregatedKnowledge(blocks=["Always mention free trial"])
        system_prompt, _ = build_research_prompt(project, [], None, knowledge)

        assert system_prompt.startswith("#")
        assert system_prompt.index("Always mention free trial") < system_prompt.index("research analyst")

    def test_brand_section(self) -> None:
        project = Project(id="p", name="Shop")
        brand = BrandProfile(brand_voice="Playful", website_url="https://shop.mn")
        _, user_prompt = build_research_prompt(project, [], brand, AggregatedKnowledge())

        assert "- Voice: Playful" in user_prompt
        assert "- Website: https://shop.mn" in user_prompt


class TestManualEditGuard:
    def test_no_row(self) -> None:
        assert not has_pending_manual_edits(None)

    def test_edit_after_training(self) -> None:
        row = {"last_research_at": "2026-01-01T00:00:00+00:00", "manually_edited_at": "2026-01-02T00:00:00+00:00"}
        assert has_pending_manual_edits(row)

    def test_training_after_edit(self) -> None:
        row = {"last_research_at": "2026-01-03T00:00:00+00:00", "manually_edited_at": "2026-01-02T00:00:00+00:00"}
        assert not has_pending_manual_edits(row)

    def test_naive_edit_timestamp_compared_as_utc(self) -> None:
        row = {"last_research_at": "2026-01-01T00:00:00+00:00", "manually_edited_at": "2026-01-02T00:00:00"}
        assert has_pending_manual_edits(row)

    def test_unparseable_edit_timestamp_ignored(self) -> None:
        row = {"last_research_at": "2026-01-01T00:00:00+00:00", "manually_edited_at": "yesterday"}
        assert not has_pending_manual_edits(row)


class TestSynthesizeResearch:
    @pytest.mark.asyncio
    async def test_persists_valid_profile(self, store) -> None:
        project_id = store.add_project("Online English")
        store.add_product(project_id, "Англи хэл A1", price=150000)
        store.add_snippet("Research rule", category="research")

        with patch(PATCH_CHAT, new=AsyncMock(return_value=_model_output())) as mock_chat:
            profile = await synthesize_research(project_id)

        assert profile.is_digital_product is True
        assert mock_chat.call_args.kwargs["json_mode"] is True
        system_prompt = mock_chat.call_args.args[0][0]["content"]
        assert "Research rule" in system_prompt

        stored = ResearchProfile.model_validate_json(store.research[project_id]["ai_instructions"])
        assert stored == profile
        assert store.research[project_id]["last_research_at"] is not None

    @pytest.mark.asyncio
    async def test_brand_website_overrides_model(self, store) -> None:
        project_id = store.add_project()
        store.brand_profiles[project_id] = {"website_url": "https://real.mn"}

        with patch(PATCH_CHAT, new=AsyncMock(return_value=_model_output(website_url="https://made-up.mn"))):
            profile = await synthesize_research(project_id)

        assert profile.website_url == "https://real.mn"

    @pytest.mark.asyncio
    async def test_incomplete_output_persists_nothing(self, store) -> None:
        project_id = store.add_project()
        incomplete = json.dumps({"business_summary": "Only this"})

        with patch(PATCH_CHAT, new=AsyncMock(return_value=incomplete)):
            with pytest.raises(ResearchSynthesisError):
                await synthesize_research(project_id)

        assert project_id not in store.research

    @pytest.mark.asyncio
    async def test_non_json_output_keeps_previous_profile(self, store) -> None:
        project_id = store.add_project()
        store.train(project_id)
        before = store.research[project_id]["ai_instructions"]

        with patch(PATCH_CHAT, new=AsyncMock(return_value="Sorry, I cannot")):
            with pytest.raises(ResearchSynthesisError):
                await synthesize_research(project_id)

        assert store.research[project_id]["ai_instructions"] == before

    @pytest.mark.asyncio
    async def test_unknown_project(self, store) -> None:
        with patch(PATCH_CHAT, new=AsyncMock()) as mock_chat:
            with pytest.raises(ProjectNotFoundError):
                await synthesize_research("missing")
        mock_chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_manual_edits_block_regeneration(self, store) -> None:
        project_id = store.add_project()
        store.train(project_id)
        store.research[project_id]["last_research_at"] = "2026-01-01T00:00:00+00:00"
        store.research[project_id]["manually_edited_at"] = "2026-01-02T00:00:00+00:00"

        with patch(PATCH_CHAT, new=AsyncMock(return_value=_model_output())) as mock_chat:
            with pytest.raises(ManualEditsPendingError):
                await synthesize_research(project_id)
            mock_chat.assert_not_called()

            await synthesize_research(project_id, confirm_overwrite=True)

        assert store.research[project_id]["manually_edited_at"] is None


class TestProfileEditsAndStatus:
    def test_status_untrained(self, store) -> None:
        project_id = store.add_project()
        assert get_research_status(project_id).ready is False

    def test_manual_update_marks_edit(self, store) -> None:
        project_id = store.add_project()
        store.train(project_id)
        profile = ResearchProfile.model_validate(sample_research_profile(brand_voice="Албан"))

        update_research_profile(project_id, profile)

        status = get_research_status(project_id)
        assert status.ready is True
        assert status.manually_edited_at is not None
        assert "Албан" in store.research[project_id]["ai_instructions"]

    def test_manual_update_unknown_project(self, store) -> None:
        profile = ResearchProfile.model_validate(sample_research_profile())
        with pytest.raises(ProjectNotFoundError):
            update_research_profile("missing", profile)
