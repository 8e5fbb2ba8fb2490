"""Tests for knowledge snippet selection and aggregation."""

from app.core.knowledge import aggregate_knowledge, select_snippets
from app.core.schemas_knowledge import KnowledgePurpose, KnowledgeSnippet


def _snippet(content: str, category: str = "sales", priority: int = 0, **kw) -> KnowledgeSnippet:
    return KnowledgeSnippet(content=content, category=category, priority=priority, **kw)


class TestSelectSnippets:
    """Pure selection: eligibility, ordering, cap."""

    def test_orders_by_descending_priority(self) -> None:
        snippets = [_snippet("low", priority=1), _snippet("high", priority=9), _snippet("mid", priority=5)]
        selected = select_snippets(snippets, KnowledgePurpose.SALES)
        assert [s.content for s in selected] == ["high", "mid", "low"]

    def test_equal_priority_keeps_insertion_order(self) -> None:
        snippets = [_snippet("first"), _snippet("second"), _snippet("third")]
        selected = select_snippets(snippets, KnowledgePurpose.SALES)
        assert [s.content for s in selected] == ["first", "second", "third"]

    def test_inactive_snippets_never_selected(self) -> None:
        snippets = [_snippet("on"), _snippet("off", is_active=False)]
        selected = select_snippets(snippets, KnowledgePurpose.SALES)
        assert [s.content for s in selected] == ["on"]

    def test_sales_purpose_categories(self) -> None:
        snippets = [
            _snippet("sales", category="sales"),
            _snippet("general", category="general"),
            _snippet("research", category="research"),
            _snippet("objections", category="objections"),
        ]
        selected = select_snippets(snippets, KnowledgePurpose.SALES)
        assert [s.content for s in selected] == ["sales", "general"]

    def test_research_purpose_categories(self) -> None:
        snippets = [
            _snippet("sales", category="sales"),
            _snippet("general", category="general"),
            _snippet("research", category="research"),
        ]
        selected = select_snippets(snippets, KnowledgePurpose.RESEARCH)
        assert [s.content for s in selected] == ["general", "research"]

    def test_cap_applies_after_ordering(self) -> None:
        snippets = [_snippet(f"s{i}", priority=i) for i in range(12)]
        selected = select_snippets(snippets, KnowledgePurpose.SALES, limit=5)
        assert [s.content for s in selected] == ["s11", "s10", "s9", "s8", "s7"]

    def test_empty_input_is_valid(self) -> None:
        assert select_snippets([], KnowledgePurpose.SALES) == []


class TestAggregateKnowledge:
    """Loading through the data layer."""

    def test_global_and_own_tenant_only(self, store) -> None:
        project_a = store.add_project("A")
        project_b = store.add_project("B")
        store.add_snippet("global rule")
        store.add_snippet("rule for A", project_id=project_a)
        store.add_snippet("rule for B", project_id=project_b)

        knowledge = aggregate_knowledge(project_a, KnowledgePurpose.SALES)

        assert knowledge.blocks == ["global rule", "rule for A"]

    def test_text_joined_by_blank_line(self, store) -> None:
        project_id = store.add_project()
        store.add_snippet("one", priority=2)
        store.add_snippet("two", priority=1)

        knowledge = aggregate_knowledge(project_id, KnowledgePurpose.SALES)

        assert knowledge.text == "one\n\ntwo"

    def test_empty_aggregate(self, store) -> None:
        project_id = store.add_project()
        store.add_snippet("research only", category="research")

        knowledge = aggregate_knowledge(project_id, KnowledgePurpose.SALES)

        assert knowledge.is_empty
        assert knowledge.text == ""

    def test_comment_cap(self, store) -> None:
        project_id = store.add_project()
        for i in range(8):
            store.add_snippet(f"rule {i}")

        knowledge = aggregate_knowledge(project_id, KnowledgePurpose.SALES, limit=5)

        assert len(knowledge.blocks) == 5
