"""Knowledge aggregation: platform-operator snippets flattened for prompt embedding."""

from typing import Any, Iterable
from uuid import UUID

from app.core.logging import get_logger
from app.core.schemas_knowledge import AggregatedKnowledge, KnowledgePurpose, KnowledgeSnippet
from app.db.knowledge import list_active_snippets

logger = get_logger(__name__)

PURPOSE_CATEGORIES: dict[KnowledgePurpose, tuple[str, ...]] = {
    KnowledgePurpose.SALES: ("sales", "general"),
    KnowledgePurpose.RESEARCH: ("research", "general"),
}

DEFAULT_LIMIT = 10


def select_snippets(
    snippets: Iterable[KnowledgeSnippet],
    purpose: KnowledgePurpose,
    limit: int = DEFAULT_LIMIT,
) -> list[KnowledgeSnippet]:
    """
    Pick the snippets a consumer sees, in prompt order.

    Only active snippets in the purpose's categories are eligible. Order is
    descending priority; equal priorities keep their input (insertion) order.
    The first ``limit`` survive.
    """
    categories = PURPOSE_CATEGORIES[purpose]
    eligible = [
        s for s in snippets
        if s.is_active and s.category in categories and s.content.strip()
    ]
    # sorted() is stable, so ties stay in insertion order
    ordered = sorted(eligible, key=lambda s: -s.priority)
    return ordered[: max(limit, 0)]


def aggregate_knowledge(
    project_id: UUID | str | None,
    purpose: KnowledgePurpose,
    limit: int = DEFAULT_LIMIT,
) -> AggregatedKnowledge:
    """
    Load and flatten the knowledge visible to a project for one purpose.

    An empty result is valid and means "no supplemental instructions".

    Args:
        project_id: Tenant whose scoped snippets join the global defaults
        purpose: sales (chat turns) or research (synthesizer runs)
        limit: Snippet cap (10 for chat paths, 5 for comment replies)

    Returns:
        AggregatedKnowledge whose ``text`` joins bodies with blank lines
    """
    rows: list[dict[str, Any]] = list_active_snippets(
        project_id, list(PURPOSE_CATEGORIES[purpose])
    )
    snippets = [KnowledgeSnippet.model_validate(row) for row in rows]
    selected = select_snippets(snippets, purpose, limit)

    logger.debug(
        f"Aggregated {len(selected)}/{len(snippets)} knowledge snippets for {purpose.value}",
        extra={"project_id": str(project_id) if project_id else "global"},
    )
    return AggregatedKnowledge(blocks=[s.content.strip() for s in selected])
