"""Content-item retrieval over imported third-party content (Slack, Notion, GitHub, ...)."""

from __future__ import annotations

from unisearch.retrieval.fusion import Candidate
from unisearch.retrieval.highlights import content_highlights, preview
from unisearch.retrieval.retrievers.base import BaseRetriever
from unisearch.retrieval.types import (
    ContentItemWithSource,
    Highlights,
    ItemType,
    ResultContext,
    RetrievalPlan,
    SourceType,
    StoreFilters,
)


def _non_video_sources(plan: RetrievalPlan) -> frozenset[str] | None:
    if plan.sources is None:
        return None
    return frozenset(str(s) for s in plan.sources if s != SourceType.VIDEO)


def _context(item: ContentItemWithSource) -> ResultContext:
    return ResultContext(source_type=item.source.type if item.source else None)


class ContentItemRetriever(BaseRetriever):
    item_type = ItemType.CONTENT_ITEM

    def accepts(self, plan: RetrievalPlan) -> bool:
        # A source filter naming only "video" leaves no content sources to search.
        sources = _non_video_sources(plan)
        return sources is None or bool(sources)

    def build_filters(self, plan: RetrievalPlan) -> StoreFilters:
        return StoreFilters(
            organization_id=plan.organization_id,
            sources=_non_video_sources(plan),
            source_ids=plan.source_ids,
            content_types=frozenset(str(t) for t in plan.content_types) if plan.content_types else None,
            date_from=plan.date_from,
            date_to=plan.date_to,
            participants=plan.participants,
            topic_ids=plan.topic_ids,
        )

    async def keyword_candidates(self, plan: RetrievalPlan, filters: StoreFilters) -> list[Candidate]:
        items = await self.store.keyword_content_items(filters, plan.query, plan.limit)
        return [
            Candidate(
                item_id=item.id,
                payload=item,
                created_at=item.effective_created_at,
                keyword_score=1.0,
                highlights=(
                    content_highlights(
                        plan.query,
                        item.title,
                        item.content,
                        context_chars=self.config.highlight_context_chars,
                        preview_chars=self.config.preview_chars,
                    )
                    if plan.include_highlights
                    else None
                ),
                context=_context(item),
            )
            for item in items
        ]

    async def semantic_candidates(self, plan: RetrievalPlan, filters: StoreFilters) -> list[Candidate]:
        if plan.query_embedding is None:
            return []
        matches = await self.store.semantic_content_items(
            filters, plan.query_embedding, plan.semantic_threshold, plan.limit
        )
        return [
            Candidate(
                item_id=match.item.id,
                payload=match.item,
                created_at=match.item.effective_created_at,
                semantic_score=match.similarity,
                highlights=(
                    Highlights(content=preview(match.item.content, self.config.preview_chars))
                    if plan.include_highlights
                    else None
                ),
                context=_context(match.item),
            )
            for match in matches
        ]

    async def enrich(self, plan: RetrievalPlan, candidates: list[Candidate]) -> None:
        topics = await self.store.primary_topics(plan.organization_id, [c.item_id for c in candidates])
        for cand in candidates:
            topic = topics.get(cand.item_id)
            if topic is not None:
                cand.context = cand.context.model_copy(update={"topic_cluster": topic})
