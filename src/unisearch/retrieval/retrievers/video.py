"""Video retrieval: title/description/transcript keyword match + transcript-chunk embeddings."""

from __future__ import annotations

from unisearch.retrieval.fusion import Candidate
from unisearch.retrieval.highlights import preview, video_highlights
from unisearch.retrieval.retrievers.base import BaseRetriever
from unisearch.retrieval.types import (
    ContentItemType,
    Highlights,
    ItemType,
    ResultContext,
    RetrievalPlan,
    SourceType,
    StoreFilters,
)


class VideoRetriever(BaseRetriever):
    item_type = ItemType.VIDEO

    def accepts(self, plan: RetrievalPlan) -> bool:
        if plan.sources is not None and SourceType.VIDEO not in plan.sources:
            return False
        if plan.content_types is not None and ContentItemType.VIDEO not in plan.content_types:
            return False
        # Topic clusters only group imported content items.
        return plan.topic_ids is None

    def build_filters(self, plan: RetrievalPlan) -> StoreFilters:
        return StoreFilters(
            organization_id=plan.organization_id,
            date_from=plan.date_from,
            date_to=plan.date_to,
            participants=plan.participants,
        )

    async def keyword_candidates(self, plan: RetrievalPlan, filters: StoreFilters) -> list[Candidate]:
        videos = await self.store.keyword_videos(filters, plan.query, plan.limit)
        return [
            Candidate(
                item_id=video.id,
                payload=video,
                created_at=video.created_at,
                keyword_score=1.0,
                highlights=(
                    video_highlights(
                        plan.query,
                        video,
                        context_chars=self.config.highlight_context_chars,
                        preview_chars=self.config.preview_chars,
                    )
                    if plan.include_highlights
                    else None
                ),
                context=ResultContext(source_type=SourceType.VIDEO),
            )
            for video in videos
        ]

    async def semantic_candidates(self, plan: RetrievalPlan, filters: StoreFilters) -> list[Candidate]:
        if plan.query_embedding is None:
            return []
        matches = await self.store.semantic_videos(
            filters, plan.query_embedding, plan.semantic_threshold, plan.limit
        )
        return [
            Candidate(
                item_id=match.video.id,
                payload=match.video,
                created_at=match.video.created_at,
                semantic_score=match.similarity,
                highlights=(
                    Highlights(content=preview(match.text_preview, self.config.preview_chars))
                    if plan.include_highlights
                    else None
                ),
                context=ResultContext(source_type=SourceType.VIDEO),
            )
            for match in matches
        ]
