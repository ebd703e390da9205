"""Abstract base class for per-family retrieval strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from unisearch.common.concurrency import gather_all, resolved
from unisearch.retrieval.fusion import Candidate, FusionWeights, merge_candidates, score_candidate
from unisearch.retrieval.search_config import SearchConfig
from unisearch.retrieval.store_protocol import ContentStore
from unisearch.retrieval.types import ItemType, RetrievalPlan, SearchResultItem, StoreFilters

logger = structlog.get_logger()


class BaseRetriever(ABC):
    """Keyword + semantic retrieval over one item family, merged into scored results.

    Subclasses supply the store calls and the candidate construction; the
    keyword/semantic scheduling, threshold enforcement and fusion live here.
    """

    item_type: ItemType

    def __init__(self, store: ContentStore, config: SearchConfig | None = None) -> None:
        self.store = store
        self.config = config or SearchConfig()

    @abstractmethod
    def accepts(self, plan: RetrievalPlan) -> bool:
        """Whether the request's filters leave anything for this family to match."""
        ...

    @abstractmethod
    def build_filters(self, plan: RetrievalPlan) -> StoreFilters: ...

    @abstractmethod
    async def keyword_candidates(self, plan: RetrievalPlan, filters: StoreFilters) -> list[Candidate]:
        """Substring matches, each with keyword_score = 1, newest first."""
        ...

    @abstractmethod
    async def semantic_candidates(self, plan: RetrievalPlan, filters: StoreFilters) -> list[Candidate]:
        """Embedding matches with semantic_score = similarity, most similar first."""
        ...

    async def enrich(self, plan: RetrievalPlan, candidates: list[Candidate]) -> None:
        """Hook for attaching extra context after the merge."""
        return None

    async def retrieve(self, plan: RetrievalPlan) -> list[SearchResultItem]:
        """Run the strategies the plan enables and return merged, scored (unsorted) results."""
        filters = self.build_filters(plan)

        keyword, semantic = await gather_all(
            self.keyword_candidates(plan, filters) if plan.run_keyword else resolved([]),
            self.semantic_candidates(plan, filters) if plan.run_semantic else resolved([]),
        )
        semantic = [c for c in semantic if c.semantic_score >= plan.semantic_threshold]

        merged = merge_candidates(keyword, semantic)
        if merged:
            await self.enrich(plan, merged)

        weights = FusionWeights(
            semantic_weight=plan.semantic_weight,
            recency_window_days=self.config.recency_window_days,
            recency_max_boost=self.config.recency_max_boost,
        )
        results = [score_candidate(c, weights, plan.now) for c in merged]

        logger.info(
            "family_retrieval",
            item_type=str(self.item_type),
            organization_id=plan.organization_id,
            keyword_hits=len(keyword),
            semantic_hits=len(semantic),
            merged=len(results),
        )
        return results
