"""Unified search across videos and imported content items.

Combines keyword matching and embedding similarity per item family, merges
both families into one ranked list, paginates it and optionally attaches
corpus facets. Embedding failures degrade the request to keyword-only;
store failures fail the request.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

import pydantic
import structlog

from unisearch.common.concurrency import gather_all, resolved
from unisearch.common.errors import FacetError, SearchTimeoutError, SearchValidationError
from unisearch.common.logging import search_context
from unisearch.common.utils import utcnow
from unisearch.embedders.base import BaseEmbedder
from unisearch.retrieval.facets import FacetAggregator
from unisearch.retrieval.fusion import rank
from unisearch.retrieval.retrievers.base import BaseRetriever
from unisearch.retrieval.retrievers.content import ContentItemRetriever
from unisearch.retrieval.retrievers.video import VideoRetriever
from unisearch.retrieval.search_config import SearchConfig
from unisearch.retrieval.store_protocol import ContentStore
from unisearch.retrieval.types import (
    ContentItemResult,
    ContentItemWithSource,
    RetrievalPlan,
    SearchFacets,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
    SearchSuggestion,
)

logger = structlog.get_logger()


def coerce_request(request: SearchRequest | Mapping[str, Any]) -> SearchRequest:
    """Validate raw request data, translating pydantic errors into SearchValidationError."""
    if isinstance(request, SearchRequest):
        return request
    try:
        return SearchRequest.model_validate(request)
    except pydantic.ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise SearchValidationError(f"Invalid search request: {first['msg']}", field=field) from exc


def _require(value: str | None, field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise SearchValidationError(f"{field} is required", field=field)
    return value


class UnifiedSearchService:
    def __init__(
        self,
        store: ContentStore,
        embedder: BaseEmbedder | None,
        config: SearchConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.config = config or SearchConfig()
        self._clock = clock or utcnow
        self.video_retriever = VideoRetriever(store, self.config)
        self.content_retriever = ContentItemRetriever(store, self.config)
        self.facet_aggregator = FacetAggregator(
            store,
            top_n=self.config.facet_top_n,
            histogram_weeks=self.config.histogram_weeks,
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def search(self, request: SearchRequest | Mapping[str, Any]) -> SearchResponse:
        """Hybrid search across both families.

        Raises:
            SearchValidationError: The request is malformed.
            RetrievalError: A store query failed.
            FacetError: Facets failed and the facet policy is "raise".
            SearchTimeoutError: The configured deadline elapsed.
        """
        req = coerce_request(request)
        start = time.perf_counter()
        now = self._clock()

        with search_context(organization_id=req.organization_id, operation="search"):
            ranked, facets = await self._with_deadline(
                "search",
                gather_all(
                    self._ranked_results(req, now),
                    self._facets_or_none(req, now) if req.include_facets else resolved(None),
                ),
            )

            page = ranked[req.offset : req.offset + req.limit]
            # Approximate: size of the oversampled candidate pool, not the corpus count.
            total_count = len(ranked)
            search_time_ms = (time.perf_counter() - start) * 1000

            logger.info(
                "unified_search",
                query_length=len(req.query),
                mode=str(req.mode),
                results=len(page),
                total_count=total_count,
                facets=facets is not None,
                latency_ms=round(search_time_ms, 1),
            )

        return SearchResponse(
            results=page,
            facets=facets,
            total_count=total_count,
            has_more=total_count > req.offset + req.limit,
            search_time_ms=search_time_ms,
        )

    async def search_content_items(
        self, request: SearchRequest | Mapping[str, Any]
    ) -> list[ContentItemWithSource]:
        """Content items only: single-family merge, ranked, then offset/limit applied."""
        req = coerce_request(request)
        now = self._clock()

        async def _run() -> list[SearchResultItem]:
            embedding = await self._embed_query(req)
            plan = self._plan(req, embedding, limit=req.offset + req.limit, now=now)
            if not self.content_retriever.accepts(plan):
                return []
            return rank(await self.content_retriever.retrieve(plan))

        with search_context(organization_id=req.organization_id, operation="search_content_items"):
            ranked = await self._with_deadline("search_content_items", _run())
        page = ranked[req.offset : req.offset + req.limit]
        return [r.content_item for r in page if isinstance(r, ContentItemResult)]

    async def get_facets(self, organization_id: str, query: str | None = None) -> SearchFacets:
        """Facets for the organization. Failures propagate as FacetError."""
        organization_id = _require(organization_id, "organization_id")
        return await self._with_deadline(
            "get_facets",
            self.facet_aggregator.compute(organization_id, query, now=self._clock()),
        )

    async def get_suggestions(
        self,
        prefix: str,
        organization_id: str,
        limit: int = 10,
    ) -> list[SearchSuggestion]:
        """Autocomplete from titles containing ``prefix``."""
        prefix = _require(prefix, "prefix")
        organization_id = _require(organization_id, "organization_id")
        if limit < 1:
            raise SearchValidationError("limit must be >= 1", field="limit")

        titles = await self._with_deadline(
            "get_suggestions",
            self.store.suggest_titles(organization_id, prefix, limit),
        )
        suggestions = [SearchSuggestion(text=t, type="autocomplete") for t in dict.fromkeys(titles) if t]
        return suggestions[:limit]

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _ranked_results(self, req: SearchRequest, now: datetime) -> list[SearchResultItem]:
        embedding = await self._embed_query(req)
        candidates = req.limit * self.config.oversample_factor
        plan = self._plan(req, embedding, limit=candidates, now=now)

        retrievers: list[BaseRetriever] = []
        if req.include_videos and self.video_retriever.accepts(plan):
            retrievers.append(self.video_retriever)
        if req.include_content_items and self.content_retriever.accepts(plan):
            retrievers.append(self.content_retriever)

        family_results = await gather_all(*(r.retrieve(plan) for r in retrievers))
        # Videos first: the stable sort falls back to this order on equal scores.
        merged = [item for results in family_results for item in results]
        return rank(merged)

    async def _embed_query(self, req: SearchRequest) -> list[float] | None:
        """Query vector for semantic retrieval, or None when unavailable (never raises)."""
        if not req.mode.uses_semantic:
            return None
        if self.embedder is None:
            logger.info("semantic_search_disabled", reason="no_embedder")
            return None
        try:
            return await self.embedder.embed_query(req.query)
        except Exception:
            logger.warning(
                "query_embedding_failed",
                organization_id=req.organization_id,
                query_length=len(req.query),
                mode=str(req.mode),
                exc_info=True,
            )
            return None

    async def _facets_or_none(self, req: SearchRequest, now: datetime) -> SearchFacets | None:
        try:
            return await self.facet_aggregator.compute(req.organization_id, req.query, now=now)
        except FacetError:
            if self.config.facet_failure_policy == "raise":
                raise
            logger.warning("facets_dropped", organization_id=req.organization_id)
            return None

    def _plan(
        self,
        req: SearchRequest,
        embedding: list[float] | None,
        limit: int,
        now: datetime,
    ) -> RetrievalPlan:
        semantic_weight = (
            req.semantic_weight if req.semantic_weight is not None else self.config.semantic_weight
        )
        threshold = (
            req.semantic_threshold if req.semantic_threshold is not None else self.config.semantic_threshold
        )
        return RetrievalPlan(
            query=req.query,
            organization_id=req.organization_id,
            mode=req.mode,
            keyword_weight=1.0 - semantic_weight,
            semantic_weight=semantic_weight,
            semantic_threshold=threshold,
            query_embedding=embedding,
            include_highlights=req.include_highlights,
            limit=limit,
            now=now,
            sources=req.sources,
            source_ids=req.source_ids,
            content_types=req.content_types,
            date_from=req.date_range.date_from if req.date_range else None,
            date_to=req.date_range.date_to if req.date_range else None,
            participants=req.participants,
            topic_ids=req.topic_ids,
        )

    async def _with_deadline(self, operation: str, aw: Any) -> Any:
        """Await ``aw`` under the configured timeout; on expiry nothing partial is returned."""
        deadline = asyncio.timeout(self.config.timeout_seconds)
        try:
            async with deadline:
                return await aw
        except TimeoutError as exc:
            if not deadline.expired():
                raise
            logger.warning("search_timeout", operation=operation, timeout_seconds=self.config.timeout_seconds)
            raise SearchTimeoutError(
                f"{operation} exceeded {self.config.timeout_seconds}s",
                timeout_seconds=self.config.timeout_seconds,
            ) from exc
