"""ContentStore Protocol: the read-only capabilities the search engine needs.

PostgresContentStore implements it against PostgreSQL + pgvector; tests use an
in-memory implementation. All methods are tenant-scoped and raise
RetrievalError on failure.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from unisearch.retrieval.types import (
    ContentItemMatch,
    ContentItemWithSource,
    StoreFilters,
    TopicRef,
    VideoMatch,
    VideoWithAuthor,
)


@runtime_checkable
class ContentStore(Protocol):
    # Keyword: case-insensitive contains, newest first.
    async def keyword_videos(self, filters: StoreFilters, query: str, limit: int) -> list[VideoWithAuthor]: ...

    async def keyword_content_items(
        self, filters: StoreFilters, query: str, limit: int
    ) -> list[ContentItemWithSource]: ...

    # Semantic: cosine similarity >= threshold, most similar first.
    async def semantic_videos(
        self, filters: StoreFilters, embedding: list[float], threshold: float, limit: int
    ) -> list[VideoMatch]: ...

    async def semantic_content_items(
        self, filters: StoreFilters, embedding: list[float], threshold: float, limit: int
    ) -> list[ContentItemMatch]: ...

    async def primary_topics(self, organization_id: str, item_ids: list[str]) -> dict[str, TopicRef]: ...

    # Facet groupings. Rows are (key, count), (cluster_id, name, count),
    # (author_name, author_id, count) and (week_start, count) newest first.
    async def count_by_source(self, organization_id: str) -> list[tuple[str, int]]: ...

    async def count_by_content_type(self, organization_id: str) -> list[tuple[str, int]]: ...

    async def top_topics(self, organization_id: str, limit: int) -> list[tuple[str, str, int]]: ...

    async def top_participants(self, organization_id: str, limit: int) -> list[tuple[str | None, str | None, int]]: ...

    async def weekly_histogram(self, organization_id: str, since: datetime) -> list[tuple[datetime, int]]: ...

    async def suggest_titles(self, organization_id: str, text: str, limit: int) -> list[str]: ...
