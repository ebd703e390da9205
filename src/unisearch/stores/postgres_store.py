"""PostgreSQL + pgvector implementation of the ContentStore protocol.

Every query is tenant-scoped and fully parameterized; user text only ever
reaches SQL as a bound, LIKE-escaped parameter. Each call opens its own
session so the engine may run queries concurrently.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import ColumnElement, Select, func, literal_column, or_, select
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from unisearch.common.database import get_session_factory
from unisearch.common.errors import RetrievalError
from unisearch.common.models import (
    ContentItem,
    ContentSource,
    TopicCluster,
    TopicClusterMember,
    TranscriptChunk,
    User,
    Video,
)
from unisearch.common.utils import contains_pattern
from unisearch.retrieval.types import (
    Author,
    ContentItemMatch,
    ContentItemWithSource,
    SourceInfo,
    StoreFilters,
    TopicRef,
    VideoMatch,
    VideoWithAuthor,
)

logger = structlog.get_logger()

# Semantic video hits only surface a plain preview of their best chunk.
CHUNK_PREVIEW_CHARS = 500

_CONTENT_COLUMNS = (
    ContentItem.id,
    ContentItem.organization_id,
    ContentItem.source_id,
    ContentItem.type,
    ContentItem.title,
    ContentItem.content,
    ContentItem.author_id,
    ContentItem.author_name,
    ContentItem.created_at_source,
    ContentItem.created_at,
    ContentSource.type.label("source_type"),
    ContentSource.name.label("source_name"),
)


def _video_conditions(filters: StoreFilters) -> list[ColumnElement[bool]]:
    """Conditions over Video (and User, which callers must outer-join)."""
    conditions: list[ColumnElement[bool]] = [Video.organization_id == filters.organization_id]
    if filters.date_from:
        conditions.append(Video.created_at >= filters.date_from)
    if filters.date_to:
        conditions.append(Video.created_at <= filters.date_to)
    if filters.participants:
        people = sorted(filters.participants)
        conditions.append(or_(Video.author_id.in_(people), User.name.in_(people)))
    return conditions


def _content_conditions(filters: StoreFilters) -> list[ColumnElement[bool]]:
    """Conditions over ContentItem (and ContentSource, which callers must join)."""
    conditions: list[ColumnElement[bool]] = [ContentItem.organization_id == filters.organization_id]
    if filters.sources:
        conditions.append(ContentSource.type.in_(sorted(filters.sources)))
    if filters.source_ids:
        conditions.append(ContentItem.source_id.in_(sorted(filters.source_ids)))
    if filters.content_types:
        conditions.append(ContentItem.type.in_(sorted(filters.content_types)))
    if filters.date_from:
        conditions.append(ContentItem.created_at_source >= filters.date_from)
    if filters.date_to:
        conditions.append(ContentItem.created_at_source <= filters.date_to)
    if filters.participants:
        people = sorted(filters.participants)
        conditions.append(or_(ContentItem.author_id.in_(people), ContentItem.author_name.in_(people)))
    if filters.topic_ids:
        members = select(TopicClusterMember.content_item_id).where(
            TopicClusterMember.cluster_id.in_(sorted(filters.topic_ids))
        )
        conditions.append(ContentItem.id.in_(members))
    return conditions


def _video_payload(video: Video, user: User | None) -> VideoWithAuthor:
    return VideoWithAuthor(
        id=video.id,
        organization_id=video.organization_id,
        title=video.title,
        description=video.description,
        transcript=video.transcript,
        thumbnail_url=video.thumbnail_url,
        duration=video.duration,
        created_at=video.created_at,
        author=Author.model_validate(user) if user is not None else None,
    )


def _content_payload(row: Row[Any]) -> ContentItemWithSource:
    return ContentItemWithSource(
        id=row.id,
        organization_id=row.organization_id,
        source_id=row.source_id,
        type=row.type,
        title=row.title,
        content=row.content,
        author_id=row.author_id,
        author_name=row.author_name,
        created_at_source=row.created_at_source,
        created_at=row.created_at,
        source=(
            SourceInfo(id=row.source_id, type=row.source_type, name=row.source_name or "")
            if row.source_type
            else None
        ),
    )


class PostgresContentStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory or get_session_factory()

    async def _fetch(self, operation: str, stmt: Select[Any]) -> Sequence[Row[Any]]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return result.all()
        except SQLAlchemyError as exc:
            logger.exception("content_store_query_failed", operation=operation)
            raise RetrievalError(f"{operation} failed: {exc}", operation=operation) from exc

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------

    async def keyword_videos(self, filters: StoreFilters, query: str, limit: int) -> list[VideoWithAuthor]:
        pattern = contains_pattern(query)
        stmt = (
            select(Video, User)
            .outerjoin(User, Video.author_id == User.id)
            .where(
                *_video_conditions(filters),
                or_(
                    Video.title.ilike(pattern, escape="\\"),
                    Video.description.ilike(pattern, escape="\\"),
                    Video.transcript.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(Video.created_at.desc(), Video.id)
            .limit(limit)
        )
        rows = await self._fetch("keyword_videos", stmt)
        return [_video_payload(video, user) for video, user in rows]

    async def semantic_videos(
        self, filters: StoreFilters, embedding: list[float], threshold: float, limit: int
    ) -> list[VideoMatch]:
        distance = TranscriptChunk.embedding.cosine_distance(embedding)

        # DISTINCT ON keeps the single best chunk per video.
        best = (
            select(
                TranscriptChunk.video_id,
                func.left(TranscriptChunk.text, CHUNK_PREVIEW_CHARS).label("text_preview"),
                distance.label("distance"),
            )
            .join(Video, Video.id == TranscriptChunk.video_id)
            .outerjoin(User, Video.author_id == User.id)
            .where(
                TranscriptChunk.organization_id == filters.organization_id,
                TranscriptChunk.embedding.is_not(None),
                (1 - distance) >= threshold,
                *_video_conditions(filters),
            )
            .distinct(TranscriptChunk.video_id)
            .order_by(TranscriptChunk.video_id, distance.asc())
            .subquery("best_chunks")
        )
        stmt = (
            select(Video, User, best.c.distance, best.c.text_preview)
            .join(best, Video.id == best.c.video_id)
            .outerjoin(User, Video.author_id == User.id)
            .order_by(best.c.distance.asc(), Video.id)
            .limit(limit)
        )
        rows = await self._fetch("semantic_videos", stmt)
        return [
            VideoMatch(
                video=_video_payload(video, user),
                similarity=1.0 - float(dist),
                text_preview=text_preview,
            )
            for video, user, dist, text_preview in rows
        ]

    # ------------------------------------------------------------------
    # Content items
    # ------------------------------------------------------------------

    async def keyword_content_items(
        self, filters: StoreFilters, query: str, limit: int
    ) -> list[ContentItemWithSource]:
        pattern = contains_pattern(query)
        stmt = (
            select(*_CONTENT_COLUMNS)
            .select_from(ContentItem)
            .outerjoin(ContentSource, ContentSource.id == ContentItem.source_id)
            .where(
                *_content_conditions(filters),
                or_(
                    ContentItem.title.ilike(pattern, escape="\\"),
                    ContentItem.content.ilike(pattern, escape="\\"),
                    ContentItem.search_text.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(ContentItem.created_at_source.desc().nulls_last(), ContentItem.id)
            .limit(limit)
        )
        rows = await self._fetch("keyword_content_items", stmt)
        return [_content_payload(row) for row in rows]

    async def semantic_content_items(
        self, filters: StoreFilters, embedding: list[float], threshold: float, limit: int
    ) -> list[ContentItemMatch]:
        similarity = (1 - ContentItem.embedding_vector.cosine_distance(embedding)).label("similarity")
        stmt = (
            select(*_CONTENT_COLUMNS, similarity)
            .select_from(ContentItem)
            .outerjoin(ContentSource, ContentSource.id == ContentItem.source_id)
            .where(
                *_content_conditions(filters),
                ContentItem.embedding_vector.is_not(None),
                similarity >= threshold,
            )
            .order_by(similarity.desc(), ContentItem.id)
            .limit(limit)
        )
        rows = await self._fetch("semantic_content_items", stmt)
        return [ContentItemMatch(item=_content_payload(row), similarity=float(row.similarity)) for row in rows]

    async def primary_topics(self, organization_id: str, item_ids: list[str]) -> dict[str, TopicRef]:
        """Primary (else most similar) topic cluster per content item."""
        if not item_ids:
            return {}
        stmt = (
            select(TopicClusterMember.content_item_id, TopicCluster.id, TopicCluster.name)
            .join(TopicCluster, TopicCluster.id == TopicClusterMember.cluster_id)
            .where(
                TopicCluster.organization_id == organization_id,
                TopicClusterMember.content_item_id.in_(item_ids),
            )
            .order_by(
                TopicClusterMember.content_item_id,
                TopicClusterMember.is_primary.desc(),
                TopicClusterMember.similarity_score.desc(),
            )
        )
        rows = await self._fetch("primary_topics", stmt)
        topics: dict[str, TopicRef] = {}
        for item_id, cluster_id, name in rows:
            topics.setdefault(item_id, TopicRef(id=cluster_id, name=name))
        return topics

    # ------------------------------------------------------------------
    # Facets
    # ------------------------------------------------------------------

    async def count_by_source(self, organization_id: str) -> list[tuple[str, int]]:
        count = func.count().label("count")
        stmt = (
            select(ContentSource.type, count)
            .select_from(ContentItem)
            .join(ContentSource, ContentSource.id == ContentItem.source_id)
            .where(ContentItem.organization_id == organization_id)
            .group_by(ContentSource.type)
            .order_by(count.desc(), ContentSource.type)
        )
        rows = await self._fetch("count_by_source", stmt)
        return [(source, int(n)) for source, n in rows]

    async def count_by_content_type(self, organization_id: str) -> list[tuple[str, int]]:
        count = func.count().label("count")
        stmt = (
            select(ContentItem.type, count)
            .where(ContentItem.organization_id == organization_id)
            .group_by(ContentItem.type)
            .order_by(count.desc(), ContentItem.type)
        )
        rows = await self._fetch("count_by_content_type", stmt)
        return [(type_, int(n)) for type_, n in rows]

    async def top_topics(self, organization_id: str, limit: int) -> list[tuple[str, str, int]]:
        count = func.count().label("count")
        stmt = (
            select(TopicCluster.id, TopicCluster.name, count)
            .select_from(TopicClusterMember)
            .join(TopicCluster, TopicCluster.id == TopicClusterMember.cluster_id)
            .join(ContentItem, ContentItem.id == TopicClusterMember.content_item_id)
            .where(ContentItem.organization_id == organization_id)
            .group_by(TopicCluster.id, TopicCluster.name)
            .order_by(count.desc(), TopicCluster.name)
            .limit(limit)
        )
        rows = await self._fetch("top_topics", stmt)
        return [(cluster_id, name, int(n)) for cluster_id, name, n in rows]

    async def top_participants(
        self, organization_id: str, limit: int
    ) -> list[tuple[str | None, str | None, int]]:
        count = func.count().label("count")
        stmt = (
            select(ContentItem.author_name, ContentItem.author_id, count)
            .where(
                ContentItem.organization_id == organization_id,
                or_(ContentItem.author_name.is_not(None), ContentItem.author_id.is_not(None)),
            )
            .group_by(ContentItem.author_name, ContentItem.author_id)
            .order_by(count.desc(), ContentItem.author_name)
            .limit(limit)
        )
        rows = await self._fetch("top_participants", stmt)
        return [(name, author_id, int(n)) for name, author_id, n in rows]

    async def weekly_histogram(self, organization_id: str, since: datetime) -> list[tuple[datetime, int]]:
        effective = func.coalesce(ContentItem.created_at_source, ContentItem.created_at)
        # Unit is inlined so SELECT and GROUP BY render the same expression.
        week = func.date_trunc(literal_column("'week'"), effective).label("week_start")
        stmt = (
            select(week, func.count().label("count"))
            .where(ContentItem.organization_id == organization_id, effective >= since)
            .group_by(week)
            .order_by(week.desc())
        )
        rows = await self._fetch("weekly_histogram", stmt)
        return [(week_start, int(n)) for week_start, n in rows]

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    async def suggest_titles(self, organization_id: str, text: str, limit: int) -> list[str]:
        """Distinct content-item titles, then video titles, containing ``text``."""
        pattern = contains_pattern(text)
        content_stmt = (
            select(ContentItem.title)
            .where(
                ContentItem.organization_id == organization_id,
                ContentItem.title.is_not(None),
                ContentItem.title.ilike(pattern, escape="\\"),
            )
            .distinct()
            .order_by(ContentItem.title)
            .limit(limit)
        )
        video_stmt = (
            select(Video.title)
            .where(Video.organization_id == organization_id, Video.title.ilike(pattern, escape="\\"))
            .distinct()
            .order_by(Video.title)
            .limit(limit)
        )
        content_rows = await self._fetch("suggest_content_titles", content_stmt)
        video_rows = await self._fetch("suggest_video_titles", video_stmt)
        titles = dict.fromkeys(title for (title,) in [*content_rows, *video_rows] if title)
        return list(titles)[:limit]
