"""Shared test fixtures for the unisearch test suite."""

import asyncio
import math
from collections import Counter
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from unisearch.embedders.base import BaseEmbedder
from unisearch.retrieval.facets import week_start
from unisearch.retrieval.search_config import SearchConfig
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

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
QUERY_VECTOR = [1.0, 0.0]


def vector_with_similarity(similarity: float) -> list[float]:
    """Unit vector whose cosine similarity to QUERY_VECTOR is ``similarity``."""
    return [similarity, math.sqrt(max(0.0, 1.0 - similarity**2))]


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle.lower() in haystack.lower()


class FakeEmbedder(BaseEmbedder):
    """Returns QUERY_VECTOR for every text."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(texts)
        return [list(QUERY_VECTOR) for _ in texts]

    @property
    def dimensions(self) -> int:
        return len(QUERY_VECTOR)

    @property
    def model_name(self) -> str:
        return "fake-embedding"


class FailingEmbedder(FakeEmbedder):
    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        raise ConnectionError("embedding provider unavailable")


class FakeContentStore:
    """In-memory ContentStore with the same filter and ordering semantics as PostgresContentStore."""

    def __init__(self) -> None:
        self.videos: list[VideoWithAuthor] = []
        self.chunks: dict[str, list[tuple[str, list[float]]]] = {}
        self.items: list[ContentItemWithSource] = []
        self.item_embeddings: dict[str, list[float]] = {}
        self.search_text: dict[str, str] = {}
        self.clusters: dict[str, TopicRef] = {}
        self.members: list[tuple[str, str, bool, float]] = []
        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}

    # -- corpus builders ------------------------------------------------

    def add_video(
        self,
        video_id: str,
        title: str,
        created_at: datetime,
        organization_id: str = "org1",
        description: str | None = None,
        transcript: str | None = None,
        author: Author | None = None,
        chunks: list[tuple[str, float]] | None = None,
    ) -> VideoWithAuthor:
        video = VideoWithAuthor(
            id=video_id,
            organization_id=organization_id,
            title=title,
            description=description,
            transcript=transcript,
            created_at=created_at,
            author=author,
        )
        self.videos.append(video)
        self.chunks[video_id] = [(text, vector_with_similarity(sim)) for text, sim in chunks or []]
        return video

    def add_item(
        self,
        item_id: str,
        source_type: str,
        created_at_source: datetime | None,
        title: str | None = None,
        content: str | None = None,
        organization_id: str = "org1",
        item_type: str = "message",
        source_id: str | None = None,
        author_id: str | None = None,
        author_name: str | None = None,
        similarity: float | None = None,
        created_at: datetime | None = None,
    ) -> ContentItemWithSource:
        source_id = source_id or f"src-{source_type}"
        item = ContentItemWithSource(
            id=item_id,
            organization_id=organization_id,
            source_id=source_id,
            type=item_type,
            title=title,
            content=content,
            author_id=author_id,
            author_name=author_name,
            created_at_source=created_at_source,
            created_at=created_at or created_at_source or NOW,
            source=SourceInfo(id=source_id, type=source_type, name=source_type.title()),
        )
        self.items.append(item)
        if similarity is not None:
            self.item_embeddings[item_id] = vector_with_similarity(similarity)
        return item

    def add_topic(self, cluster_id: str, name: str, item_ids: list[str], primary: bool = True) -> None:
        self.clusters[cluster_id] = TopicRef(id=cluster_id, name=name)
        for item_id in item_ids:
            self.members.append((cluster_id, item_id, primary, 0.9))

    # -- helpers --------------------------------------------------------

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.delays:
            await asyncio.sleep(self.delays[operation])
        if operation in self.failures:
            raise self.failures[operation]

    def _org_items(self, organization_id: str) -> list[ContentItemWithSource]:
        return [i for i in self.items if i.organization_id == organization_id]

    def _video_matches(self, video: VideoWithAuthor, f: StoreFilters) -> bool:
        if video.organization_id != f.organization_id:
            return False
        if f.date_from and video.created_at < f.date_from:
            return False
        if f.date_to and video.created_at > f.date_to:
            return False
        if f.participants:
            author = video.author
            if author is None or (author.id not in f.participants and author.name not in f.participants):
                return False
        return True

    def _item_matches(self, item: ContentItemWithSource, f: StoreFilters) -> bool:
        if item.organization_id != f.organization_id:
            return False
        if f.sources and (item.source is None or str(item.source.type) not in f.sources):
            return False
        if f.source_ids and item.source_id not in f.source_ids:
            return False
        if f.content_types and str(item.type) not in f.content_types:
            return False
        if f.date_from and (item.created_at_source is None or item.created_at_source < f.date_from):
            return False
        if f.date_to and (item.created_at_source is None or item.created_at_source > f.date_to):
            return False
        if f.participants and item.author_id not in f.participants and item.author_name not in f.participants:
            return False
        if f.topic_ids:
            members = {m[1] for m in self.members if m[0] in f.topic_ids}
            if item.id not in members:
                return False
        return True

    # -- ContentStore ---------------------------------------------------

    async def keyword_videos(self, filters: StoreFilters, query: str, limit: int) -> list[VideoWithAuthor]:
        await self._enter("keyword_videos")
        hits = [
            v
            for v in self.videos
            if self._video_matches(v, filters)
            and (_contains(v.title, query) or _contains(v.description, query) or _contains(v.transcript, query))
        ]
        return sorted(hits, key=lambda v: v.created_at, reverse=True)[:limit]

    async def semantic_videos(
        self, filters: StoreFilters, embedding: list[float], threshold: float, limit: int
    ) -> list[VideoMatch]:
        await self._enter("semantic_videos")
        matches = []
        for video in self.videos:
            if not self._video_matches(video, filters):
                continue
            scored = [(_cosine(vec, embedding), text) for text, vec in self.chunks.get(video.id, [])]
            scored = [s for s in scored if s[0] >= threshold]
            if scored:
                sim, text = max(scored, key=lambda s: s[0])
                matches.append(VideoMatch(video=video, similarity=sim, text_preview=text))
        return sorted(matches, key=lambda m: m.similarity, reverse=True)[:limit]

    async def keyword_content_items(
        self, filters: StoreFilters, query: str, limit: int
    ) -> list[ContentItemWithSource]:
        await self._enter("keyword_content_items")
        hits = [
            i
            for i in self.items
            if self._item_matches(i, filters)
            and (
                _contains(i.title, query)
                or _contains(i.content, query)
                or _contains(self.search_text.get(i.id), query)
            )
        ]
        dated = sorted((i for i in hits if i.created_at_source), key=lambda i: i.created_at_source, reverse=True)
        undated = [i for i in hits if not i.created_at_source]
        return (dated + undated)[:limit]

    async def semantic_content_items(
        self, filters: StoreFilters, embedding: list[float], threshold: float, limit: int
    ) -> list[ContentItemMatch]:
        await self._enter("semantic_content_items")
        matches = [
            ContentItemMatch(item=i, similarity=_cosine(self.item_embeddings[i.id], embedding))
            for i in self.items
            if i.id in self.item_embeddings and self._item_matches(i, filters)
        ]
        matches = [m for m in matches if m.similarity >= threshold]
        return sorted(matches, key=lambda m: m.similarity, reverse=True)[:limit]

    async def primary_topics(self, organization_id: str, item_ids: list[str]) -> dict[str, TopicRef]:
        await self._enter("primary_topics")
        topics: dict[str, TopicRef] = {}
        for cluster_id, item_id, primary, _ in sorted(self.members, key=lambda m: (not m[2], -m[3])):
            if item_id in item_ids:
                topics.setdefault(item_id, self.clusters[cluster_id])
        return topics

    async def count_by_source(self, organization_id: str) -> list[tuple[str, int]]:
        await self._enter("count_by_source")
        counts = Counter(str(i.source.type) for i in self._org_items(organization_id) if i.source)
        return counts.most_common()

    async def count_by_content_type(self, organization_id: str) -> list[tuple[str, int]]:
        await self._enter("count_by_content_type")
        return Counter(str(i.type) for i in self._org_items(organization_id)).most_common()

    async def top_topics(self, organization_id: str, limit: int) -> list[tuple[str, str, int]]:
        await self._enter("top_topics")
        org_ids = {i.id for i in self._org_items(organization_id)}
        counts = Counter(m[0] for m in self.members if m[1] in org_ids)
        return [(cid, self.clusters[cid].name, n) for cid, n in counts.most_common(limit)]

    async def top_participants(
        self, organization_id: str, limit: int
    ) -> list[tuple[str | None, str | None, int]]:
        await self._enter("top_participants")
        counts = Counter(
            (i.author_name, i.author_id) for i in self._org_items(organization_id) if i.author_name or i.author_id
        )
        return [(name, author_id, n) for (name, author_id), n in counts.most_common(limit)]

    async def weekly_histogram(self, organization_id: str, since: datetime) -> list[tuple[datetime, int]]:
        await self._enter("weekly_histogram")
        counts = Counter(
            week_start(i.effective_created_at)
            for i in self._org_items(organization_id)
            if i.effective_created_at >= since
        )
        return sorted(counts.items(), reverse=True)

    async def suggest_titles(self, organization_id: str, text: str, limit: int) -> list[str]:
        await self._enter("suggest_titles")
        titles = [i.title for i in self._org_items(organization_id) if _contains(i.title, text)]
        titles += [v.title for v in self.videos if v.organization_id == organization_id and _contains(v.title, text)]
        return list(dict.fromkeys(t for t in titles if t))[:limit]


@pytest.fixture
def store():
    """Empty in-memory content store."""
    return FakeContentStore()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def failing_embedder():
    return FailingEmbedder()


@pytest.fixture
def search_config():
    return SearchConfig()


@pytest.fixture
def clock():
    """Fixed clock so recency boosts are deterministic."""
    return lambda: NOW


@pytest.fixture
def mock_db_session():
    """Mock async SQLAlchemy session."""
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_session_factory(mock_db_session):
    """async_sessionmaker stand-in yielding mock_db_session as an async context manager."""
    context = AsyncMock()
    context.__aenter__.return_value = mock_db_session
    context.__aexit__.return_value = None
    return MagicMock(return_value=context)


@pytest.fixture
def mock_openai_client():
    """Mock async OpenAI client."""
    client = AsyncMock()
    embedding_data = Mock()
    embedding_data.embedding = [0.1] * 1536
    usage = Mock()
    usage.total_tokens = 10
    response = Mock()
    response.data = [embedding_data]
    response.usage = usage
    client.embeddings = AsyncMock()
    client.embeddings.create = AsyncMock(return_value=response)
    return client
