"""Types for unified search requests, results, and facets."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SourceType(StrEnum):
    VIDEO = "video"
    SLACK = "slack"
    NOTION = "notion"
    GITHUB = "github"
    GOOGLE_DRIVE = "google_drive"
    CONFLUENCE = "confluence"
    LINEAR = "linear"


class ContentItemType(StrEnum):
    VIDEO = "video"
    MESSAGE = "message"
    THREAD = "thread"
    DOCUMENT = "document"
    ISSUE = "issue"
    PULL_REQUEST = "pull_request"
    COMMENT = "comment"
    FILE = "file"


class SearchMode(StrEnum):
    KEYWORD = "keyword"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"

    @property
    def uses_keyword(self) -> bool:
        return self in (SearchMode.KEYWORD, SearchMode.HYBRID)

    @property
    def uses_semantic(self) -> bool:
        return self in (SearchMode.SEMANTIC, SearchMode.HYBRID)


class ItemType(StrEnum):
    VIDEO = "video"
    CONTENT_ITEM = "content_item"


# ── Request ─────────────────────────────────────────────────────────────


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    date_from: datetime | None = None
    date_to: datetime | None = None

    @model_validator(mode="after")
    def _check_order(self) -> DateRange:
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self


class SearchRequest(BaseModel):
    """One search query. Immutable; weights left as None fall back to SearchConfig."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    query: str
    organization_id: str

    sources: frozenset[SourceType] | None = None
    source_ids: frozenset[str] | None = None
    content_types: frozenset[ContentItemType] | None = None
    date_range: DateRange | None = None
    participants: frozenset[str] | None = None
    topic_ids: frozenset[str] | None = None

    mode: SearchMode = SearchMode.HYBRID
    semantic_weight: float | None = Field(default=None, ge=0.0, le=1.0)
    semantic_threshold: float | None = Field(default=None, ge=0.0, le=1.0)

    include_videos: bool = True
    include_content_items: bool = True
    include_facets: bool = False
    include_highlights: bool = True

    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)

    @field_validator("query", "organization_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("sources", "source_ids", "content_types", "participants", "topic_ids")
    @classmethod
    def _empty_filter_is_no_filter(cls, value: frozenset | None) -> frozenset | None:
        return value or None


# ── Payloads ────────────────────────────────────────────────────────────


class Author(BaseModel):
    id: str
    name: str | None = None
    email: str | None = None

    model_config = {"from_attributes": True}


class VideoWithAuthor(BaseModel):
    id: str
    organization_id: str
    title: str
    description: str | None = None
    transcript: str | None = None
    thumbnail_url: str | None = None
    duration: int | None = None
    created_at: datetime
    author: Author | None = None

    model_config = {"from_attributes": True}


class SourceInfo(BaseModel):
    id: str
    type: SourceType
    name: str


class ContentItemWithSource(BaseModel):
    id: str
    organization_id: str
    source_id: str
    type: ContentItemType
    title: str | None = None
    content: str | None = None
    author_id: str | None = None
    author_name: str | None = None
    created_at_source: datetime | None = None
    created_at: datetime
    source: SourceInfo | None = None

    @property
    def effective_created_at(self) -> datetime:
        return self.created_at_source or self.created_at


# ── Results ─────────────────────────────────────────────────────────────


class ScoreBreakdown(BaseModel):
    keyword_score: float = 0.0
    semantic_score: float = 0.0
    recency_boost: float = 0.0


class Highlights(BaseModel):
    title: str | None = None
    content: str | None = None


class TopicRef(BaseModel):
    id: str
    name: str


class ResultContext(BaseModel):
    topic_cluster: TopicRef | None = None
    source_type: SourceType | None = None


class _ResultBase(BaseModel):
    score: float
    score_breakdown: ScoreBreakdown
    highlights: Highlights | None = None
    context: ResultContext = Field(default_factory=ResultContext)


class VideoResult(_ResultBase):
    item_type: Literal["video"] = "video"
    video: VideoWithAuthor

    @property
    def identity(self) -> tuple[str, str]:
        return (self.item_type, self.video.id)


class ContentItemResult(_ResultBase):
    item_type: Literal["content_item"] = "content_item"
    content_item: ContentItemWithSource

    @property
    def identity(self) -> tuple[str, str]:
        return (self.item_type, self.content_item.id)


SearchResultItem = Annotated[VideoResult | ContentItemResult, Field(discriminator="item_type")]


# ── Facets ──────────────────────────────────────────────────────────────


class SourceFacet(BaseModel):
    source: str
    count: int


class ContentTypeFacet(BaseModel):
    type: str
    count: int


class ParticipantFacet(BaseModel):
    name: str
    user_id: str | None = None
    count: int


class TopicFacet(BaseModel):
    name: str
    cluster_id: str
    count: int


class DateBucket(BaseModel):
    date: str  # ISO week-start date
    count: int


class SearchFacets(BaseModel):
    sources: list[SourceFacet] = Field(default_factory=list)
    content_types: list[ContentTypeFacet] = Field(default_factory=list)
    participants: list[ParticipantFacet] = Field(default_factory=list)
    topics: list[TopicFacet] = Field(default_factory=list)
    date_histogram: list[DateBucket] = Field(default_factory=list)


class SearchResponse(BaseModel):
    results: list[SearchResultItem]
    facets: SearchFacets | None = None
    total_count: int
    has_more: bool
    search_time_ms: float


class SearchSuggestion(BaseModel):
    text: str
    type: Literal["recent", "popular", "autocomplete"] = "autocomplete"


# ── Internal ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StoreFilters:
    """Tenant scope plus the optional filters a store query applies."""

    organization_id: str
    sources: frozenset[str] | None = None
    source_ids: frozenset[str] | None = None
    content_types: frozenset[str] | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    participants: frozenset[str] | None = None
    topic_ids: frozenset[str] | None = None


@dataclass(frozen=True)
class VideoMatch:
    """Best-matching transcript chunk for a video."""

    video: VideoWithAuthor
    similarity: float
    text_preview: str | None = None


@dataclass(frozen=True)
class ContentItemMatch:
    item: ContentItemWithSource
    similarity: float


@dataclass(frozen=True)
class RetrievalPlan:
    """A validated request resolved against SearchConfig, shared by both families."""

    query: str
    organization_id: str
    mode: SearchMode
    keyword_weight: float
    semantic_weight: float
    semantic_threshold: float
    query_embedding: list[float] | None
    include_highlights: bool
    limit: int
    now: datetime
    sources: frozenset[SourceType] | None = None
    source_ids: frozenset[str] | None = None
    content_types: frozenset[ContentItemType] | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    participants: frozenset[str] | None = None
    topic_ids: frozenset[str] | None = None

    @property
    def run_keyword(self) -> bool:
        return self.mode.uses_keyword

    @property
    def run_semantic(self) -> bool:
        return self.mode.uses_semantic and self.query_embedding is not None
