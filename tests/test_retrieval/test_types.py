"""Tests for retrieval types: SearchRequest validation and result models."""

from datetime import UTC, datetime

import pytest
from pydantic import TypeAdapter, ValidationError

from unisearch.retrieval.types import (
    ContentItemResult,
    ContentItemType,
    ContentItemWithSource,
    DateRange,
    ScoreBreakdown,
    SearchMode,
    SearchRequest,
    SearchResultItem,
    SourceType,
    VideoResult,
    VideoWithAuthor,
)

T0 = datetime(2025, 1, 1, tzinfo=UTC)


class TestSearchRequest:
    def test_defaults(self):
        req = SearchRequest(query="launch plan", organization_id="org1")
        assert req.mode == SearchMode.HYBRID
        assert req.limit == 20
        assert req.offset == 0
        assert req.semantic_weight is None
        assert req.include_videos is True
        assert req.include_content_items is True
        assert req.include_facets is False
        assert req.include_highlights is True
        assert req.sources is None

    def test_strips_query(self):
        req = SearchRequest(query="  launch  ", organization_id=" org1 ")
        assert req.query == "launch"
        assert req.organization_id == "org1"

    @pytest.mark.parametrize("query", ["", "   "])
    def test_blank_query_rejected(self, query):
        with pytest.raises(ValidationError):
            SearchRequest(query=query, organization_id="org1")

    def test_blank_organization_rejected(self):
        with pytest.raises(ValidationError):
            SearchRequest(query="x", organization_id="")

    @pytest.mark.parametrize("limit", [0, 101])
    def test_limit_bounds(self, limit):
        with pytest.raises(ValidationError):
            SearchRequest(query="x", organization_id="org1", limit=limit)

    def test_negative_offset_rejected(self):
        with pytest.raises(ValidationError):
            SearchRequest(query="x", organization_id="org1", offset=-1)

    @pytest.mark.parametrize("field", ["semantic_weight", "semantic_threshold"])
    def test_weight_bounds(self, field):
        with pytest.raises(ValidationError):
            SearchRequest(query="x", organization_id="org1", **{field: 1.5})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            SearchRequest(query="x", organization_id="org1", top_k=5)

    def test_filters_coerced_to_enums(self):
        req = SearchRequest(
            query="x",
            organization_id="org1",
            sources=["slack", "video"],
            content_types=["message"],
        )
        assert req.sources == frozenset({SourceType.SLACK, SourceType.VIDEO})
        assert req.content_types == frozenset({ContentItemType.MESSAGE})

    def test_empty_filter_means_no_filter(self):
        req = SearchRequest(query="x", organization_id="org1", sources=[], topic_ids=[])
        assert req.sources is None
        assert req.topic_ids is None

    def test_unknown_source_rejected(self):
        with pytest.raises(ValidationError):
            SearchRequest(query="x", organization_id="org1", sources=["myspace"])

    def test_frozen(self):
        req = SearchRequest(query="x", organization_id="org1")
        with pytest.raises(ValidationError):
            req.limit = 50


class TestDateRange:
    def test_open_ended(self):
        assert DateRange(date_from=T0).date_to is None

    def test_inverted_range_rejected(self):
        with pytest.raises(ValidationError):
            DateRange(date_from=datetime(2025, 2, 1, tzinfo=UTC), date_to=T0)


class TestSearchMode:
    def test_strategy_flags(self):
        assert SearchMode.KEYWORD.uses_keyword and not SearchMode.KEYWORD.uses_semantic
        assert SearchMode.SEMANTIC.uses_semantic and not SearchMode.SEMANTIC.uses_keyword
        assert SearchMode.HYBRID.uses_keyword and SearchMode.HYBRID.uses_semantic


class TestResultItems:
    def test_discriminated_union(self):
        adapter = TypeAdapter(SearchResultItem)
        result = adapter.validate_python(
            {
                "item_type": "video",
                "score": 0.5,
                "score_breakdown": {"keyword_score": 1.0},
                "video": {"id": "v1", "organization_id": "org1", "title": "Demo", "created_at": T0},
            }
        )
        assert isinstance(result, VideoResult)
        assert result.identity == ("video", "v1")

    def test_same_id_different_family_distinct(self):
        video = VideoResult(
            video=VideoWithAuthor(id="x1", organization_id="org1", title="t", created_at=T0),
            score=1.0,
            score_breakdown=ScoreBreakdown(),
        )
        item = ContentItemResult(
            content_item=ContentItemWithSource(
                id="x1", organization_id="org1", source_id="s1", type="message", created_at=T0
            ),
            score=1.0,
            score_breakdown=ScoreBreakdown(),
        )
        assert video.identity != item.identity

    def test_effective_created_at_prefers_source_timestamp(self):
        source_time = datetime(2024, 12, 1, tzinfo=UTC)
        item = ContentItemWithSource(
            id="c1", organization_id="org1", source_id="s1", type="message", created_at=T0,
            created_at_source=source_time,
        )
        assert item.effective_created_at == source_time
        assert item.model_copy(update={"created_at_source": None}).effective_created_at == T0
