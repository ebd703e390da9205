"""Unified search module -- request/result types, the search service, and its store contract."""

from unisearch.retrieval.facets import FacetAggregator
from unisearch.retrieval.search_config import SearchConfig
from unisearch.retrieval.store_protocol import ContentStore
from unisearch.retrieval.types import (
    ContentItemResult,
    ContentItemType,
    DateRange,
    SearchFacets,
    SearchMode,
    SearchRequest,
    SearchResponse,
    SearchSuggestion,
    SourceType,
    VideoResult,
)
from unisearch.retrieval.unified_search import UnifiedSearchService

__all__ = [
    "ContentItemResult",
    "ContentItemType",
    "ContentStore",
    "DateRange",
    "FacetAggregator",
    "SearchConfig",
    "SearchFacets",
    "SearchMode",
    "SearchRequest",
    "SearchResponse",
    "SearchSuggestion",
    "SourceType",
    "UnifiedSearchService",
    "VideoResult",
]
