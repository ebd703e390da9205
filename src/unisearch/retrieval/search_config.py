"""Explicit, validated tuning knobs for the unified search engine."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from unisearch.common.config import Settings, get_settings


class SearchConfig(BaseModel):
    """Engine defaults and limits.

    Valid ranges:
        semantic_weight, semantic_threshold: [0, 1]. keyword weight is 1 - semantic_weight.
        oversample_factor: >= 1. Each strategy retrieves up to limit * oversample_factor
            candidates per strategy, independent of offset.
        recency_window_days: > 0. Boost decays linearly to zero over this window.
        recency_max_boost: [0, 1]. Upper bound of the recency component.
        facet_failure_policy: "drop" keeps results and omits facets, "raise" fails the search.

    Out-of-range values raise pydantic.ValidationError at construction.
    """

    model_config = ConfigDict(frozen=True)

    semantic_weight: float = Field(default=0.5, ge=0.0, le=1.0)
    semantic_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    oversample_factor: int = Field(default=2, ge=1)
    recency_window_days: int = Field(default=365, gt=0)
    recency_max_boost: float = Field(default=0.1, ge=0.0, le=1.0)
    highlight_context_chars: int = Field(default=100, ge=0)
    preview_chars: int = Field(default=200, ge=0)
    facet_top_n: int = Field(default=20, ge=1)
    histogram_weeks: int = Field(default=12, ge=1)
    timeout_seconds: float = Field(default=10.0, gt=0)
    facet_failure_policy: Literal["drop", "raise"] = "drop"

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> SearchConfig:
        s = settings or get_settings()
        return cls(
            semantic_weight=s.search_semantic_weight,
            semantic_threshold=s.search_semantic_threshold,
            oversample_factor=s.search_oversample_factor,
            recency_window_days=s.search_recency_window_days,
            recency_max_boost=s.search_recency_max_boost,
            highlight_context_chars=s.search_highlight_context_chars,
            preview_chars=s.search_preview_chars,
            facet_top_n=s.search_facet_top_n,
            histogram_weeks=s.search_histogram_weeks,
            timeout_seconds=s.search_timeout_seconds,
            facet_failure_policy=s.search_facet_failure_policy,
        )
