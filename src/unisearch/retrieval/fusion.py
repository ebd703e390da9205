"""Score fusion and merge for keyword + semantic candidate lists.

Within one item family, keyword and semantic hits are unioned by item id.
A hit found by both strategies becomes one entry carrying both components:

    score = keyword_weight * keyword_score + semantic_weight * semantic_score + recency_boost

Components a strategy did not produce are zero; scores are never rescaled.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

from unisearch.common.utils import ensure_aware
from unisearch.retrieval.types import (
    ContentItemResult,
    ContentItemWithSource,
    Highlights,
    ResultContext,
    ScoreBreakdown,
    SearchResultItem,
    VideoResult,
    VideoWithAuthor,
)

SECONDS_PER_DAY = 86_400


def recency_boost(
    created_at: datetime,
    now: datetime,
    window_days: int = 365,
    max_boost: float = 0.1,
) -> float:
    """Linear decay from ``max_boost`` (brand new) to 0 (``window_days`` old or older)."""
    age_days = (ensure_aware(now) - ensure_aware(created_at)).total_seconds() / SECONDS_PER_DAY
    # Future timestamps count as brand new; the boost never exceeds max_boost.
    age_days = max(age_days, 0.0)
    return max(0.0, 1.0 - age_days / window_days) * max_boost


@dataclass(frozen=True)
class FusionWeights:
    semantic_weight: float
    recency_window_days: int = 365
    recency_max_boost: float = 0.1

    @property
    def keyword_weight(self) -> float:
        return 1.0 - self.semantic_weight


@dataclass
class Candidate:
    """A retrieved item before final scoring."""

    item_id: str
    payload: VideoWithAuthor | ContentItemWithSource
    created_at: datetime
    keyword_score: float = 0.0
    semantic_score: float = 0.0
    highlights: Highlights | None = None
    context: ResultContext = field(default_factory=ResultContext)


def merge_candidates(keyword: list[Candidate], semantic: list[Candidate]) -> list[Candidate]:
    """Union keyword and semantic hits by item id, preserving retrieval order.

    Keyword hits come first in their own order, followed by semantic-only hits in
    theirs. When an id appears in both lists the keyword entry absorbs the
    semantic score; its highlights (marked excerpts) take precedence over the
    semantic preview. Input candidates are copied, never modified.
    """
    merged: dict[str, Candidate] = {}
    for cand in keyword:
        existing = merged.get(cand.item_id)
        if existing is None:
            merged[cand.item_id] = replace(cand)
        else:
            existing.keyword_score = max(existing.keyword_score, cand.keyword_score)

    for cand in semantic:
        existing = merged.get(cand.item_id)
        if existing is None:
            merged[cand.item_id] = replace(cand)
            continue
        existing.semantic_score = max(existing.semantic_score, cand.semantic_score)
        if existing.highlights is None:
            existing.highlights = cand.highlights

    return list(merged.values())


def score_candidate(cand: Candidate, weights: FusionWeights, now: datetime) -> SearchResultItem:
    boost = recency_boost(cand.created_at, now, weights.recency_window_days, weights.recency_max_boost)
    score = weights.keyword_weight * cand.keyword_score + weights.semantic_weight * cand.semantic_score + boost
    breakdown = ScoreBreakdown(
        keyword_score=cand.keyword_score,
        semantic_score=cand.semantic_score,
        recency_boost=boost,
    )
    if isinstance(cand.payload, VideoWithAuthor):
        return VideoResult(
            video=cand.payload,
            score=score,
            score_breakdown=breakdown,
            highlights=cand.highlights,
            context=cand.context,
        )
    return ContentItemResult(
        content_item=cand.payload,
        score=score,
        score_breakdown=breakdown,
        highlights=cand.highlights,
        context=cand.context,
    )


def rank(results: list[SearchResultItem]) -> list[SearchResultItem]:
    """Sort by score descending. Stable, so equal scores keep retrieval order."""
    return sorted(results, key=lambda r: r.score, reverse=True)
