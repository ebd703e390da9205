"""Facet aggregation: corpus-level grouped counts for populating filter UIs."""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog

from unisearch.common.concurrency import gather_all
from unisearch.common.errors import FacetError, RetrievalError
from unisearch.common.utils import ensure_aware, utcnow
from unisearch.retrieval.store_protocol import ContentStore
from unisearch.retrieval.types import (
    ContentTypeFacet,
    DateBucket,
    ParticipantFacet,
    SearchFacets,
    SourceFacet,
    TopicFacet,
)

logger = structlog.get_logger()


def week_start(value: datetime) -> datetime:
    """Midnight of the Monday starting ``value``'s ISO week (Postgres ``date_trunc('week')``)."""
    value = ensure_aware(value)
    monday = value - timedelta(days=value.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


class FacetAggregator:
    """Computes SearchFacets for one organization, independent of ranking."""

    def __init__(self, store: ContentStore, top_n: int = 20, histogram_weeks: int = 12) -> None:
        self.store = store
        self.top_n = top_n
        self.histogram_weeks = histogram_weeks

    async def compute(
        self,
        organization_id: str,
        query: str | None = None,
        now: datetime | None = None,
    ) -> SearchFacets:
        """Run all groupings concurrently.

        ``query`` is accepted for API symmetry but does not narrow the counts.

        Raises:
            FacetError: Any grouping failed; no partial facets are returned.
        """
        since = ensure_aware(now or utcnow()) - timedelta(weeks=self.histogram_weeks)
        try:
            groupings = await gather_all(
                self.store.count_by_source(organization_id),
                self.store.count_by_content_type(organization_id),
                self.store.top_topics(organization_id, self.top_n),
                self.store.top_participants(organization_id, self.top_n),
                self.store.weekly_histogram(organization_id, since),
            )
            facets = self._build(*groupings)
        except RetrievalError as exc:
            logger.warning(
                "facets_failed",
                organization_id=organization_id,
                operation=exc.operation,
                error=exc.message,
            )
            raise FacetError(f"Failed to get facets: {exc.message}", operation=exc.operation) from exc
        except Exception as exc:
            logger.warning("facets_failed", organization_id=organization_id, error=str(exc), exc_info=True)
            raise FacetError(f"Failed to get facets: {exc}") from exc

        logger.info(
            "facets_computed",
            organization_id=organization_id,
            query_length=len(query) if query else 0,
            sources=len(facets.sources),
            topics=len(facets.topics),
            participants=len(facets.participants),
            weeks=len(facets.date_histogram),
        )
        return facets

    def _build(self, sources, types, topics, participants, histogram) -> SearchFacets:
        return SearchFacets(
            sources=[SourceFacet(source=str(source), count=int(count)) for source, count in sources],
            content_types=[ContentTypeFacet(type=str(type_), count=int(count)) for type_, count in types],
            topics=[
                TopicFacet(cluster_id=cluster_id, name=name, count=int(count))
                for cluster_id, name, count in topics[: self.top_n]
            ],
            participants=[
                ParticipantFacet(name=name or "Unknown", user_id=user_id or None, count=int(count))
                for name, user_id, count in participants[: self.top_n]
                if name or user_id
            ],
            date_histogram=[
                DateBucket(date=week_start(week).date().isoformat(), count=int(count))
                for week, count in sorted(histogram, key=lambda row: ensure_aware(row[0]), reverse=True)
            ],
        )
