"""Caller-visible error taxonomy for the search engine."""

from __future__ import annotations

from typing import Any


class SearchError(Exception):
    """Base class for all structured search failures."""

    kind: str = "search"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = {k: v for k, v in details.items() if v is not None}

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **self.details}


class SearchValidationError(SearchError):
    """Malformed request. Not retryable."""

    kind = "validation"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, field=field)
        self.field = field


class RetrievalError(SearchError):
    """A content-store query failed. Safe for the caller to retry."""

    kind = "retrieval"

    def __init__(self, message: str, operation: str) -> None:
        super().__init__(message, operation=operation)
        self.operation = operation


class EmbeddingError(SearchError):
    """The embedding provider could not produce a query vector."""

    kind = "embedding"


class FacetError(SearchError):
    """Facet aggregation failed."""

    kind = "facets"


class SearchTimeoutError(SearchError):
    """The request deadline elapsed before all work completed."""

    kind = "timeout"

    def __init__(self, message: str, timeout_seconds: float) -> None:
        super().__init__(message, timeout_seconds=timeout_seconds)
        self.timeout_seconds = timeout_seconds
