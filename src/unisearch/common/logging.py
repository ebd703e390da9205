"""Structured logging with structlog, per-search context, and embedding usage accounting."""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field

import structlog

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Rates in USD per 1M input tokens; unknown models are billed at the large-model rate.
EMBEDDING_PRICING = {
    "text-embedding-3-large": 0.13,
    "text-embedding-3-small": 0.02,
    "text-embedding-ada-002": 0.10,
}
DEFAULT_EMBEDDING_RATE = 0.13


def get_correlation_id() -> str:
    return correlation_id_var.get()


def set_correlation_id(cid: str | None = None) -> str:
    cid = cid or uuid.uuid4().hex[:16]
    correlation_id_var.set(cid)
    return cid


def add_correlation_id(logger: structlog.types.WrappedLogger, method_name: str, event_dict: dict) -> dict:
    cid = correlation_id_var.get()
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


@contextmanager
def search_context(correlation_id: str | None = None, **fields: object) -> Iterator[str]:
    """Bind a correlation id and request fields to every log line emitted inside the block.

    An id already set by the caller is reused; otherwise a fresh one is generated.
    Yields the correlation id in effect.
    """
    cid = correlation_id or correlation_id_var.get() or uuid.uuid4().hex[:16]
    token = correlation_id_var.set(cid)
    try:
        with structlog.contextvars.bound_contextvars(**fields):
            yield cid
    finally:
        correlation_id_var.reset(token)


def configure_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structlog once at process start. ``json_logs=False`` renders for a terminal."""
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            add_correlation_id,  # type: ignore[list-item]
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(log_level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@dataclass(frozen=True)
class EmbeddingCall:
    model: str
    input_tokens: int
    latency_ms: float
    estimated_cost_usd: float


@dataclass
class CostTracker:
    """Accumulates embedding usage; share one instance across an embedder's lifetime or per request."""

    calls: list[EmbeddingCall] = field(default_factory=list)

    def log_embedding_call(self, model: str, input_tokens: int, latency_ms: float) -> EmbeddingCall:
        call = EmbeddingCall(
            model=model,
            input_tokens=input_tokens,
            latency_ms=round(latency_ms, 1),
            estimated_cost_usd=round(self._estimate_embedding_cost(model, input_tokens), 6),
        )
        self.calls.append(call)
        structlog.get_logger().debug(
            "embedding_usage",
            model=call.model,
            input_tokens=call.input_tokens,
            latency_ms=call.latency_ms,
            estimated_cost_usd=call.estimated_cost_usd,
        )
        return call

    @property
    def total_cost(self) -> float:
        return float(sum(c.estimated_cost_usd for c in self.calls))

    @property
    def total_tokens(self) -> int:
        return sum(c.input_tokens for c in self.calls)

    def summary(self) -> dict[str, float | int]:
        return {
            "embedding_calls": len(self.calls),
            "embedding_tokens": self.total_tokens,
            "embedding_cost_usd": round(self.total_cost, 6),
        }

    @staticmethod
    def _estimate_embedding_cost(model: str, input_tokens: int) -> float:
        rate = EMBEDDING_PRICING.get(model, DEFAULT_EMBEDDING_RATE)
        return input_tokens * rate / 1_000_000
