"""OpenAI embeddings for search queries.

Vectors must match the dimensionality of the stored pgvector columns, so the
requested ``dimensions`` is sent on every call and checked on the way back.
Only transient API failures are retried; auth and request errors fail fast.
"""

import time

import structlog
from openai import APIConnectionError, APITimeoutError, AsyncOpenAI, InternalServerError, RateLimitError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from unisearch.common.config import settings
from unisearch.common.errors import EmbeddingError
from unisearch.common.logging import CostTracker
from unisearch.embedders.base import BaseEmbedder

logger = structlog.get_logger()

BATCH_SIZE = 100
TRANSIENT_ERRORS = (APIConnectionError, APITimeoutError, RateLimitError, InternalServerError)


class OpenAIEmbedder(BaseEmbedder):
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        dims: int | None = None,
        cost_tracker: CostTracker | None = None,
        request_timeout: float = 10.0,
    ) -> None:
        # tenacity owns retries; the SDK's own retry loop is disabled.
        self._client = AsyncOpenAI(
            api_key=api_key or settings.openai_api_key,
            timeout=request_timeout,
            max_retries=0,
        )
        self._model = model or settings.embedding_model
        self._dims = dims or settings.embedding_dims
        self._cost_tracker = cost_tracker

    @property
    def dimensions(self) -> int:
        return self._dims

    @property
    def model_name(self) -> str:
        return self._model

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed texts in batches of BATCH_SIZE, preserving input order."""
        vectors: list[list[float]] = []
        for i in range(0, len(texts), BATCH_SIZE):
            vectors.extend(await self._embed_batch(texts[i : i + BATCH_SIZE]))
        return vectors

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        start = time.perf_counter()
        response = await self._client.embeddings.create(
            model=self._model,
            input=texts,
            dimensions=self._dims,
        )
        latency_ms = (time.perf_counter() - start) * 1000

        vectors = [item.embedding for item in response.data]
        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Expected {len(texts)} embeddings, got {len(vectors)}", model=self._model
            )
        wrong = next((len(v) for v in vectors if len(v) != self._dims), None)
        if wrong is not None:
            raise EmbeddingError(
                f"Embedding has {wrong} dimensions, index expects {self._dims}", model=self._model
            )

        tokens = response.usage.total_tokens if response.usage else 0
        if self._cost_tracker:
            self._cost_tracker.log_embedding_call(self._model, tokens, latency_ms)

        logger.debug(
            "openai_embed_batch",
            model=self._model,
            count=len(texts),
            tokens=tokens,
            latency_ms=round(latency_ms, 1),
        )
        return vectors
