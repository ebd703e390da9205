"""Ollama embeddings via the local /api/embed endpoint."""

from __future__ import annotations

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from unisearch.common.config import settings
from unisearch.common.errors import EmbeddingError
from unisearch.embedders.base import BaseEmbedder

logger = structlog.get_logger()

BATCH_SIZE = 50


class OllamaEmbedder(BaseEmbedder):
    """Embedder backed by a self-hosted Ollama server.

    Connection-level failures are retried; HTTP error statuses are not, since
    they usually mean the model is not pulled or the input was rejected.
    """

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        dims: int | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._endpoint = f"{(base_url or settings.ollama_base_url).rstrip('/')}/api/embed"
        self._model = model or settings.ollama_embedding_model
        self._dims = dims or settings.ollama_embedding_dims
        self._timeout = timeout

    @property
    def dimensions(self) -> int:
        return self._dims

    @property
    def model_name(self) -> str:
        return self._model

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            for i in range(0, len(texts), BATCH_SIZE):
                vectors.extend(await self._embed_batch(client, texts[i : i + BATCH_SIZE]))
        return vectors

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _embed_batch(self, client: httpx.AsyncClient, texts: list[str]) -> list[list[float]]:
        resp = await client.post(self._endpoint, json={"model": self._model, "input": texts})
        resp.raise_for_status()
        vectors = resp.json().get("embeddings", [])

        if vectors and len(vectors) != len(texts):
            raise EmbeddingError(f"Expected {len(texts)} embeddings, got {len(vectors)}", model=self._model)
        if any(len(v) != self._dims for v in vectors):
            raise EmbeddingError(
                f"Ollama model {self._model} does not produce {self._dims}-d vectors", model=self._model
            )

        logger.debug("ollama_embed_batch", model=self._model, count=len(texts))
        return vectors
