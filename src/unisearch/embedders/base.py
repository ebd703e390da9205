"""Abstract base class for embedding providers."""

from abc import ABC, abstractmethod

from unisearch.common.errors import EmbeddingError


class BaseEmbedder(ABC):
    @abstractmethod
    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed a list of texts into vectors."""
        ...

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single search query.

        Raises:
            EmbeddingError: The provider failed or returned no usable vector.
        """
        try:
            embeddings = await self.embed_texts([text])
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}", model=self.model_name) from exc

        if not embeddings or not embeddings[0]:
            raise EmbeddingError("Embedding provider returned no vector", model=self.model_name)
        return embeddings[0]

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """The dimensionality of the embedding vectors."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """The name/ID of the embedding model."""
        ...
