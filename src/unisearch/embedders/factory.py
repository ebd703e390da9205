"""Factory for creating embedding providers based on configuration."""

from __future__ import annotations

from unisearch.common.config import settings
from unisearch.common.logging import CostTracker
from unisearch.embedders.base import BaseEmbedder


def create_embedder(provider: str | None = None, cost_tracker: CostTracker | None = None) -> BaseEmbedder:
    """Create an embedder for the specified (or configured) provider.

    Args:
        provider: One of "openai", "ollama". Defaults to settings.embedding_provider.
        cost_tracker: Optional tracker for OpenAI token usage.

    Returns:
        A BaseEmbedder instance.
    """
    provider = provider or settings.embedding_provider

    if provider == "openai":
        from unisearch.embedders.openai_embedder import OpenAIEmbedder

        return OpenAIEmbedder(cost_tracker=cost_tracker)
    elif provider == "ollama":
        from unisearch.embedders.ollama_embedder import OllamaEmbedder

        return OllamaEmbedder()
    else:
        raise ValueError(f"Unknown embedding provider: {provider!r}. Use 'openai' or 'ollama'.")
