"""Tests for OpenAIEmbedder: embedding with batching and cost tracking."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from unisearch.common.errors import EmbeddingError
from unisearch.common.logging import CostTracker
from unisearch.embedders.openai_embedder import BATCH_SIZE, OpenAIEmbedder


def _make_embed_response(count: int, dims: int = 1536):
    """Create a mock embeddings response with `count` items."""
    data = []
    for i in range(count):
        item = Mock()
        item.embedding = [float(i) / 10] * dims
        data.append(item)
    usage = Mock()
    usage.total_tokens = count * 10
    response = Mock()
    response.data = data
    response.usage = usage
    return response


class TestOpenAIEmbedder:
    @patch("unisearch.embedders.openai_embedder.AsyncOpenAI")
    async def test_embed_single_text(self, mock_client_cls):
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_make_embed_response(1))
        mock_client_cls.return_value = mock_client

        embedder = OpenAIEmbedder(api_key="test-key", model="text-embedding-3-small", dims=1536)
        result = await embedder.embed_texts(["hello"])

        assert len(result) == 1
        assert len(result[0]) == 1536
        mock_client.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small", input=["hello"], dimensions=1536
        )

    @patch("unisearch.embedders.openai_embedder.AsyncOpenAI")
    async def test_embed_batching(self, mock_client_cls):
        """Texts exceeding BATCH_SIZE should be split into multiple calls."""
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=[
                _make_embed_response(BATCH_SIZE),
                _make_embed_response(5),
            ]
        )
        mock_client_cls.return_value = mock_client

        embedder = OpenAIEmbedder(api_key="test-key", model="text-embedding-3-small", dims=1536)
        texts = [f"text {i}" for i in range(BATCH_SIZE + 5)]
        result = await embedder.embed_texts(texts)

        assert len(result) == BATCH_SIZE + 5
        assert mock_client.embeddings.create.call_count == 2

    @patch("unisearch.embedders.openai_embedder.AsyncOpenAI")
    async def test_embed_query(self, mock_client_cls, mock_openai_client):
        mock_client_cls.return_value = mock_openai_client

        embedder = OpenAIEmbedder(api_key="key", model="text-embedding-3-small", dims=1536)
        vector = await embedder.embed_query("launch plan")

        assert vector == [0.1] * 1536

    @patch("unisearch.embedders.openai_embedder.AsyncOpenAI")
    async def test_properties(self, mock_client_cls):
        mock_client_cls.return_value = AsyncMock()
        embedder = OpenAIEmbedder(api_key="key", model="custom-model", dims=768)
        assert embedder.dimensions == 768
        assert embedder.model_name == "custom-model"

    @patch("unisearch.embedders.openai_embedder.AsyncOpenAI")
    async def test_cost_tracking(self, mock_client_cls):
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_make_embed_response(1))
        mock_client_cls.return_value = mock_client

        tracker = CostTracker()
        embedder = OpenAIEmbedder(api_key="key", model="text-embedding-3-small", dims=1536, cost_tracker=tracker)
        await embedder.embed_texts(["test"])

        assert len(tracker.calls) == 1
        assert tracker.total_tokens > 0
        assert tracker.total_cost >= 0

    @patch("unisearch.embedders.openai_embedder.AsyncOpenAI")
    async def test_dimension_mismatch_rejected(self, mock_client_cls):
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_make_embed_response(1, dims=256))
        mock_client_cls.return_value = mock_client

        embedder = OpenAIEmbedder(api_key="key", model="text-embedding-3-small", dims=1536)
        with pytest.raises(EmbeddingError, match="1536"):
            await embedder.embed_query("launch plan")
        mock_client.embeddings.create.assert_called_once()

    @patch("unisearch.embedders.openai_embedder.AsyncOpenAI")
    async def test_sdk_retries_disabled(self, mock_client_cls):
        OpenAIEmbedder(api_key="key", request_timeout=5.0)
        assert mock_client_cls.call_args.kwargs["max_retries"] == 0
        assert mock_client_cls.call_args.kwargs["timeout"] == 5.0
