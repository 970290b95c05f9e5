"""Unit tests for embedding adapters."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import numpy as np
import openai
import pytest

from doc_pipeline.core.exceptions import EmbeddingServiceError, RateLimited
from doc_pipeline.infrastructure.embeddings.openai_embedder import OpenAIEmbedder
from doc_pipeline.infrastructure.embeddings.sentence_transformer import (
    SentenceTransformerEmbedder,
)
from doc_pipeline.infrastructure.embeddings.validation import validate_vectors

URL = "https://api.example.test/v1/embeddings"


def embedding_response(vectors_by_index: dict[int, list[float]]):
    # Provider may answer out of order.
    data = [
        SimpleNamespace(index=i, embedding=v) for i, v in reversed(vectors_by_index.items())
    ]
    return SimpleNamespace(data=data)


@pytest.fixture
def client():
    client = MagicMock()
    client.embeddings.create = AsyncMock()
    return client


class TestOpenAIEmbedder:
    @pytest.mark.asyncio
    async def test_embed_batch_orders_by_index(self, client):
        """Should return vectors in input order with passage prefixes."""
        client.embeddings.create.return_value = embedding_response({0: [1.0, 0.0], 1: [0.0, 1.0]})
        embedder = OpenAIEmbedder(model="m", passage_prefix="passage: ", client=client)

        vectors = await embedder.embed_batch(["a", "b"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        client.embeddings.create.assert_called_once_with(
            model="m", input=["passage: a", "passage: b"]
        )

    @pytest.mark.asyncio
    async def test_embed_query(self, client):
        """Should embed a single prefixed query."""
        client.embeddings.create.return_value = embedding_response({0: [0.5, 0.5]})
        embedder = OpenAIEmbedder(model="m", query_prefix="query: ", client=client)

        assert await embedder.embed_query("hello") == [0.5, 0.5]
        client.embeddings.create.assert_called_once_with(model="m", input=["query: hello"])

    @pytest.mark.asyncio
    async def test_empty_batch_skips_request(self, client):
        """Should not call the provider for an empty batch."""
        embedder = OpenAIEmbedder(client=client)

        assert await embedder.embed_batch([]) == []
        client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_rate_limited(self, client):
        """Should map HTTP 429 to RateLimited with the retry delay."""
        response = httpx.Response(
            429, headers={"retry-after": "2"}, request=httpx.Request("POST", URL)
        )
        client.embeddings.create.side_effect = openai.RateLimitError(
            "Too many requests", response=response, body=None
        )
        embedder = OpenAIEmbedder(client=client)

        with pytest.raises(RateLimited) as exc_info:
            await embedder.embed_batch(["a"])

        assert exc_info.value.retry_after == 2.0
        assert isinstance(exc_info.value, EmbeddingServiceError)

    @pytest.mark.asyncio
    async def test_connection_error(self, client):
        """Should map transport failures to EmbeddingServiceError."""
        client.embeddings.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", URL)
        )
        embedder = OpenAIEmbedder(model="m", client=client)

        with pytest.raises(EmbeddingServiceError) as exc_info:
            await embedder.embed_batch(["a"])

        assert not isinstance(exc_info.value, RateLimited)
        assert exc_info.value.details["model"] == "m"

    @pytest.mark.asyncio
    async def test_short_response(self, client):
        """Should reject a response with fewer vectors than inputs."""
        client.embeddings.create.return_value = embedding_response({0: [1.0]})
        embedder = OpenAIEmbedder(client=client)

        with pytest.raises(EmbeddingServiceError):
            await embedder.embed_batch(["a", "b"])

    def test_lazy_client_disables_retries(self):
        """Should build the SDK client without automatic retries."""
        embedder = OpenAIEmbedder(base_url="http://localhost:11434/v1", api_key="ollama")
        assert embedder.client.max_retries == 0


class TestSentenceTransformerEmbedder:
    @pytest.mark.asyncio
    async def test_embed_batch(self):
        """Should encode prefixed passages in a worker thread."""
        embedder = SentenceTransformerEmbedder("local-model")
        with patch.object(
            SentenceTransformerEmbedder, "encode", return_value=np.array([[1.0, 0.0], [0.0, 1.0]])
        ) as encode:
            vectors = await embedder.embed_batch(["a", "b"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        encode.assert_called_once_with(["passage: a", "passage: b"])

    @pytest.mark.asyncio
    async def test_model_failure(self):
        """Should wrap model errors as EmbeddingServiceError."""
        embedder = SentenceTransformerEmbedder("local-model")
        with patch.object(SentenceTransformerEmbedder, "encode", side_effect=RuntimeError("oom")):
            with pytest.raises(EmbeddingServiceError):
                await embedder.embed_query("q")


def test_validate_vectors_dimensions():
    """Test inconsistent and empty vectors are rejected."""
    assert validate_vectors([[1.0], [2.0]], 2, "m") == [[1.0], [2.0]]
    with pytest.raises(EmbeddingServiceError):
        validate_vectors([[1.0], [1.0, 2.0]], 2, "m")
    with pytest.raises(EmbeddingServiceError):
        validate_vectors([[]], 1, "m")
