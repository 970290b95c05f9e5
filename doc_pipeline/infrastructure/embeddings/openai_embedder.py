import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from doc_pipeline.core.exceptions import EmbeddingServiceError, RateLimited

from .validation import validate_vectors

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    """Embedder for OpenAI-compatible ``/embeddings`` endpoints (OpenAI, Ollama)."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = 30.0,
        passage_prefix: str = "",
        query_prefix: str = "",
        client: Optional[AsyncOpenAI] = None,
    ):
        """Initialize embedder.

        Args:
            model: Embedding model name.
            base_url: API URL, SDK default when None.
            api_key: API key, ``OPENAI_API_KEY`` when None.
            timeout: Request timeout in seconds.
            passage_prefix: Prefix for indexed passages (E5-style models).
            query_prefix: Prefix for queries (E5-style models).
            client: Preconfigured client.
        """
        self._model = model
        self._base_url = base_url
        self._api_key = api_key
        self._timeout = timeout
        self._passage_prefix = passage_prefix
        self._query_prefix = query_prefix
        self._client = client

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy load API client."""
        if self._client is None:
            # Retry policy belongs to the caller.
            self._client = AsyncOpenAI(
                base_url=self._base_url,
                api_key=self._api_key,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return await self._embed([f"{self._passage_prefix}{t}" for t in texts])

    async def embed_query(self, text: str) -> list[float]:
        vectors = await self._embed([f"{self._query_prefix}{text}"])
        return vectors[0]

    async def _embed(self, inputs: list[str]) -> list[list[float]]:
        try:
            response = await self.client.embeddings.create(model=self._model, input=inputs)
        except openai.RateLimitError as e:
            retry_after = _retry_after(e)
            logger.warning(f"Embedding rate limited (model={self._model}, retry_after={retry_after})")
            raise RateLimited(
                f"Embedding provider rate limit exceeded: {e}",
                retry_after=retry_after,
                details={"model": self._model},
            ) from e
        except openai.OpenAIError as e:
            logger.error(f"Embedding request failed (model={self._model}): {e}")
            raise EmbeddingServiceError(
                f"Embedding request failed: {e}", {"model": self._model}
            ) from e

        data = sorted(response.data, key=lambda item: item.index)
        vectors = [list(item.embedding) for item in data]
        logger.debug(f"Embedded {len(inputs)} texts with {self._model}")
        return validate_vectors(vectors, len(inputs), self._model)


def _retry_after(error: openai.APIStatusError) -> Optional[float]:
    response = getattr(error, "response", None)
    if response is None:
        return None
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
