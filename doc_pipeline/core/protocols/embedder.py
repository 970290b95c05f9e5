"""Embedder protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbedderProtocol(Protocol):
    """Protocol for embedding service."""

    @property
    def model_name(self) -> str:
        """Identifier of the embedding model."""
        ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed passages in a single provider call.

        Args:
            texts: Passages to embed.

        Returns:
            One vector per input, in input order.

        Raises:
            RateLimited: Provider throttled the request.
            EmbeddingServiceError: Any other provider failure.
        """
        ...

    async def embed_query(self, text: str) -> list[float]:
        """Embed a search query.

        Args:
            text: Query text.

        Returns:
            Query vector.
        """
        ...
