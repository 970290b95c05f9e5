import asyncio
import logging
from functools import cached_property

import numpy as np
from sentence_transformers import SentenceTransformer

from doc_pipeline.core.exceptions import EmbeddingServiceError

from .validation import validate_vectors

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    """Local embedding model; encoding runs in a worker thread."""

    def __init__(
        self,
        model_name: str = "intfloat/multilingual-e5-base",
        passage_prefix: str = "passage: ",
        query_prefix: str = "query: ",
    ):
        self._model_name = model_name
        self._passage_prefix = passage_prefix
        self._query_prefix = query_prefix

    @property
    def model_name(self) -> str:
        return self._model_name

    @cached_property
    def model(self) -> SentenceTransformer:
        logger.info(f"Loading embedding model: {self._model_name}")
        return SentenceTransformer(self._model_name)

    def encode(self, texts: list[str]) -> np.ndarray:
        return self.model.encode(texts, convert_to_numpy=True, normalize_embeddings=True)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return await self._embed([f"{self._passage_prefix}{t}" for t in texts])

    async def embed_query(self, text: str) -> list[float]:
        vectors = await self._embed([f"{self._query_prefix}{text}"])
        return vectors[0]

    async def _embed(self, inputs: list[str]) -> list[list[float]]:
        try:
            embeddings = await asyncio.to_thread(self.encode, inputs)
        except Exception as e:
            logger.error(f"Local embedding failed (model={self._model_name}): {e}")
            raise EmbeddingServiceError(
                f"Local embedding failed: {e}", {"model": self._model_name}
            ) from e
        return validate_vectors(embeddings.tolist(), len(inputs), self._model_name)
