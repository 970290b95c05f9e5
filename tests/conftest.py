"""Shared fixtures: deterministic embedder and in-memory index."""

import hashlib
import math
import re

import pytest

from doc_pipeline.core.services.ingest_service import IngestService
from doc_pipeline.core.services.retrieval_service import RetrievalService
from doc_pipeline.infrastructure.document_readers import CompositeReader
from doc_pipeline.infrastructure.vector_stores.memory_store import InMemoryVectorIndex

DIMENSION = 256


class FakeEmbedder:
    """Hashed bag-of-words embedder; texts sharing words land close together."""

    def __init__(self, dimension: int = DIMENSION):
        self.dimension = dimension
        self.batch_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    @property
    def model_name(self) -> str:
        return "fake-bow"

    def vector(self, text: str) -> list[float]:
        vec = [0.0] * self.dimension
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dimension
            vec[bucket] += 1.0
        norm = math.sqrt(sum(v * v for v in vec))
        if not norm:
            vec[0] = 1.0
            return vec
        return [v / norm for v in vec]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.batch_calls.append(list(texts))
        return [self.vector(t) for t in texts]

    async def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return self.vector(text)


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def store():
    return InMemoryVectorIndex()


@pytest.fixture
def ingest_service(embedder, store):
    return IngestService(reader=CompositeReader(), embedder=embedder, vector_store=store)


@pytest.fixture
def retrieval_service(embedder, store):
    return RetrievalService(embedder=embedder, vector_store=store)
