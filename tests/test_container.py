"""Tests for settings and dependency wiring."""

from doc_pipeline.config.settings import Settings
from doc_pipeline.container import Container, configure_container
from doc_pipeline.core.protocols.embedder import EmbedderProtocol
from doc_pipeline.core.protocols.vector_store import VectorIndexProtocol
from doc_pipeline.core.services.ingest_service import IngestService
from doc_pipeline.core.services.retrieval_service import RetrievalService
from doc_pipeline.core.strategies.chunking import RecursiveChunker
from doc_pipeline.core.strategies.scoring import ScoreCutoffStrategy
from doc_pipeline.infrastructure.embeddings.openai_embedder import OpenAIEmbedder
from doc_pipeline.infrastructure.vector_stores.chroma_store import ChromaVectorIndex
from doc_pipeline.infrastructure.vector_stores.memory_store import InMemoryVectorIndex


def test_settings_from_env(monkeypatch):
    """Test settings read prefixed environment variables."""
    monkeypatch.setenv("DOC_PIPELINE_CHUNK_SIZE", "256")
    monkeypatch.setenv("DOC_PIPELINE_VECTOR_BACKEND", "memory")
    monkeypatch.setenv("DOC_PIPELINE_RAG_TOP_K", "3")

    s = Settings(_env_file=None)

    assert s.chunk_size == 256
    assert s.chunk_overlap == 50
    assert s.vector_backend == "memory"
    assert s.rag_top_k == 3


def test_settings_defaults():
    """Test defaults match the documented pipeline parameters."""
    s = Settings(_env_file=None)
    assert (s.chunk_size, s.chunk_overlap) == (512, 50)
    assert s.rag_top_k == 5
    assert s.index_name == "embeddings"


def test_configure_memory_backend():
    """Test services are wired as singletons sharing one index."""
    s = Settings(_env_file=None, vector_backend="memory", chunk_size=128, chunk_overlap=16)
    target = configure_container(s, Container())

    ingest = target.resolve(IngestService)
    retrieval = target.resolve(RetrievalService)

    assert ingest is target.resolve(IngestService)
    assert isinstance(target.resolve(VectorIndexProtocol), InMemoryVectorIndex)
    assert isinstance(target.resolve(EmbedderProtocol), OpenAIEmbedder)
    assert target.resolve(RecursiveChunker).max_size == 128
    assert retrieval is not None


def test_configure_chroma_backend():
    """Test Chroma settings reach the index client."""
    s = Settings(_env_file=None, chroma_host="vectors", chroma_port=9000)
    store = configure_container(s, Container()).resolve(VectorIndexProtocol)

    assert isinstance(store, ChromaVectorIndex)
    assert store._base_url == "http://vectors:9000/api/v2"


def test_reset_clears_singletons():
    """Test reset drops cached instances."""
    target = Container()
    target.register(list, list, singleton=True)
    first = target.resolve(list)
    target.reset()
    assert target.resolve(list) is not first


def test_score_ratio_setting_enables_cutoff():
    """Test rag_score_ratio adds the relative score cutoff to retrieval."""
    s = Settings(_env_file=None, vector_backend="memory", rag_score_ratio=0.4)
    retrieval = configure_container(s, Container()).resolve(RetrievalService)

    assert any(isinstance(st, ScoreCutoffStrategy) for st in retrieval._strategies)

    s = Settings(_env_file=None, vector_backend="memory")
    retrieval = configure_container(s, Container()).resolve(RetrievalService)

    assert not any(isinstance(st, ScoreCutoffStrategy) for st in retrieval._strategies)
