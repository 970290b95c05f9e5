import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


container = Container()


def _build_embedder(settings: Settings):
    if settings.embedding_backend == "sentence_transformer":
        from .infrastructure.embeddings.sentence_transformer import (
            SentenceTransformerEmbedder,
        )

        return SentenceTransformerEmbedder(
            settings.embedding_model,
            passage_prefix=settings.embedding_passage_prefix,
            query_prefix=settings.embedding_query_prefix,
        )

    from .infrastructure.embeddings.openai_embedder import OpenAIEmbedder

    return OpenAIEmbedder(
        model=settings.embedding_model,
        base_url=settings.embedding_base_url,
        api_key=settings.embedding_api_key,
        timeout=settings.embedding_timeout,
        passage_prefix=settings.embedding_passage_prefix,
        query_prefix=settings.embedding_query_prefix,
    )


def _build_vector_store(settings: Settings):
    if settings.vector_backend == "memory":
        from .infrastructure.vector_stores.memory_store import InMemoryVectorIndex

        return InMemoryVectorIndex()

    from .infrastructure.vector_stores.chroma_store import ChromaVectorIndex

    return ChromaVectorIndex(
        host=settings.chroma_host,
        port=settings.chroma_port,
        tenant=settings.chroma_tenant,
        database=settings.chroma_database,
    )


def configure_container(settings: Settings, target: Container = container) -> Container:
    """Configure container with all dependencies.

    Args:
        settings: Application settings.
        target: Container to populate.

    Returns:
        Configured container.
    """
    from .core.protocols.embedder import EmbedderProtocol
    from .core.protocols.reader import TextExtractorProtocol
    from .core.protocols.vector_store import VectorIndexProtocol
    from .core.services.ingest_service import IngestService
    from .core.services.retrieval_service import RetrievalService
    from .core.strategies.chunking import RecursiveChunker
    from .infrastructure.document_readers import CompositeReader

    target.register(TextExtractorProtocol, CompositeReader, singleton=True)

    target.register(
        RecursiveChunker,
        lambda: RecursiveChunker(settings.chunk_size, settings.chunk_overlap),
        singleton=True,
    )

    target.register(EmbedderProtocol, lambda: _build_embedder(settings), singleton=True)

    target.register(
        VectorIndexProtocol, lambda: _build_vector_store(settings), singleton=True
    )

    target.register(
        IngestService,
        lambda: IngestService(
            reader=target.resolve(TextExtractorProtocol),
            embedder=target.resolve(EmbedderProtocol),
            vector_store=target.resolve(VectorIndexProtocol),
            chunker=target.resolve(RecursiveChunker),
            index_name=settings.index_name,
            extract_timeout=settings.extract_timeout,
        ),
        singleton=True,
    )

    target.register(
        RetrievalService,
        lambda: RetrievalService(
            embedder=target.resolve(EmbedderProtocol),
            vector_store=target.resolve(VectorIndexProtocol),
            index_name=settings.index_name,
            top_k=settings.rag_top_k,
            fetch_multiplier=settings.rag_fetch_multiplier,
            min_score=settings.rag_min_score,
            score_ratio=settings.rag_score_ratio,
        ),
        singleton=True,
    )

    logger.info(
        f"Container configured (embedding={settings.embedding_backend}:{settings.embedding_model}, "
        f"vectors={settings.vector_backend}, index={settings.index_name})"
    )
    return target
