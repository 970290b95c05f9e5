"""Protocol interfaces for dependency injection."""
from .embedder import EmbedderProtocol
from .reader import ReaderProtocol, TextExtractorProtocol
from .vector_store import MetadataFilter, VectorIndexProtocol

__all__ = [
    "EmbedderProtocol",
    "MetadataFilter",
    "ReaderProtocol",
    "TextExtractorProtocol",
    "VectorIndexProtocol",
]
