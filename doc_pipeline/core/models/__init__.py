"""Domain models."""
from .document import (
    Chunk,
    IndexRecord,
    IngestResult,
    RetrievalResponse,
    RetrievalResult,
    SearchHit,
)

__all__ = [
    "Chunk",
    "IndexRecord",
    "IngestResult",
    "RetrievalResponse",
    "RetrievalResult",
    "SearchHit",
]
