"""Document domain models."""
from dataclasses import dataclass, field
from typing import Any, Optional

NO_RESULTS_MESSAGE = "No relevant information found in the selected documents."

SOURCE_NAME_KEYS = ("fileName", "filename", "name")


@dataclass(frozen=True)
class Chunk:
    """Contiguous slice of extracted text: ``source[start:end]``."""
    text: str
    index: int
    start: int
    end: int


@dataclass
class IndexRecord:
    """Unit stored in the vector index."""
    id: str
    vector: list[float]
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchHit:
    """Nearest-neighbour match returned by the vector index.

    ``score`` is cosine similarity: higher means closer.
    """
    id: str
    text: str
    metadata: dict[str, Any]
    score: float

    @property
    def source_id(self) -> str:
        return str(self.metadata.get("source_id", ""))


@dataclass
class RetrievalResult:
    """Ranked passage handed to the caller."""
    rank: int
    content: str
    source: str
    relevance: float
    source_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "content": self.content,
            "source": self.source,
            "sourceName": self.source_name or "Unknown Document",
            "relevance": round(self.relevance, 3),
        }


@dataclass
class RetrievalResponse:
    """Outcome of a retrieval query.

    An empty ``results`` list is a normal outcome; ``index_missing`` tells a
    never-created index apart from a search that matched nothing.
    """
    query: str
    results: list[RetrievalResult]
    documents_searched: Optional[int] = None
    index_missing: bool = False

    @property
    def found(self) -> bool:
        return bool(self.results)

    @property
    def message(self) -> str:
        if not self.results:
            return NO_RESULTS_MESSAGE
        if self.documents_searched:
            return (
                f"Found {len(self.results)} relevant chunks from "
                f"{self.documents_searched} document(s)."
            )
        return f"Found {len(self.results)} relevant chunks."

    @property
    def sources(self) -> list[str]:
        """Unique source ids in rank order."""
        seen = set()
        sources = []
        for r in self.results:
            if r.source not in seen:
                seen.add(r.source)
                sources.append(r.source)
        return sources

    @property
    def context(self) -> str:
        """Numbered passages for an LLM prompt."""
        parts = []
        for r in self.results:
            parts.append(f"[{r.rank}] {r.source_name or r.source}:\n{r.content}")
        return "\n\n".join(parts)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.found,
            "query": self.query,
            "resultsFound": len(self.results),
            "results": [r.to_dict() for r in self.results],
            "message": self.message,
        }
        if self.documents_searched is not None:
            payload["documentsSearched"] = self.documents_searched
        return payload


@dataclass
class IngestResult:
    """Outcome of one successful ingestion."""
    source_id: str
    owner_id: str
    chunk_count: int
    record_ids: list[str] = field(default_factory=list)
    dimension: Optional[int] = None

    @property
    def indexed(self) -> bool:
        return self.chunk_count > 0
