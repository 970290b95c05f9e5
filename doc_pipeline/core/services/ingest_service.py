"""Ingest service - document indexing."""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Optional

from ..exceptions import EmbeddingServiceError, PipelineTimeout
from ..filters import source_filter
from ..models.document import Chunk, IndexRecord, IngestResult
from ..protocols.embedder import EmbedderProtocol
from ..protocols.reader import TextExtractorProtocol
from ..protocols.vector_store import VectorIndexProtocol
from ..strategies.chunking import RecursiveChunker

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "text/plain"
MIME_TYPE_KEYS = ("mimeType", "mime_type", "type")
RESERVED_KEYS = ("source_id", "owner_id", "chunk_index", "generation")


class IngestService:
    """Turn one source document's bytes into indexed chunks.

    extract -> chunk -> embed (one batch) -> ensure index -> upsert. Nothing
    is written before the final upsert, so a failed ingestion leaves the
    previously indexed generation untouched. A document without text clears
    the source.
    """

    def __init__(
        self,
        reader: TextExtractorProtocol,
        embedder: EmbedderProtocol,
        vector_store: VectorIndexProtocol,
        chunker: Optional[RecursiveChunker] = None,
        index_name: str = "embeddings",
        extract_timeout: Optional[float] = 60.0,
        embed_timeout: Optional[float] = None,
    ):
        """Initialize ingest service.

        Args:
            reader: Text extraction.
            embedder: Embedding service.
            vector_store: Vector index.
            chunker: Text chunker, 512/50 characters by default.
            index_name: Target index name.
            extract_timeout: Seconds allowed for text extraction.
            embed_timeout: Seconds allowed for the embedding call.
        """
        self._reader = reader
        self._embedder = embedder
        self._vector_store = vector_store
        self._chunker = chunker or RecursiveChunker()
        self._index_name = index_name
        self._extract_timeout = extract_timeout
        self._embed_timeout = embed_timeout

        # Serializes re-ingestion of one source within this process.
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock_users: dict[tuple[str, str], int] = {}

    @property
    def index_name(self) -> str:
        return self._index_name

    async def ingest(
        self,
        source_id: str,
        owner_id: str,
        data: bytes,
        metadata: Optional[dict[str, Any]] = None,
    ) -> IngestResult:
        """Index a source document, replacing any previous generation.

        Args:
            source_id: Host document id.
            owner_id: Host owner (author) id.
            data: Raw file bytes.
            metadata: Open metadata map; the MIME type is read from
                ``mimeType``, ``mime_type`` or ``type``.

        Returns:
            Ingest result, with zero chunks for documents without text.

        Raises:
            UnsupportedFormat: Unknown MIME type and non-text bytes.
            CorruptInput: Bytes do not parse as the declared format.
            EmbeddingServiceError: Embedding provider failure.
            RateLimited: Embedding provider throttled the request.
            DimensionMismatch: Index exists with another dimension.
            VectorIndexError: Vector store failure.
            PipelineTimeout: Extraction or embedding ran out of time.
        """
        if not source_id or not owner_id:
            raise ValueError("source_id and owner_id are required")
        metadata = dict(metadata or {})

        key = (source_id, owner_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                return await self._ingest(source_id, owner_id, data, metadata)
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def delete(self, source_id: str, owner_id: Optional[str] = None) -> None:
        """Remove every indexed chunk of a deleted source document."""
        await self._vector_store.delete_by_filter(
            self._index_name, source_filter(source_id, owner_id)
        )
        logger.info(f"Removed chunks of {source_id} from {self._index_name}")

    async def _ingest(
        self, source_id: str, owner_id: str, data: bytes, metadata: dict[str, Any]
    ) -> IngestResult:
        mime_type = self._mime_type(metadata)

        text = await self._extract(data, mime_type)
        if not text.strip():
            await self._vector_store.delete_by_filter(
                self._index_name, source_filter(source_id, owner_id)
            )
            logger.info(f"Nothing to index for {source_id} ({mime_type}): empty text, cleared")
            return IngestResult(source_id=source_id, owner_id=owner_id, chunk_count=0)

        chunks = self._chunk(text)
        vectors = await self._embed([c.text for c in chunks])
        dimension = len(vectors[0])

        await self._vector_store.ensure_index(self._index_name, dimension)

        generation = time.time_ns()
        records = [
            IndexRecord(
                id=f"{source_id}-{generation}-{chunk.index}",
                vector=vector,
                text=chunk.text,
                metadata=self._record_metadata(
                    metadata, source_id, owner_id, chunk, generation
                ),
            )
            for chunk, vector in zip(chunks, vectors)
        ]

        await self._vector_store.upsert(
            self._index_name,
            records,
            delete_filter=source_filter(source_id, owner_id),
        )

        logger.info(
            f"Indexed {source_id}: {len(records)} chunks, dim={dimension}, {len(text)} chars"
        )
        return IngestResult(
            source_id=source_id,
            owner_id=owner_id,
            chunk_count=len(records),
            record_ids=[r.id for r in records],
            dimension=dimension,
        )

    def _mime_type(self, metadata: dict[str, Any]) -> str:
        for key in MIME_TYPE_KEYS:
            value = metadata.get(key)
            if isinstance(value, str) and value:
                return value
        return DEFAULT_MIME_TYPE

    async def _extract(self, data: bytes, mime_type: str) -> str:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._reader.extract_text, data, mime_type),
                timeout=self._extract_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Extraction of {mime_type} ({len(data)} bytes) timed out")
            raise PipelineTimeout("extraction", self._extract_timeout) from e

    def _chunk(self, text: str) -> list[Chunk]:
        chunks = [c for c in self._chunker.split(text) if c.text.strip()]
        return [replace(c, index=i) for i, c in enumerate(chunks)]

    async def _embed(self, texts: list[str]) -> list[list[float]]:
        try:
            vectors = await asyncio.wait_for(
                self._embedder.embed_batch(texts), timeout=self._embed_timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Embedding {len(texts)} chunks timed out")
            raise PipelineTimeout("embedding", self._embed_timeout) from e

        if len(vectors) != len(texts) or not vectors:
            raise EmbeddingServiceError(
                f"Expected {len(texts)} embeddings, got {len(vectors)}",
                {"model": self._embedder.model_name},
            )
        return vectors

    @staticmethod
    def _record_metadata(
        metadata: dict[str, Any],
        source_id: str,
        owner_id: str,
        chunk: Chunk,
        generation: int,
    ) -> dict[str, Any]:
        record = {k: v for k, v in metadata.items() if k not in RESERVED_KEYS}
        record.update(
            source_id=source_id,
            owner_id=owner_id,
            chunk_index=chunk.index,
            generation=generation,
        )
        return record
