import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from doc_pipeline.core.exceptions import DimensionMismatch, IndexNotFound
from doc_pipeline.core.filters import matches_filter, validate_filter
from doc_pipeline.core.models.document import IndexRecord, SearchHit

logger = logging.getLogger(__name__)


@dataclass
class _Collection:
    dimension: int
    records: dict[str, IndexRecord] = field(default_factory=dict)


class InMemoryVectorIndex:
    """Process-local vector index with brute-force cosine search.

    Operations never suspend between the delete and the insert of an
    upsert, so readers on the same event loop see either the old or the new
    generation of a source, never both.
    """

    def __init__(self):
        self._collections: dict[str, _Collection] = {}

    async def ensure_index(self, name: str, dimension: int) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        collection = self._collections.get(name)
        if collection is None:
            self._collections[name] = _Collection(dimension=dimension)
            logger.info(f"Created index: {name} (dimension={dimension})")
            return
        if collection.dimension != dimension:
            raise DimensionMismatch(name, collection.dimension, dimension)

    async def upsert(
        self,
        name: str,
        records: list[IndexRecord],
        delete_filter: dict,
    ) -> None:
        collection = self._get(name)
        for record in records:
            if len(record.vector) != collection.dimension:
                raise DimensionMismatch(name, collection.dimension, len(record.vector))

        removed = 0
        if delete_filter:
            validate_filter(delete_filter)
            stale = [
                rid for rid, rec in collection.records.items()
                if matches_filter(rec.metadata, delete_filter)
            ]
            for rid in stale:
                del collection.records[rid]
            removed = len(stale)

        for record in records:
            collection.records[record.id] = record

        logger.debug(f"Upsert into {name}: -{removed} +{len(records)}")

    async def query(
        self,
        name: str,
        vector: list[float],
        top_k: int = 5,
        filter: Optional[dict] = None,
    ) -> list[SearchHit]:
        collection = self._get(name)
        if len(vector) != collection.dimension:
            raise DimensionMismatch(name, collection.dimension, len(vector))
        if filter:
            validate_filter(filter)

        candidates = [
            rec for rec in collection.records.values() if matches_filter(rec.metadata, filter)
        ]
        if not candidates or top_k <= 0:
            return []

        scores = self.cosine_similarity(
            np.asarray(vector, dtype=float),
            np.asarray([rec.vector for rec in candidates], dtype=float),
        )
        order = np.argsort(-scores, kind="stable")[:top_k]

        return [
            SearchHit(
                id=candidates[i].id,
                text=candidates[i].text,
                metadata=dict(candidates[i].metadata),
                score=float(scores[i]),
            )
            for i in order
        ]

    async def delete_by_filter(self, name: str, filter: dict) -> None:
        if not filter:
            raise ValueError("Refusing to delete with an empty filter")
        validate_filter(filter)
        collection = self._collections.get(name)
        if collection is None:
            return
        stale = [rid for rid, rec in collection.records.items() if matches_filter(rec.metadata, filter)]
        for rid in stale:
            del collection.records[rid]
        logger.info(f"Deleted {len(stale)} records from {name}")

    async def count(self, name: str, filter: Optional[dict] = None) -> int:
        collection = self._collections.get(name)
        if collection is None:
            return 0
        return sum(1 for rec in collection.records.values() if matches_filter(rec.metadata, filter))

    async def drop_index(self, name: str) -> None:
        if self._collections.pop(name, None) is not None:
            logger.info(f"Dropped index: {name}")

    @staticmethod
    def cosine_similarity(query_embedding: np.ndarray, embeddings: np.ndarray) -> np.ndarray:
        query_norm = np.linalg.norm(query_embedding) or 1.0
        norms = np.linalg.norm(embeddings, axis=1)
        norms[norms == 0] = 1.0
        return np.dot(embeddings, query_embedding) / (norms * query_norm)

    def _get(self, name: str) -> _Collection:
        collection = self._collections.get(name)
        if collection is None:
            raise IndexNotFound(name)
        return collection
