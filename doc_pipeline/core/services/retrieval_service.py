"""Retrieval service - filtered similarity search over indexed chunks."""

import logging
from typing import Optional

from ..exceptions import IndexNotFound
from ..filters import allow_list_filter
from ..models.document import (
    SOURCE_NAME_KEYS,
    RetrievalResponse,
    RetrievalResult,
    SearchHit,
)
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import VectorIndexProtocol
from ..strategies.scoring import (
    DeduplicateStrategy,
    MinScoreStrategy,
    ScoreCutoffStrategy,
    ScoringStrategy,
)

logger = logging.getLogger(__name__)


class RetrievalService:
    """Embed a query and search the index, optionally within an allow-list."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        vector_store: VectorIndexProtocol,
        index_name: str = "embeddings",
        top_k: int = 5,
        fetch_multiplier: int = 2,
        min_score: float = 0.0,
        score_ratio: float = 0.0,
        strategies: Optional[list[ScoringStrategy]] = None,
    ):
        """Initialize retrieval service.

        Args:
            embedder: Embedding service.
            vector_store: Vector index.
            index_name: Index to search.
            top_k: Default number of results.
            fetch_multiplier: Candidates fetched per result, to survive dedup.
            min_score: Minimum cosine similarity kept.
            score_ratio: Drop hits scoring below this share of the best one.
            strategies: Custom scoring strategies.
        """
        self._embedder = embedder
        self._vector_store = vector_store
        self._index_name = index_name
        self._top_k = top_k
        self._fetch_multiplier = max(1, fetch_multiplier)

        if strategies is None:
            strategies = [DeduplicateStrategy()]
            if min_score > 0:
                strategies.append(MinScoreStrategy(min_score))
            if score_ratio > 0:
                strategies.append(ScoreCutoffStrategy(score_ratio))
        self._strategies = strategies

    async def retrieve(
        self,
        query: str,
        allowed_source_ids: Optional[list[str]] = None,
        top_k: Optional[int] = None,
    ) -> RetrievalResponse:
        """Search indexed chunks.

        Args:
            query: Free-text query.
            allowed_source_ids: Restrict results to these sources; None or
                empty searches everything.
            top_k: Override number of results.

        Returns:
            Ranked results; empty when nothing matched or the index does
            not exist yet (``index_missing``).

        Raises:
            ValueError: Blank query or non-positive top_k.
            EmbeddingServiceError: Embedding provider failure.
        """
        if not query or not query.strip():
            raise ValueError("query must not be blank")
        top_k = top_k if top_k is not None else self._top_k
        if top_k < 1:
            raise ValueError(f"top_k must be positive, got {top_k}")

        flt = allow_list_filter(allowed_source_ids)
        documents_searched = len(flt["source_id"]["$in"]) if flt else None

        query_vector = await self._embedder.embed_query(query)

        try:
            hits = await self._vector_store.query(
                self._index_name,
                query_vector,
                top_k=top_k * self._fetch_multiplier,
                filter=flt,
            )
        except IndexNotFound:
            logger.warning(f"Search on missing index '{self._index_name}', no results")
            return RetrievalResponse(
                query=query,
                results=[],
                documents_searched=documents_searched,
                index_missing=True,
            )

        if flt:
            allowed = set(flt["source_id"]["$in"])
            hits = [h for h in hits if h.source_id in allowed]

        hits = [h for h in hits if h.text.strip()]
        for strategy in self._strategies:
            hits = strategy.apply(query, hits)
        hits = hits[:top_k]

        logger.info(f"Search: returned {len(hits)}/{top_k} chunks for '{query[:50]}'")

        return RetrievalResponse(
            query=query,
            results=[self._to_result(rank, hit) for rank, hit in enumerate(hits, 1)],
            documents_searched=documents_searched,
        )

    @staticmethod
    def _to_result(rank: int, hit: SearchHit) -> RetrievalResult:
        source_name = next(
            (str(hit.metadata[k]) for k in SOURCE_NAME_KEYS if hit.metadata.get(k)), None
        )
        return RetrievalResult(
            rank=rank,
            content=hit.text,
            source=hit.source_id,
            relevance=hit.score,
            source_name=source_name,
        )
