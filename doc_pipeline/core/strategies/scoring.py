import logging
from abc import ABC, abstractmethod

from ..models.document import SearchHit

logger = logging.getLogger(__name__)


class ScoringStrategy(ABC):
    """Base class for scoring strategies."""

    @abstractmethod
    def apply(self, query: str, hits: list[SearchHit]) -> list[SearchHit]:
        """Apply strategy to hits sorted best first."""
        ...


class DeduplicateStrategy(ScoringStrategy):
    """Drop passages whose text repeats a better-ranked one.

    Re-uploads of the same file under another source id, or repeated
    boilerplate, would otherwise fill the result list with copies.
    """

    def apply(self, query: str, hits: list[SearchHit]) -> list[SearchHit]:
        seen: set[str] = set()
        unique = []
        for hit in hits:
            key = " ".join(hit.text.split()).lower()
            if key in seen:
                continue
            seen.add(key)
            unique.append(hit)

        if len(unique) < len(hits):
            logger.debug(f"Dedup: {len(hits)} → {len(unique)}")

        return unique


class MinScoreStrategy(ScoringStrategy):
    """Filter hits below an absolute similarity."""

    def __init__(self, min_score: float = 0.0):
        self._min_score = min_score

    def apply(self, query: str, hits: list[SearchHit]) -> list[SearchHit]:
        return [h for h in hits if h.score >= self._min_score]


class ScoreCutoffStrategy(ScoringStrategy):
    """Filter hits with score much lower than top-1."""

    def __init__(self, score_ratio: float = 0.3):
        """Initialize strategy.

        Args:
            score_ratio: Minimum ratio of score to max_score.
        """
        self._score_ratio = score_ratio

    def apply(self, query: str, hits: list[SearchHit]) -> list[SearchHit]:
        """Filter hits below threshold."""
        if not hits:
            return hits

        max_score = hits[0].score
        if max_score <= 0:
            return hits
        min_score = max_score * self._score_ratio

        filtered = [h for h in hits if h.score >= min_score]

        if len(filtered) < len(hits):
            logger.info(
                f"Score cutoff: {len(hits)} → {len(filtered)} "
                f"(max={max_score:.2f}, min_allowed={min_score:.2f})"
            )

        return filtered
