"""Chunking and scoring strategies."""
from .chunking import RecursiveChunker, chunk_text
from .scoring import (
    DeduplicateStrategy,
    MinScoreStrategy,
    ScoreCutoffStrategy,
    ScoringStrategy,
)

__all__ = [
    "RecursiveChunker",
    "chunk_text",
    "ScoringStrategy",
    "DeduplicateStrategy",
    "MinScoreStrategy",
    "ScoreCutoffStrategy",
]
