"""Recursive character chunking.

Sizes and overlaps are counted in characters.
"""
import logging
import re

from ..models.document import Chunk

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 512
DEFAULT_OVERLAP = 50

# Preferred break points, strongest first. A chunk ends right after the match.
_BREAK_PATTERNS = (
    re.compile(r"\n[^\S\n]*\n\s*"),  # paragraph
    re.compile(r"\n\s*"),  # line
    re.compile(r"[.!?]+[\"')\]]*\s+"),  # sentence
    re.compile(r"\s+"),  # word
)

_WHITESPACE = re.compile(r"\s+")


class RecursiveChunker:
    """Split text into bounded, overlapping chunks.

    Each window of ``max_size`` characters is cut at the strongest boundary
    found in its second half (paragraph, line, sentence, word) and only falls
    back to a hard cut when there is none. The next chunk re-reads up to
    ``overlap`` characters of the previous one, starting on a word where
    possible.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, overlap: int = DEFAULT_OVERLAP):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        if overlap < 0:
            raise ValueError(f"overlap must be non-negative, got {overlap}")
        if overlap >= max_size:
            raise ValueError(f"overlap ({overlap}) must be smaller than max_size ({max_size})")
        self._max_size = max_size
        self._overlap = overlap

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def overlap(self) -> int:
        return self._overlap

    def split(self, text: str) -> list[Chunk]:
        """Split text into chunks.

        Args:
            text: Extracted document text.

        Returns:
            Chunks in document order; empty for empty text.
        """
        n = len(text)
        if n == 0:
            return []
        if n <= self._max_size:
            return [Chunk(text=text, index=0, start=0, end=n)]

        chunks: list[Chunk] = []
        start = 0
        while start < n:
            limit = min(start + self._max_size, n)
            end = limit if limit == n else self._find_break(text, start, limit)
            chunks.append(Chunk(text=text[start:end], index=len(chunks), start=start, end=end))
            if end >= n:
                break
            start = self._next_start(text, start, end)

        logger.debug(f"Chunked {n} chars into {len(chunks)} chunks")
        return chunks

    def _find_break(self, text: str, start: int, limit: int) -> int:
        floor = start + (limit - start) // 2
        window = text[start:limit]
        for pattern in _BREAK_PATTERNS:
            best = None
            for match in pattern.finditer(window):
                if start + match.end() > floor:
                    best = start + match.end()
            if best is not None:
                return best
        return limit

    def _next_start(self, text: str, start: int, end: int) -> int:
        candidate = max(end - self._overlap, start + 1)
        if candidate >= end:
            return end
        if text[candidate - 1].isspace() and not text[candidate].isspace():
            return candidate

        match = _WHITESPACE.search(text, candidate, end)
        if match and match.end() < end:
            return match.end()
        return candidate


def chunk_text(
    text: str, max_size: int = DEFAULT_MAX_SIZE, overlap: int = DEFAULT_OVERLAP
) -> list[Chunk]:
    """Split text with a one-off :class:`RecursiveChunker`."""
    return RecursiveChunker(max_size, overlap).split(text)
