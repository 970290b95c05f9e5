"""Unit tests for scoring strategies and result models."""

import pytest

from doc_pipeline.core.exceptions import RateLimited, UnsupportedFormat
from doc_pipeline.core.models.document import RetrievalResponse, RetrievalResult, SearchHit
from doc_pipeline.core.strategies.scoring import (
    DeduplicateStrategy,
    MinScoreStrategy,
    ScoreCutoffStrategy,
)


def hit(rid: str, score: float, text: str = None) -> SearchHit:
    return SearchHit(id=rid, text=text or f"passage {rid}", metadata={"source_id": "d"}, score=score)


def test_deduplicate_keeps_best():
    """Test duplicates keep the first, best-ranked passage."""
    hits = [hit("a", 0.9, "Same  Text"), hit("b", 0.8, "same text"), hit("c", 0.7)]
    assert [h.id for h in DeduplicateStrategy().apply("q", hits)] == ["a", "c"]


def test_min_score():
    """Test hits below the threshold are dropped."""
    hits = [hit("a", 0.9), hit("b", 0.2)]
    assert [h.id for h in MinScoreStrategy(0.5).apply("q", hits)] == ["a"]


def test_score_cutoff_relative_to_best():
    """Test hits far below the best one are dropped."""
    hits = [hit("a", 0.8), hit("b", 0.5), hit("c", 0.1)]
    assert [h.id for h in ScoreCutoffStrategy(0.3).apply("q", hits)] == ["a", "b"]


def test_score_cutoff_non_positive_best():
    """Test negative similarities are left alone."""
    hits = [hit("a", -0.1), hit("b", -0.5)]
    assert ScoreCutoffStrategy().apply("q", hits) == hits


def test_response_message_without_allow_list():
    """Test the message omits the document count when unrestricted."""
    response = RetrievalResponse(
        query="q", results=[RetrievalResult(rank=1, content="c", source="d", relevance=0.91234)]
    )
    assert response.message == "Found 1 relevant chunks."
    payload = response.to_dict()
    assert "documentsSearched" not in payload
    assert payload["results"][0]["relevance"] == 0.912
    assert payload["results"][0]["sourceName"] == "Unknown Document"


def test_error_details_in_str():
    """Test errors render their details."""
    err = UnsupportedFormat("image/png", "content is not text")
    assert "image/png" in str(err)
    assert "Details" in str(err)

    limited = RateLimited(retry_after=1.5)
    assert limited.details == {"retry_after": 1.5}
    with pytest.raises(RateLimited):
        raise limited
