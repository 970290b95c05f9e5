from doc_pipeline.core.exceptions import EmbeddingServiceError


def validate_vectors(vectors: list[list[float]], expected: int, model: str) -> list[list[float]]:
    """Check one non-empty vector per input and a single dimensionality."""
    if len(vectors) != expected:
        raise EmbeddingServiceError(
            f"Embedding model returned {len(vectors)} vectors for {expected} inputs",
            {"model": model},
        )
    dimensions = {len(v) for v in vectors}
    if len(dimensions) > 1 or 0 in dimensions:
        raise EmbeddingServiceError(
            f"Embedding model returned inconsistent dimensions: {sorted(dimensions)}",
            {"model": model},
        )
    return vectors
