"""Pipeline error hierarchy.

Every error carries a human-readable message and a ``details`` dict with the
context needed for logs (MIME type, index name, dimensions...).
"""
from typing import Any, Optional


class PipelineError(Exception):
    """Base class for ingestion and retrieval errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class UnsupportedFormat(PipelineError):
    """No reader for the MIME type and the bytes are not usable text."""

    def __init__(self, mime_type: str, reason: str = ""):
        message = f"Unsupported file type: {mime_type}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, {"mime_type": mime_type})
        self.mime_type = mime_type


class CorruptInput(PipelineError):
    """Bytes do not parse as the declared format."""

    def __init__(self, mime_type: str, reason: str = ""):
        super().__init__(
            f"The uploaded file is not a valid {mime_type} or is corrupted",
            {"mime_type": mime_type, "reason": reason} if reason else {"mime_type": mime_type},
        )
        self.mime_type = mime_type


class EmbeddingServiceError(PipelineError):
    """Transport, auth or protocol failure from the embedding provider."""


class RateLimited(EmbeddingServiceError):
    """Embedding provider throttled the request."""

    def __init__(
        self,
        message: str = "Embedding provider rate limit exceeded",
        retry_after: Optional[float] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        if retry_after is not None:
            details["retry_after"] = retry_after
        super().__init__(message, details)
        self.retry_after = retry_after


class DimensionMismatch(PipelineError):
    """Index exists with a different vector dimension."""

    def __init__(self, index_name: str, expected: int, actual: int):
        super().__init__(
            f"Index '{index_name}' has dimension {expected}, embeddings have {actual}",
            {"index_name": index_name, "expected": expected, "actual": actual},
        )
        self.index_name = index_name
        self.expected = expected
        self.actual = actual


class IndexNotFound(PipelineError):
    """Operation against an index that was never created."""

    def __init__(self, index_name: str):
        super().__init__(f"Index not found: {index_name}", {"index_name": index_name})
        self.index_name = index_name


class VectorIndexError(PipelineError):
    """Vector store transport or server failure."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)
        self.operation = operation


class PipelineTimeout(PipelineError):
    """A pipeline stage exceeded its time budget."""

    def __init__(self, stage: str, timeout: float):
        super().__init__(
            f"{stage} timed out after {timeout:g}s", {"stage": stage, "timeout": timeout}
        )
        self.stage = stage
        self.timeout = timeout
