"""Core business services."""
from .ingest_service import IngestService
from .retrieval_service import RetrievalService

__all__ = [
    "IngestService",
    "RetrievalService",
]
