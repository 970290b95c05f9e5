"""Vector index protocol for dependency injection."""
from typing import Any, Optional, Protocol, runtime_checkable

from ..models.document import IndexRecord, SearchHit

MetadataFilter = dict[str, Any]


@runtime_checkable
class VectorIndexProtocol(Protocol):
    """Protocol for named, dimensioned vector indexes.

    Filters are Mongo-style dicts: ``{"field": value}`` for equality or
    ``{"field": {"$in": [...]}}``; several fields are AND-ed.
    """

    async def ensure_index(self, name: str, dimension: int) -> None:
        """Create the index if absent.

        Raises:
            DimensionMismatch: Index exists with another dimension.
        """
        ...

    async def upsert(
        self,
        name: str,
        records: list[IndexRecord],
        delete_filter: MetadataFilter,
    ) -> None:
        """Replace every record matching ``delete_filter`` with ``records``.

        A failure leaves the records matching ``delete_filter`` in place.

        Raises:
            IndexNotFound: Index was never created.
        """
        ...

    async def query(
        self,
        name: str,
        vector: list[float],
        top_k: int = 5,
        filter: Optional[MetadataFilter] = None,
    ) -> list[SearchHit]:
        """Return up to ``top_k`` nearest records, best first.

        Raises:
            IndexNotFound: Index was never created.
        """
        ...

    async def delete_by_filter(self, name: str, filter: MetadataFilter) -> None:
        """Delete matching records. Missing index is a no-op."""
        ...

    async def count(self, name: str, filter: Optional[MetadataFilter] = None) -> int:
        """Count records, optionally under a filter."""
        ...

    async def drop_index(self, name: str) -> None:
        """Remove the index and all its records. Missing index is a no-op."""
        ...
