import json
import logging
import time
from typing import Any, Optional

import httpx

from doc_pipeline.core.exceptions import DimensionMismatch, IndexNotFound, VectorIndexError
from doc_pipeline.core.filters import validate_filter
from doc_pipeline.core.models.document import IndexRecord, SearchHit

logger = logging.getLogger(__name__)

DIMENSION_KEY = "embedding_dimension"
GENERATION_KEY = "generation"


class ChromaVectorIndex:
    """Vector index using ChromaDB HTTP API.

    Chroma has no transaction spanning insert and delete. Upserts write the
    new generation first, so a concurrent query can briefly see old and new
    chunks of a re-ingested source side by side, never none.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8001,
        tenant: str = "default_tenant",
        database: str = "default_database",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize ChromaDB client.

        Args:
            host: ChromaDB host.
            port: ChromaDB port.
            tenant: Tenant name.
            database: Database name.
            timeout: HTTP timeout in seconds.
            client: Preconfigured HTTP client.
        """
        self._base_url = f"http://{host}:{port}/api/v2"
        self._tenant = tenant
        self._database = database
        self._timeout = timeout
        self._client = client
        self._collection_ids: dict[str, str] = {}

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    @property
    def _collections_url(self) -> str:
        return f"{self._base_url}/tenants/{self._tenant}/databases/{self._database}/collections"

    async def ensure_index(self, name: str, dimension: int) -> None:
        collection = await self._find_collection(name)
        if collection is None:
            resp = await self._request(
                "POST",
                self._collections_url,
                "create_collection",
                json={
                    "name": name,
                    "metadata": {"hnsw:space": "cosine", DIMENSION_KEY: dimension},
                    "get_or_create": True,
                },
            )
            collection = resp.json()
            logger.info(f"Created collection: {name} (dimension={dimension})")

        existing = _collection_dimension(collection)
        if existing is not None and existing != dimension:
            raise DimensionMismatch(name, existing, dimension)
        self._collection_ids[name] = collection["id"]

    async def upsert(
        self,
        name: str,
        records: list[IndexRecord],
        delete_filter: dict,
    ) -> None:
        """Insert the new generation, then drop older records matching the filter.

        A failed insert leaves the previous generation in place. Between the
        two calls a concurrent query may see both generations.
        """
        col_id = await self._collection_id(name)

        stamp = time.time_ns()
        metadatas = []
        for record in records:
            metadata = _to_chroma_metadata(record.metadata)
            metadata.setdefault(GENERATION_KEY, stamp)
            metadatas.append(metadata)

        if records:
            await self._collection_request(
                name,
                col_id,
                "upsert",
                {
                    "ids": [r.id for r in records],
                    "embeddings": [r.vector for r in records],
                    "documents": [r.text for r in records],
                    "metadatas": metadatas,
                },
            )

        if not delete_filter:
            return
        stale = dict(delete_filter)
        if metadatas:
            stale[GENERATION_KEY] = {"$nin": sorted({m[GENERATION_KEY] for m in metadatas})}
        await self._collection_request(name, col_id, "delete", {"where": _to_where(stale)})

    async def query(
        self,
        name: str,
        vector: list[float],
        top_k: int = 5,
        filter: Optional[dict] = None,
    ) -> list[SearchHit]:
        col_id = await self._collection_id(name)
        payload: dict[str, Any] = {
            "query_embeddings": [vector],
            "n_results": top_k,
            "include": ["documents", "metadatas", "distances"],
        }
        where = _to_where(filter)
        if where is not None:
            payload["where"] = where

        data = (await self._collection_request(name, col_id, "query", payload)).json()

        hits = []
        if data.get("ids") and data["ids"][0]:
            for i, record_id in enumerate(data["ids"][0]):
                # cosine space: distance = 1 - similarity
                hits.append(
                    SearchHit(
                        id=record_id,
                        text=data["documents"][0][i] or "",
                        metadata=data["metadatas"][0][i] or {},
                        score=1.0 - data["distances"][0][i],
                    )
                )
        return hits

    async def delete_by_filter(self, name: str, filter: dict) -> None:
        where = _to_where(filter)
        if where is None:
            raise ValueError("Refusing to delete with an empty filter")

        try:
            col_id = await self._collection_id(name)
        except IndexNotFound:
            logger.debug(f"Delete skipped, collection {name} does not exist")
            return
        await self._collection_request(name, col_id, "delete", {"where": where})
        logger.info(f"Deleted records from {name} where {where}")

    async def count(self, name: str, filter: Optional[dict] = None) -> int:
        try:
            col_id = await self._collection_id(name)
        except IndexNotFound:
            return 0

        where = _to_where(filter)
        if where is None:
            resp = await self._request(
                "GET", f"{self._collections_url}/{col_id}/count", "count"
            )
            return int(resp.json())

        resp = await self._collection_request(
            name, col_id, "get", {"where": where, "include": []}
        )
        return len(resp.json().get("ids", []))

    async def drop_index(self, name: str) -> None:
        self._collection_ids.pop(name, None)
        try:
            await self._request(
                "DELETE", f"{self._collections_url}/{name}", "delete_collection"
            )
        except VectorIndexError as e:
            if e.details.get("status_code") == 404:
                return
            raise
        logger.info(f"Dropped collection: {name}")

    async def _find_collection(self, name: str) -> Optional[dict]:
        resp = await self._request("GET", self._collections_url, "list_collections")
        for col in resp.json():
            if col["name"] == name:
                return col
        return None

    async def _collection_id(self, name: str) -> str:
        if name in self._collection_ids:
            return self._collection_ids[name]

        collection = await self._find_collection(name)
        if collection is None:
            raise IndexNotFound(name)
        self._collection_ids[name] = collection["id"]
        return collection["id"]

    async def _collection_request(
        self, name: str, col_id: str, operation: str, payload: dict
    ) -> httpx.Response:
        url = f"{self._collections_url}/{col_id}/{operation}"
        try:
            return await self._request("POST", url, operation, json=payload)
        except VectorIndexError as e:
            if e.details.get("status_code") == 404:
                self._collection_ids.pop(name, None)
                raise IndexNotFound(name) from e
            raise

    async def _request(
        self, method: str, url: str, operation: str, **kwargs: Any
    ) -> httpx.Response:
        try:
            resp = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Chroma {operation} failed: {e}")
            raise VectorIndexError(f"Chroma {operation} failed: {e}", operation) from e

        if resp.is_error:
            logger.error(f"Chroma {operation} failed: HTTP {resp.status_code} {resp.text[:200]}")
            raise VectorIndexError(
                f"Chroma {operation} failed with HTTP {resp.status_code}",
                operation,
                {"status_code": resp.status_code},
            )
        return resp


def _collection_dimension(collection: dict) -> Optional[int]:
    metadata = collection.get("metadata") or {}
    value = metadata.get(DIMENSION_KEY, collection.get("dimension"))
    return int(value) if value is not None else None


def _to_where(flt: Optional[dict]) -> Optional[dict]:
    """Translate a metadata filter into a Chroma ``where`` clause."""
    if not flt:
        return None
    validate_filter(flt)

    # Chroma takes one operator per field expression.
    clauses = []
    for field_name, condition in flt.items():
        if isinstance(condition, dict):
            for op, value in condition.items():
                if isinstance(value, (list, tuple, set)):
                    value = list(value)
                clauses.append({field_name: {op: value}})
        else:
            clauses.append({field_name: {"$eq": condition}})

    return clauses[0] if len(clauses) == 1 else {"$and": clauses}


def _to_chroma_metadata(metadata: dict) -> dict:
    """Chroma stores scalars only: nested values become JSON strings."""
    flat = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            flat[key] = value
        else:
            flat[key] = json.dumps(value, default=str)
    return flat
