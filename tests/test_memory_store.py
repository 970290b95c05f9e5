"""Unit tests for the in-memory vector index."""

import pytest

from doc_pipeline.core.exceptions import DimensionMismatch, IndexNotFound
from doc_pipeline.core.models.document import IndexRecord
from doc_pipeline.infrastructure.vector_stores.memory_store import InMemoryVectorIndex


def record(rid: str, vector: list[float], source_id: str, owner_id: str = "u1") -> IndexRecord:
    return IndexRecord(
        id=rid,
        vector=vector,
        text=f"text of {rid}",
        metadata={"source_id": source_id, "owner_id": owner_id},
    )


@pytest.fixture
async def populated():
    store = InMemoryVectorIndex()
    await store.ensure_index("idx", 2)
    await store.upsert(
        "idx",
        [
            record("a", [1.0, 0.0], "doc1"),
            record("b", [0.8, 0.6], "doc1"),
            record("c", [0.0, 1.0], "doc2", owner_id="u2"),
        ],
        delete_filter={},
    )
    return store


class TestInMemoryVectorIndex:
    @pytest.mark.asyncio
    async def test_ensure_index_idempotent(self):
        """Should accept repeated creation with the same dimension."""
        store = InMemoryVectorIndex()
        await store.ensure_index("idx", 3)
        await store.ensure_index("idx", 3)
        assert await store.count("idx") == 0

    @pytest.mark.asyncio
    async def test_ensure_index_dimension_mismatch(self):
        """Should refuse an existing index with another dimension."""
        store = InMemoryVectorIndex()
        await store.ensure_index("idx", 3)
        with pytest.raises(DimensionMismatch) as exc_info:
            await store.ensure_index("idx", 4)
        assert (exc_info.value.expected, exc_info.value.actual) == (3, 4)

    @pytest.mark.asyncio
    async def test_invalid_dimension(self):
        """Should reject non-positive dimensions."""
        with pytest.raises(ValueError):
            await InMemoryVectorIndex().ensure_index("idx", 0)

    @pytest.mark.asyncio
    async def test_query_ordering(self, populated):
        """Should return nearest records first with cosine scores."""
        hits = await populated.query("idx", [1.0, 0.0], top_k=3)

        assert [h.id for h in hits] == ["a", "b", "c"]
        assert hits[0].score == pytest.approx(1.0)
        assert hits[1].score == pytest.approx(0.8)
        assert hits[2].score == pytest.approx(0.0)

    @pytest.mark.asyncio
    async def test_query_filters(self, populated):
        """Should honour equality and $in filters."""
        hits = await populated.query("idx", [1.0, 0.0], filter={"source_id": {"$in": ["doc2"]}})
        assert [h.id for h in hits] == ["c"]

        hits = await populated.query("idx", [1.0, 0.0], filter={"owner_id": "u1"})
        assert {h.id for h in hits} == {"a", "b"}

        hits = await populated.query("idx", [1.0, 0.0], filter={"source_id": {"$nin": ["doc1"]}})
        assert [h.id for h in hits] == ["c"]

    @pytest.mark.asyncio
    async def test_query_missing_index(self):
        """Should raise IndexNotFound for an unknown index."""
        with pytest.raises(IndexNotFound):
            await InMemoryVectorIndex().query("missing", [1.0])

    @pytest.mark.asyncio
    async def test_query_dimension_mismatch(self, populated):
        """Should reject query vectors of the wrong dimension."""
        with pytest.raises(DimensionMismatch):
            await populated.query("idx", [1.0, 0.0, 0.0])

    @pytest.mark.asyncio
    async def test_upsert_replaces_matching_records(self, populated):
        """Should delete records matching the filter before inserting."""
        await populated.upsert(
            "idx", [record("a2", [1.0, 0.0], "doc1")], delete_filter={"source_id": "doc1"}
        )

        assert await populated.count("idx", {"source_id": "doc1"}) == 1
        assert await populated.count("idx") == 2

    @pytest.mark.asyncio
    async def test_upsert_missing_index(self):
        """Should require ensure_index before writing."""
        with pytest.raises(IndexNotFound):
            await InMemoryVectorIndex().upsert("idx", [record("a", [1.0], "d")], delete_filter={})

    @pytest.mark.asyncio
    async def test_upsert_wrong_dimension_writes_nothing(self, populated):
        """Should reject the whole batch when a vector has the wrong dimension."""
        with pytest.raises(DimensionMismatch):
            await populated.upsert(
                "idx", [record("z", [1.0, 0.0, 0.0], "doc1")], delete_filter={"source_id": "doc1"}
            )
        assert await populated.count("idx") == 3

    @pytest.mark.asyncio
    async def test_hits_do_not_alias_metadata(self, populated):
        """Should hand out metadata copies."""
        hits = await populated.query("idx", [1.0, 0.0], top_k=1)
        hits[0].metadata["source_id"] = "tampered"

        assert await populated.count("idx", {"source_id": "doc1"}) == 2

    @pytest.mark.asyncio
    async def test_delete_by_filter(self, populated):
        """Should delete only matching records."""
        await populated.delete_by_filter("idx", {"source_id": "doc1", "owner_id": "u1"})
        assert await populated.count("idx") == 1

    @pytest.mark.asyncio
    async def test_delete_requires_filter(self, populated):
        """Should refuse to delete everything with an empty filter."""
        with pytest.raises(ValueError):
            await populated.delete_by_filter("idx", {})

    @pytest.mark.asyncio
    async def test_delete_missing_index(self):
        """Should ignore deletes on an unknown index."""
        await InMemoryVectorIndex().delete_by_filter("missing", {"source_id": "doc1"})

    @pytest.mark.asyncio
    async def test_unsupported_operator(self, populated):
        """Should reject operators outside the supported set."""
        with pytest.raises(ValueError):
            await populated.query("idx", [1.0, 0.0], filter={"source_id": {"$regex": "doc"}})

    @pytest.mark.asyncio
    async def test_drop_index(self, populated):
        """Should remove the index and ignore unknown ones."""
        await populated.drop_index("idx")
        await populated.drop_index("idx")

        assert await populated.count("idx") == 0
        with pytest.raises(IndexNotFound):
            await populated.query("idx", [1.0, 0.0])
