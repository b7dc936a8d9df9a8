"""Tests for vector index implementations."""

import pytest

from secondbrain.errors import StoreUnavailable
from secondbrain.interfaces import IVectorIndex
from secondbrain.services.vector_store import (
    InMemoryVectorIndex,
    LanceDBVectorIndex,
    _sanitize_id,
)
from secondbrain.testing import hash_to_embedding

try:
    import lancedb  # noqa: F401
    LANCEDB_AVAILABLE = True
except ImportError:
    LANCEDB_AVAILABLE = False

DIM = 64
META = {"owner_id": "owner-a", "link": "https://youtu.be/abc12345678", "kind": "video", "title": "demo"}


def _vec(text: str) -> list[float]:
    return hash_to_embedding(text, DIM)


class TestSanitizeId:

    def test_accepts_hex_ids(self):
        assert _sanitize_id("0f3a9c") == "0f3a9c"

    @pytest.mark.parametrize("bad", ["x' OR '1'='1", "a b", "id;drop", ""])
    def test_rejects_injection(self, bad):
        with pytest.raises(ValueError):
            _sanitize_id(bad)


class TestInMemoryVectorIndex:

    def test_implements_interface(self):
        assert issubclass(InMemoryVectorIndex, IVectorIndex)

    async def test_query_orders_by_similarity(self):
        index = InMemoryVectorIndex(dimensions=DIM)
        await index.upsert("a", _vec("cooking pasta recipe"), META)
        await index.upsert("b", _vec("guitar lesson chords"), META)

        matches = await index.query(_vec("pasta recipe"), top_k=5)
        assert [m.id for m in matches] == ["a", "b"]
        assert matches[0].score > matches[1].score

    async def test_query_respects_top_k(self):
        index = InMemoryVectorIndex()
        for n in range(10):
            await index.upsert(f"v{n}", _vec(f"video number{n}"), META)
        assert len(await index.query(_vec("video"), top_k=5)) == 5

    async def test_upsert_replaces(self):
        index = InMemoryVectorIndex()
        await index.upsert("a", _vec("first"), META)
        await index.upsert("a", _vec("second version"), {**META, "title": "new"})
        assert await index.count() == 1
        assert index.get_metadata("a")["title"] == "new"

    async def test_delete_is_idempotent(self):
        index = InMemoryVectorIndex()
        await index.upsert("a", _vec("first"), META)
        await index.delete("a")
        await index.delete("a")
        assert "a" not in index
        assert await index.query(_vec("first"), top_k=5) == []

    async def test_dimension_check(self):
        index = InMemoryVectorIndex(dimensions=DIM)
        with pytest.raises(ValueError, match="dimension"):
            await index.upsert("a", [1.0, 0.0], META)

    async def test_metadata_keeps_known_fields_only(self):
        index = InMemoryVectorIndex()
        await index.upsert("a", _vec("x"), {**META, "secret": "nope"})
        assert set(index.get_metadata("a")) == {"owner_id", "link", "kind", "title"}


@pytest.mark.skipif(not LANCEDB_AVAILABLE, reason="lancedb not installed")
class TestLanceDBVectorIndex:

    async def test_upsert_query_delete(self, tmp_path):
        index = LanceDBVectorIndex(dimensions=DIM, db_path=tmp_path / "lancedb")
        await index.upsert("aaa111", _vec("cooking pasta recipe"), META)
        await index.upsert("bbb222", _vec("guitar lesson chords"), META)

        matches = await index.query(_vec("cooking pasta recipe"), top_k=5)
        assert matches[0].id == "aaa111"
        assert matches[0].score == pytest.approx(1.0, abs=1e-3)

        await index.delete("aaa111")
        await index.delete("aaa111")
        assert await index.count() == 1

    async def test_upsert_is_idempotent(self, tmp_path):
        index = LanceDBVectorIndex(dimensions=DIM, db_path=tmp_path / "lancedb")
        await index.upsert("aaa111", _vec("first"), META)
        await index.upsert("aaa111", _vec("second"), META)
        assert await index.count() == 1

    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "lancedb"
        await LanceDBVectorIndex(dimensions=DIM, db_path=path).upsert("aaa111", _vec("x y z"), META)
        assert await LanceDBVectorIndex(dimensions=DIM, db_path=path).count() == 1

    async def test_missing_location_is_store_unavailable(self):
        index = LanceDBVectorIndex(dimensions=DIM)
        with pytest.raises(StoreUnavailable):
            await index.count()
