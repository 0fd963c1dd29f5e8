"""Tests for the namespaced Qdrant vector store."""

from unittest.mock import AsyncMock

import pytest
from conftest import DIMENSION

from review_context.embeddings.vector_store import VectorStore, point_id
from review_context.errors import StoreQueryError, StoreWriteError
from review_context.models import ChunkMetadata, IndexRecord


def _unit(index: int) -> list[float]:
    vector = [0.0] * DIMENSION
    vector[index] = 1.0
    return vector


def _record(filepath: str, chunk_index: int, vector: list[float], content: str = "code") -> IndexRecord:
    return IndexRecord(
        id=IndexRecord.make_id(filepath, chunk_index),
        vector=vector,
        metadata=ChunkMetadata(
            filepath=filepath,
            repo="acme/widgets",
            content=content,
            chunk_index=chunk_index,
            line_range="1-10",
        ),
    )


class TestUpsertAndQuery:
    """Tests for writing and searching records."""

    @pytest.mark.asyncio
    async def test_query_returns_nearest_first(self, store: VectorStore) -> None:
        """Matches come back ranked, with metadata and the original record id."""
        await store.upsert(
            "code files",
            [_record("a.ts", 0, _unit(0), "alpha"), _record("b.ts", 0, _unit(1), "beta")],
        )

        matches = await store.query("code files", _unit(0), top_k=2)

        assert [m.id for m in matches] == ["a.ts-0", "b.ts-0"]
        assert matches[0].score == pytest.approx(1.0)
        assert matches[0].metadata == {
            "filepath": "a.ts",
            "repo": "acme/widgets",
            "content": "alpha",
            "chunk_index": "0",
            "line_range": "1-10",
        }

    @pytest.mark.asyncio
    async def test_top_k_limits_results(self, store: VectorStore) -> None:
        records = [_record(f"f{i}.py", 0, _unit(i)) for i in range(5)]
        await store.upsert("code files", records)

        assert len(await store.query("code files", _unit(0), top_k=3)) == 3

    @pytest.mark.asyncio
    async def test_without_metadata(self, store: VectorStore) -> None:
        await store.upsert("code files", [_record("a.ts", 0, _unit(0))])

        matches = await store.query("code files", _unit(0), top_k=1, include_metadata=False)

        assert matches[0].metadata == {}

    @pytest.mark.asyncio
    async def test_namespaces_are_isolated(self, store: VectorStore) -> None:
        """Records are only visible within their own namespace."""
        await store.upsert("team-a", [_record("a.ts", 0, _unit(0))])
        await store.upsert("team-b", [_record("a.ts", 0, _unit(0), "other")])

        matches_a = await store.query("team-a", _unit(0), top_k=10)
        matches_c = await store.query("team-c", _unit(0), top_k=10)

        assert len(matches_a) == 1
        assert matches_a[0].metadata["content"] == "code"
        assert matches_c == []
        assert point_id("team-a", "a.ts-0") != point_id("team-b", "a.ts-0")

    @pytest.mark.asyncio
    async def test_upsert_overwrites_same_id(self, store: VectorStore) -> None:
        """Re-writing a record id replaces the record instead of duplicating it."""
        await store.upsert("code files", [_record("a.ts", 0, _unit(0), "old")])
        await store.upsert("code files", [_record("a.ts", 0, _unit(0), "new")])

        matches = await store.query("code files", _unit(0), top_k=10)

        assert await store.count("code files") == 1
        assert matches[0].metadata["content"] == "new"

    @pytest.mark.asyncio
    async def test_empty_upsert_is_noop(self, store: VectorStore) -> None:
        await store.upsert("code files", [])

        assert await store.count("code files") == 0

    @pytest.mark.asyncio
    async def test_clear(self, store: VectorStore) -> None:
        await store.upsert("code files", [_record("a.ts", 0, _unit(0))])
        await store.clear()

        assert await store.count("code files") == 0


class TestStoreErrors:
    """Tests for failure wrapping."""

    def _failing_store(self) -> VectorStore:
        client = AsyncMock()
        client.collection_exists.return_value = True
        client.upsert.side_effect = ConnectionError("qdrant down")
        client.query_points.side_effect = ConnectionError("qdrant down")
        return VectorStore(dimension=DIMENSION, client=client)

    @pytest.mark.asyncio
    async def test_write_failure(self) -> None:
        store = self._failing_store()

        with pytest.raises(StoreWriteError, match="qdrant down"):
            await store.upsert("code files", [_record("a.ts", 0, _unit(0))])

    @pytest.mark.asyncio
    async def test_query_failure(self) -> None:
        store = self._failing_store()

        with pytest.raises(StoreQueryError, match="qdrant down"):
            await store.query("code files", _unit(0), top_k=5)

    def test_missing_connection_settings(self, monkeypatch) -> None:
        """Without an injected client the store needs QDRANT_URL and QDRANT_API_KEY."""
        monkeypatch.setattr("review_context.embeddings.vector_store.load_dotenv", lambda: None)
        monkeypatch.delenv("QDRANT_URL", raising=False)
        monkeypatch.delenv("QDRANT_API_KEY", raising=False)

        with pytest.raises(ValueError, match="QDRANT_URL"):
            VectorStore(dimension=DIMENSION)
