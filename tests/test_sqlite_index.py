"""Tests for the SQLite-backed vector index."""

import numpy as np
import pytest

from contextpack.protocols import VectorRecord
from contextpack.protocols.vector_index import RANGE_START
from contextpack.storage import SQLiteVectorIndex


def _record(chunk_id: str, vector: list[float], folder: str = "public", source: str = "s1") -> VectorRecord:
    return VectorRecord(
        id=chunk_id,
        vector=np.array(vector, dtype=np.float32),
        metadata={"folder": folder, "fileName": f"{source}.txt", "sourceId": source, "chunkIndex": 0, "text": f"text {chunk_id}"},
    )


@pytest.fixture
def index(tmp_path):
    return SQLiteVectorIndex(tmp_path / "index.sqlite")


@pytest.mark.asyncio
async def test_query_ranks_by_cosine_similarity(index):
    await index.upsert([_record("a", [1, 0]), _record("b", [0.6, 0.8]), _record("c", [0, 1])])

    hits = await index.query(np.array([1, 0], dtype=np.float32), top_k=2)

    assert [h.id for h in hits] == ["a", "b"]
    assert hits[0].score == pytest.approx(1.0)
    assert hits[1].score == pytest.approx(0.6)
    assert hits[0].metadata["text"] == "text a"


@pytest.mark.asyncio
async def test_query_filters_by_folder(index):
    await index.upsert([_record("a", [1, 0], folder="public"), _record("b", [1, 0], folder="Instructor")])

    public = await index.query(np.array([1, 0]), top_k=5, folders=frozenset({"public"}))
    staff = await index.query(np.array([1, 0]), top_k=5, folders=frozenset({"instructor"}))
    nothing = await index.query(np.array([1, 0]), top_k=5, folders=frozenset())

    assert [h.id for h in public] == ["a"]
    assert [h.id for h in staff] == ["b"]
    assert nothing == []


@pytest.mark.asyncio
async def test_upsert_replaces_by_id(index):
    await index.upsert([_record("a", [1, 0])])
    await index.upsert([_record("a", [0, 1])])

    hits = await index.query(np.array([0, 1]), top_k=1)

    assert index.count() == 1
    assert hits[0].score == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_range_pages_through_everything_then_delete(index):
    await index.upsert([_record(f"c{i:03d}", [1, 0]) for i in range(5)])

    seen = []
    cursor = RANGE_START
    while True:
        page = await index.range(cursor, limit=2)
        seen.extend(h.id for h in page.hits)
        cursor = page.next_cursor
        if cursor == RANGE_START:
            break

    assert seen == [f"c{i:03d}" for i in range(5)]

    await index.delete(["c000", "c004"])
    assert index.count() == 3
