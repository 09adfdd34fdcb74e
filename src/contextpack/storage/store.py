"""SQLite-backed vector index."""

import asyncio
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import numpy as np

from contextpack.protocols.vector_index import RANGE_START, VectorHit, VectorPage, VectorRecord
from contextpack.storage.schema import SCHEMA


class SQLiteVectorIndex:
    """Vector index stored in a single SQLite file.

    Similarity is cosine over float32 embeddings, computed with numpy over
    the rows that pass the folder filter. All database work runs in a
    worker thread.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._initialized = False

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create schema if not exists."""
        if self._initialized:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.executescript(SCHEMA)
        self._initialized = True

    # Async protocol surface

    async def upsert(self, records: list[VectorRecord]) -> None:
        await asyncio.to_thread(self._upsert, records)

    async def query(
        self,
        vector: np.ndarray,
        top_k: int,
        folders: Optional[frozenset[str]] = None,
    ) -> list[VectorHit]:
        return await asyncio.to_thread(self._query, vector, top_k, folders)

    async def range(self, cursor: str, limit: int = 100) -> VectorPage:
        return await asyncio.to_thread(self._range, cursor, limit)

    async def delete(self, ids: list[str]) -> None:
        await asyncio.to_thread(self._delete, ids)

    # Blocking implementations

    def _upsert(self, records: list[VectorRecord]) -> None:
        self.initialize()
        with self.connection() as conn:
            conn.executemany(
                """INSERT OR REPLACE INTO chunks
                   (id, source_id, folder, file_name, chunk_index, text, embedding)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        record.id,
                        str(record.metadata.get("sourceId", "")),
                        str(record.metadata.get("folder", "")).lower(),
                        str(record.metadata.get("fileName", "")),
                        int(record.metadata.get("chunkIndex", 0)),
                        str(record.metadata.get("text", "")),
                        np.asarray(record.vector, dtype=np.float32).tobytes(),
                    )
                    for record in records
                ],
            )

    def _query(
        self, vector: np.ndarray, top_k: int, folders: Optional[frozenset[str]]
    ) -> list[VectorHit]:
        self.initialize()
        sql = "SELECT id, source_id, folder, file_name, chunk_index, text, embedding FROM chunks"
        params: list[Any] = []
        if folders is not None:
            if not folders:
                return []
            placeholders = ", ".join("?" for _ in folders)
            sql += f" WHERE folder IN ({placeholders})"
            params.extend(sorted(f.lower() for f in folders))

        with self.connection() as conn:
            rows = conn.execute(sql, params).fetchall()

        query = np.asarray(vector, dtype=np.float32)
        hits = []
        for row in rows:
            stored = np.frombuffer(row["embedding"], dtype=np.float32)
            hits.append(
                VectorHit(
                    id=row["id"],
                    score=self._cosine_similarity(query, stored),
                    metadata=self._metadata(row),
                )
            )

        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:top_k]

    def _range(self, cursor: str, limit: int) -> VectorPage:
        self.initialize()
        offset = int(cursor) if cursor and cursor.isdigit() else 0
        with self.connection() as conn:
            rows = conn.execute(
                """SELECT id, source_id, folder, file_name, chunk_index, text
                   FROM chunks ORDER BY id LIMIT ? OFFSET ?""",
                (limit, offset),
            ).fetchall()

        hits = [VectorHit(id=row["id"], score=0.0, metadata=self._metadata(row)) for row in rows]
        next_cursor = str(offset + len(rows)) if len(rows) == limit else RANGE_START
        return VectorPage(hits=hits, next_cursor=next_cursor)

    def _delete(self, ids: list[str]) -> None:
        if not ids:
            return
        self.initialize()
        with self.connection() as conn:
            conn.executemany("DELETE FROM chunks WHERE id = ?", [(i,) for i in ids])

    def count(self) -> int:
        self.initialize()
        with self.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0]

    @staticmethod
    def _metadata(row: sqlite3.Row) -> dict[str, Any]:
        return {
            "sourceId": row["source_id"],
            "folder": row["folder"],
            "fileName": row["file_name"],
            "chunkIndex": row["chunk_index"],
            "text": row["text"],
        }

    @staticmethod
    def _cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
        """Compute cosine similarity between two vectors."""
        if a.shape != b.shape:
            return 0.0
        norm_a = np.linalg.norm(a)
        norm_b = np.linalg.norm(b)
        if norm_a == 0 or norm_b == 0:
            return 0.0
        return float(np.dot(a, b) / (norm_a * norm_b))
