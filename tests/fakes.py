"""In-memory stand-ins for every external collaborator."""

import asyncio
from pathlib import Path
from typing import Any, Optional

import numpy as np

from contextpack.errors import TransientFetchError
from contextpack.protocols import (
    HostedFile,
    OriginEntry,
    RoleFolderMapping,
    VectorHit,
    VectorPage,
    VectorRecord,
)
from contextpack.protocols.asset_host import STATE_ACTIVE
from contextpack.protocols.vector_index import RANGE_START


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeOrigin:
    """Origin over in-memory files; ``delay`` slows listing so callers overlap."""

    source_type = "fake"
    root_id = "root"

    def __init__(self, delay: float = 0.0):
        self.entries: list[OriginEntry] = []
        self.contents: dict[str, Any] = {}
        self.delay = delay
        self.list_calls = 0
        self.fail_listing = False
        self.failing_ids: set[str] = set()

    def add(self, file_id: str, name: str, mime_type: str, content: Any, folder: str = "public") -> None:
        self.entries.append(OriginEntry(id=file_id, name=name, mime_type=mime_type, folder_tag=folder))
        self.contents[file_id] = content

    async def list_recursive(self, root_id: str) -> list[OriginEntry]:
        self.list_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_listing:
            raise TransientFetchError("origin listing timed out")
        return list(self.entries)

    async def read_text(self, entry: OriginEntry, export_mime_type: str) -> str:
        if entry.id in self.failing_ids:
            raise TransientFetchError(f"export failed for {entry.name}")
        return self.contents[entry.id]

    async def read_bytes(self, entry: OriginEntry) -> bytes:
        if entry.id in self.failing_ids:
            raise TransientFetchError(f"download failed for {entry.name}")
        return self.contents[entry.id]


class FakeAssetHost:
    """Asset host that records uploads and replays scripted processing states."""

    def __init__(self, states: Optional[list[str]] = None):
        self.uploads: list[tuple[str, bytes]] = []
        self.upload_paths: list[Path] = []
        self.states = list(states or [])
        self.polls = 0
        self.failing_names: set[str] = set()

    def _next_state(self) -> str:
        return self.states.pop(0) if self.states else STATE_ACTIVE

    async def upload(self, path: Path, display_name: str, mime_type: str) -> HostedFile:
        if display_name in self.failing_names:
            raise TransientFetchError(f"upload rejected for {display_name}")
        self.upload_paths.append(path)
        self.uploads.append((display_name, path.read_bytes()))
        ref = f"files/{len(self.uploads)}"
        return HostedFile(ref=ref, uri=f"https://assets.test/{ref}", mime_type=mime_type, state=self._next_state())

    async def poll_state(self, ref: str) -> HostedFile:
        self.polls += 1
        return HostedFile(ref=ref, uri=f"https://assets.test/{ref}", mime_type="", state=self._next_state())


VOCABULARY = ["grading", "refund", "schedule", "safety", "holiday", "parking"]


class KeywordEmbedder:
    """Embeds text as keyword counts over a fixed vocabulary.

    A small constant component keeps every vector non-zero, so unrelated
    texts score close to zero rather than being undefined.
    """

    model_name = "keyword-test"

    def __init__(self):
        self.query_calls = 0
        self.document_calls = 0

    def _vector(self, text: str) -> np.ndarray:
        lowered = text.lower()
        counts = [float(lowered.count(word)) for word in VOCABULARY]
        return np.array(counts + [0.01], dtype=np.float32)

    async def embed_query(self, text: str) -> np.ndarray:
        self.query_calls += 1
        return self._vector(text)

    async def embed_documents(self, texts: list[str]) -> np.ndarray:
        self.document_calls += 1
        return np.stack([self._vector(t) for t in texts]) if texts else np.zeros((0, len(VOCABULARY) + 1))


class MemoryVectorIndex:
    def __init__(self):
        self.records: dict[str, VectorRecord] = {}
        self.fail_queries = False
        self.fail_range = False
        self.upsert_batches: list[int] = []

    async def upsert(self, records: list[VectorRecord]) -> None:
        self.upsert_batches.append(len(records))
        for record in records:
            self.records[record.id] = record

    async def query(self, vector: np.ndarray, top_k: int, folders: Optional[frozenset[str]] = None) -> list[VectorHit]:
        if self.fail_queries:
            raise TransientFetchError("vector index unreachable")
        hits = []
        for record in self.records.values():
            if folders is not None and record.metadata["folder"] not in folders:
                continue
            denom = float(np.linalg.norm(vector) * np.linalg.norm(record.vector)) or 1.0
            hits.append(VectorHit(id=record.id, score=float(np.dot(vector, record.vector)) / denom, metadata=record.metadata))
        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:top_k]

    async def range(self, cursor: str, limit: int = 100) -> VectorPage:
        if self.fail_range:
            raise TransientFetchError("range scan failed")
        ids = sorted(self.records)
        offset = int(cursor)
        page = ids[offset : offset + limit]
        hits = [VectorHit(id=i, score=0.0, metadata=self.records[i].metadata) for i in page]
        next_cursor = str(offset + limit) if offset + limit < len(ids) else RANGE_START
        return VectorPage(hits=hits, next_cursor=next_cursor)

    async def delete(self, ids: list[str]) -> None:
        for i in ids:
            self.records.pop(i, None)


class MemoryKV:
    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.reads = 0

    async def get(self, key: str) -> Optional[str]:
        self.reads += 1
        return self.data.get(key)

    async def set(self, key: str, blob: str, ttl_seconds: int) -> None:
        self.data[key] = blob
        self.ttls[key] = ttl_seconds


class FakeRoleSource:
    def __init__(self, mappings: list[RoleFolderMapping], error: Optional[Exception] = None):
        self.mappings = mappings
        self.error = error
        self.calls = 0

    async def all_mappings(self) -> list[RoleFolderMapping]:
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.mappings)
