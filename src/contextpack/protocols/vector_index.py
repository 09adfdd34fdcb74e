"""Protocol for the external vector index."""

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

import numpy as np

RANGE_START = "0"


@dataclass(frozen=True)
class VectorRecord:
    id: str
    vector: np.ndarray
    metadata: dict[str, Any]


@dataclass(frozen=True)
class VectorHit:
    id: str
    score: float
    metadata: dict[str, Any]


@dataclass
class VectorPage:
    """One page of a range scan.

    ``next_cursor`` is ``RANGE_START`` (or empty) once the scan is complete.
    """

    hits: list[VectorHit] = field(default_factory=list)
    next_cursor: str = RANGE_START


@runtime_checkable
class VectorIndex(Protocol):
    """Protocol for vector stores holding chunk embeddings.

    Metadata carries ``folder``, ``fileName``, ``sourceId``, ``chunkIndex``
    and ``text`` for every chunk.
    """

    async def upsert(self, records: list[VectorRecord]) -> None:
        ...

    async def query(
        self,
        vector: np.ndarray,
        top_k: int,
        folders: Optional[frozenset[str]] = None,
    ) -> list[VectorHit]:
        """Return the ``top_k`` nearest chunks, optionally limited to folder tags."""
        ...

    async def range(self, cursor: str, limit: int = 100) -> VectorPage:
        ...

    async def delete(self, ids: list[str]) -> None:
        ...
