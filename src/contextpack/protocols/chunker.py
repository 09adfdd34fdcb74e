"""Protocol for text chunking strategies."""

from typing import Protocol, runtime_checkable

from contextpack.models import Chunk, SourceDocument


@runtime_checkable
class ChunkingStrategy(Protocol):
    """Protocol for text chunking strategies."""

    def chunk(self, doc: SourceDocument) -> list[Chunk]:
        """Split a document's text into chunks with metadata."""
        ...
