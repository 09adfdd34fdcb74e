"""Protocol for the authoritative document store."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from contextpack.models import PUBLIC_FOLDER


@dataclass(frozen=True)
class OriginEntry:
    """A leaf file found while listing the origin tree."""

    id: str
    name: str
    mime_type: str
    folder_tag: str = PUBLIC_FOLDER


@runtime_checkable
class DocumentOrigin(Protocol):
    """Protocol for document stores (Drive, local folders, ...).

    Implementations tag every leaf with its inherited folder tag at listing
    time: the lowercased top-level subfolder name, or ``public`` at the root.
    """

    @property
    def source_type(self) -> str:
        """Return identifier for this origin (e.g., 'drive', 'folder')."""
        ...

    @property
    def root_id(self) -> str:
        """Return the identifier of the tree root to list."""
        ...

    async def list_recursive(self, root_id: str) -> list[OriginEntry]:
        """List every non-folder file below ``root_id``."""
        ...

    async def read_text(self, entry: OriginEntry, export_mime_type: str) -> str:
        """Return the file as text, exporting native formats as needed."""
        ...

    async def read_bytes(self, entry: OriginEntry) -> bytes:
        """Download the raw file content."""
        ...
