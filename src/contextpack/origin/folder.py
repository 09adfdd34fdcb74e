"""Origin backed by a local folder tree."""

import asyncio
import logging
import os
from pathlib import Path

from contextpack.errors import ConfigurationError
from contextpack.models import PUBLIC_FOLDER
from contextpack.protocols import OriginEntry
from contextpack.utils.mime import guess_mime_type

logger = logging.getLogger(__name__)


class FolderOrigin:
    """Origin over a local filesystem folder.

    Mirrors the Drive layout: files directly under the root are ``public``,
    everything below a top-level subfolder inherits that subfolder's
    lowercased name as its folder tag.
    """

    source_type = "folder"

    def __init__(self, root: Path | str):
        self.root = Path(root)

    @property
    def root_id(self) -> str:
        return str(self.root)

    async def list_recursive(self, root_id: str) -> list[OriginEntry]:
        """List files below ``root_id`` recursively.

        Args:
            root_id: Path to the folder

        Returns:
            One entry per file, ids are root-relative POSIX paths
        """
        return await asyncio.to_thread(self._walk, Path(root_id))

    async def read_text(self, entry: OriginEntry, export_mime_type: str) -> str:
        raw = await self.read_bytes(entry)
        return raw.decode("utf-8", errors="replace")

    async def read_bytes(self, entry: OriginEntry) -> bytes:
        return await asyncio.to_thread((self.root / entry.id).read_bytes)

    def _walk(self, source: Path) -> list[OriginEntry]:
        if not source.is_dir():
            raise ConfigurationError(f"Local origin folder not found: {source}")

        entries = []
        for root, dirs, files in os.walk(source):
            dirs.sort()
            for filename in sorted(files):
                full_path = Path(root) / filename
                rel_path = full_path.relative_to(source)

                # Skip hidden files and common ignore patterns
                if self._should_skip(rel_path):
                    continue

                parts = rel_path.parts
                folder_tag = parts[0].lower() if len(parts) > 1 else PUBLIC_FOLDER
                entries.append(
                    OriginEntry(
                        id=rel_path.as_posix(),
                        name=filename,
                        mime_type=guess_mime_type(filename),
                        folder_tag=folder_tag,
                    )
                )
        return entries

    def _should_skip(self, path: Path) -> bool:
        """Check if a file should be skipped.

        Skips hidden files, caches and version control.
        """
        skip_patterns = {"__pycache__", "node_modules", "venv"}
        return any(part.startswith(".") or part in skip_patterns for part in path.parts)
