"""Recursive origin fetch and per-file classification."""

import asyncio
import logging
from collections import Counter
from typing import Optional

import httpx

from contextpack.errors import ContextPackError, PerFileExtractionError
from contextpack.models import SourceDocument
from contextpack.origin.extract import extract_pdf_text
from contextpack.protocols import DocumentOrigin, OriginEntry
from contextpack.utils.mime import FileKind, classify_mime, export_mime_type

logger = logging.getLogger(__name__)


class OriginFetchAdapter:
    """Turns an origin tree into ``SourceDocument`` objects.

    Each leaf is classified by MIME type:

    - natively text-exportable: exported/decoded to text
    - text-extractable binary (PDF): parsed to text, kept as binary when
      no text layer is found
    - opaque supported binary: bytes kept for asset upload
    - anything else: skipped with a warning

    A failure on one file is logged and skipped. Listing failures propagate.
    """

    def __init__(self, origin: DocumentOrigin, concurrency: int = 8):
        self.origin = origin
        self._semaphore = asyncio.Semaphore(concurrency)

    async def fetch_all(self) -> list[SourceDocument]:
        """Fetch and classify every file in the origin tree.

        Raises:
            ConfigurationError: If the origin is not configured
            TransientFetchError: If the listing itself fails
        """
        entries = await self.origin.list_recursive(self.origin.root_id)

        folder_counts = Counter(entry.folder_tag for entry in entries)
        logger.info(f"Origin files by folder: {dict(folder_counts)}")

        fetched = await asyncio.gather(*(self._fetch_guarded(entry) for entry in entries))
        return [doc for doc in fetched if doc is not None]

    async def _fetch_guarded(self, entry: OriginEntry) -> Optional[SourceDocument]:
        async with self._semaphore:
            try:
                return await self.fetch_one(entry)
            except (ContextPackError, httpx.HTTPError, OSError, ValueError) as exc:
                logger.warning(f'Failed to fetch file "{entry.name}" ({entry.id}): {exc}')
                return None

    async def fetch_one(self, entry: OriginEntry) -> Optional[SourceDocument]:
        """Fetch a single entry. Returns ``None`` for unsupported types."""
        kind = classify_mime(entry.mime_type)

        if kind is FileKind.TEXT:
            export_type = export_mime_type(entry.mime_type)
            content = await self.origin.read_text(entry, export_type)
            return self._text_document(entry, content, export_type)

        if kind is FileKind.EXTRACTABLE:
            data = await self.origin.read_bytes(entry)
            try:
                text = await extract_pdf_text(data, entry.name)
            except PerFileExtractionError as exc:
                logger.warning(str(exc))
                text = ""
            if text:
                return self._text_document(entry, text, entry.mime_type)
            # No text layer (e.g. scanned PDF): upload as binary instead
            return self._binary_document(entry, data)

        if kind is FileKind.BINARY:
            data = await self.origin.read_bytes(entry)
            return self._binary_document(entry, data)

        logger.warning(f'Skipping unsupported file type "{entry.name}" ({entry.mime_type})')
        return None

    @staticmethod
    def _text_document(entry: OriginEntry, content: str, mime_type: str) -> SourceDocument:
        return SourceDocument(
            id=entry.id,
            name=entry.name,
            mime_type=mime_type,
            folder_tag=entry.folder_tag.lower(),
            is_text=True,
            text_content=content,
        )

    @staticmethod
    def _binary_document(entry: OriginEntry, data: bytes) -> SourceDocument:
        return SourceDocument(
            id=entry.id,
            name=entry.name,
            mime_type=entry.mime_type,
            folder_tag=entry.folder_tag.lower(),
            is_text=False,
            binary=data,
        )
