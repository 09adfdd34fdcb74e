"""MIME type classification for origin files."""

import mimetypes
from enum import Enum
from pathlib import Path

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
PDF_MIME_TYPE = "application/pdf"

# Native formats exported as text, keyed by origin MIME type
TEXT_EXPORT_TYPES = {
    "application/vnd.google-apps.document": "text/plain",
    "application/vnd.google-apps.spreadsheet": "text/csv",
    "application/vnd.google-apps.presentation": "text/plain",
    "text/plain": "text/plain",
    "text/markdown": "text/markdown",
    "text/csv": "text/csv",
}

# Binary formats that may contain an extractable text layer
TEXT_EXTRACTABLE_TYPES = {PDF_MIME_TYPE}

# Formats the asset host accepts as opaque uploads
SUPPORTED_BINARY_TYPES = {
    PDF_MIME_TYPE,
    "text/html",
    "text/css",
    "text/xml",
    "application/rtf",
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/heic",
    "image/heif",
}

# Extensions the stdlib registry misses or maps inconsistently across platforms
_EXTENSION_OVERRIDES = {
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".csv": "text/csv",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".webp": "image/webp",
    ".rtf": "application/rtf",
}


class FileKind(str, Enum):
    TEXT = "text"
    EXTRACTABLE = "extractable"
    BINARY = "binary"
    UNSUPPORTED = "unsupported"


def classify_mime(mime_type: str) -> FileKind:
    """Decide how an origin file of ``mime_type`` is turned into a document."""
    if mime_type in TEXT_EXPORT_TYPES:
        return FileKind.TEXT
    if mime_type in TEXT_EXTRACTABLE_TYPES:
        return FileKind.EXTRACTABLE
    if mime_type in SUPPORTED_BINARY_TYPES:
        return FileKind.BINARY
    return FileKind.UNSUPPORTED


def export_mime_type(mime_type: str) -> str:
    return TEXT_EXPORT_TYPES.get(mime_type, "text/plain")


def guess_mime_type(path: str | Path) -> str:
    """Guess a MIME type from a file name, ``application/octet-stream`` if unknown."""
    suffix = Path(path).suffix.lower()
    if suffix in _EXTENSION_OVERRIDES:
        return _EXTENSION_OVERRIDES[suffix]
    guessed, _ = mimetypes.guess_type(str(path))
    return guessed or "application/octet-stream"
