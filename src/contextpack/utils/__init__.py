"""Utility functions for contextpack."""

from contextpack.utils.mime import FileKind, classify_mime, guess_mime_type
from contextpack.utils.timeouts import with_timeout

__all__ = ["FileKind", "classify_mime", "guess_mime_type", "with_timeout"]
