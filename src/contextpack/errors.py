"""Error taxonomy and result values passed between cache tiers."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

import httpx

T = TypeVar("T")


class ContextPackError(Exception):
    """Base class for all contextpack errors."""


class ConfigurationError(ContextPackError):
    """Missing credentials or identifiers. Never retried."""


class TransientFetchError(ContextPackError):
    """Network or timeout failure on a collaborator call.

    Not retried immediately; the next TTL-driven refresh picks it up.
    """


class PerFileExtractionError(ContextPackError):
    """Reading or extracting a single origin file failed."""


class ProviderProcessingFailure(ContextPackError):
    """The asset host reported a terminal failure for an upload."""


class CacheBackendUnavailable(ContextPackError):
    """The distributed cache tier could not be reached."""


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    TRANSIENT = "transient"
    EXTRACTION = "extraction"
    PROVIDER_PROCESSING = "provider_processing"
    CACHE_UNAVAILABLE = "cache_unavailable"
    UNKNOWN = "unknown"


_KINDS: list[tuple[type[BaseException], ErrorKind]] = [
    (ConfigurationError, ErrorKind.CONFIGURATION),
    (TransientFetchError, ErrorKind.TRANSIENT),
    (PerFileExtractionError, ErrorKind.EXTRACTION),
    (ProviderProcessingFailure, ErrorKind.PROVIDER_PROCESSING),
    (CacheBackendUnavailable, ErrorKind.CACHE_UNAVAILABLE),
    (httpx.HTTPError, ErrorKind.TRANSIENT),
    (TimeoutError, ErrorKind.TRANSIENT),
    (OSError, ErrorKind.TRANSIENT),
]


def classify(exc: BaseException) -> ErrorKind:
    """Map an exception onto the error taxonomy."""
    for exc_type, kind in _KINDS:
        if isinstance(exc, exc_type):
            return kind
    return ErrorKind.UNKNOWN


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a named error kind.

    The coordinator branches on ``kind`` instead of letting exceptions
    short-circuit across cache tiers.
    """

    value: Optional[T] = None
    kind: Optional[ErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str = "") -> "Result[T]":
        return cls(kind=kind, message=message)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Result[T]":
        return cls(kind=classify(exc), message=str(exc))
