"""Protocol for the inference-time binary asset host."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

STATE_PROCESSING = "PROCESSING"
STATE_ACTIVE = "ACTIVE"
STATE_FAILED = "FAILED"


@dataclass(frozen=True)
class HostedFile:
    """The asset host's view of an uploaded file."""

    ref: str
    uri: str
    mime_type: str
    state: str = STATE_ACTIVE


@runtime_checkable
class AssetHost(Protocol):
    """Protocol for hosts that keep uploaded binaries available to the model."""

    async def upload(self, path: Path, display_name: str, mime_type: str) -> HostedFile:
        """Upload the file at ``path`` and return its initial state."""
        ...

    async def poll_state(self, ref: str) -> HostedFile:
        """Fetch the current processing state of an uploaded file."""
        ...
