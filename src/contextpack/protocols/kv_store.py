"""Protocol for the distributed key-value store."""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for the shared cache tier.

    Implementations never raise: an unreachable backend reads as a miss and
    writes become no-ops.
    """

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, blob: str, ttl_seconds: int) -> None:
        ...
