"""Protocol for role-to-folder mapping sources."""

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class RoleFolderMapping:
    role: str
    folders: tuple[str, ...] = field(default_factory=tuple)


@runtime_checkable
class RoleMappingSource(Protocol):
    async def all_mappings(self) -> list[RoleFolderMapping]:
        ...
