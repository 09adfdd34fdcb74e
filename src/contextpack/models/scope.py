"""Folder scopes used for role-based filtering."""

from dataclasses import dataclass
from typing import Iterable

from contextpack.models.document import PUBLIC_FOLDER

WILDCARD = "*"


@dataclass(frozen=True)
class FolderScope:
    """Either every folder (wildcard) or an exact set of lowercase folder tags."""

    folders: frozenset[str] = frozenset()
    wildcard: bool = False

    @classmethod
    def everything(cls) -> "FolderScope":
        return cls(wildcard=True)

    @classmethod
    def public(cls) -> "FolderScope":
        return cls(folders=frozenset({PUBLIC_FOLDER}))

    @classmethod
    def of(cls, folders: Iterable[str] | None) -> "FolderScope":
        """Build a scope from raw folder names.

        ``None`` or any ``"*"`` entry yields the wildcard scope.
        """
        if folders is None:
            return cls.everything()
        normalized = frozenset(f.strip().lower() for f in folders if f and f.strip())
        if WILDCARD in normalized:
            return cls.everything()
        return cls(folders=normalized)

    def allows(self, folder_tag: str | None) -> bool:
        if self.wildcard:
            return True
        return (folder_tag or PUBLIC_FOLDER).lower() in self.folders

    def as_list(self) -> list[str]:
        if self.wildcard:
            return [WILDCARD]
        return sorted(self.folders)
