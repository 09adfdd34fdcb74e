"""Knowledge base status reported to callers."""

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

SyncState = Literal["synced", "not_synced", "loading"]


@dataclass
class KnowledgeBaseStatus:
    state: SyncState = "not_synced"
    file_count: int = 0
    file_names: list[str] = field(default_factory=list)
    last_synced: Optional[str] = None
    warm_started_at: Optional[float] = None

    @classmethod
    def not_synced(cls) -> "KnowledgeBaseStatus":
        return cls()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.state,
            "fileCount": self.file_count,
            "fileNames": list(self.file_names),
            "lastSynced": self.last_synced,
        }
        if self.warm_started_at is not None:
            data["warmStartedAt"] = self.warm_started_at
        return data
