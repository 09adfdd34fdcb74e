"""Models produced by the vector index and retriever."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Match:
    """A chunk returned by a vector query."""

    chunk_id: str
    text: str
    file_name: str
    folder_tag: str
    source_id: str
    score: float


@dataclass
class RetrievalResult:
    """Context text assembled for one question."""

    text_block: str
    matches: list[Match] = field(default_factory=list)
    used_fallback: bool = False
    appended_files: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class IndexSyncResult:
    file_count: int = 0
    chunk_count: int = 0
    deleted_count: int = 0
