"""Process-local (L1) cache store."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from contextpack.access.roles import filter_documents
from contextpack.models import (
    AssetRef,
    ContextBundle,
    FolderScope,
    KnowledgeBaseStatus,
    SourceDocument,
    UploadedAsset,
)


@dataclass
class CacheSnapshot:
    """Everything materialized by one origin fetch.

    ``documents`` is ``None`` when the snapshot was hydrated from a shared
    cache entry without the per-document manifest; such a snapshot can only
    serve the wildcard scope.
    """

    documents: Optional[list[SourceDocument]]
    assets: dict[str, UploadedAsset]
    cached_at: float
    text_block: str = ""
    file_names: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.documents is not None:
            self.file_names = [doc.name for doc in self.documents]
            self._full = ContextBundle.build(self.documents, self.assets)
            self.text_block = self._full.text_block
        else:
            self._full = ContextBundle(
                text_block=self.text_block,
                binary_asset_refs=[
                    AssetRef(uri=a.provider_uri, mime_type=a.mime_type) for a in self.assets.values()
                ],
                source_file_names=list(self.file_names),
            )

    @property
    def granular(self) -> bool:
        return self.documents is not None

    def can_serve(self, scope: FolderScope) -> bool:
        return self.granular or scope.wildcard

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return now - self.cached_at < ttl_seconds

    def view(self, scope: FolderScope) -> ContextBundle:
        """Return the bundle narrowed to ``scope``."""
        if scope.wildcard or self.documents is None:
            return self._full
        return ContextBundle.build(filter_documents(self.documents, scope), self.assets)

    def scoped_documents(self, scope: FolderScope) -> list[SourceDocument]:
        return filter_documents(self.documents or [], scope)

    @property
    def last_synced(self) -> str:
        return datetime.fromtimestamp(self.cached_at, tz=timezone.utc).isoformat()

    def status(self) -> KnowledgeBaseStatus:
        return KnowledgeBaseStatus(
            state="synced",
            file_count=len(self.file_names),
            file_names=list(self.file_names),
            last_synced=self.last_synced,
        )


class CacheStore:
    """Holds the current L1 snapshot.

    Created once per coordinator and reset explicitly; a stale snapshot is
    kept (``peek``) so it can stand in when a refresh fails.
    """

    def __init__(self, ttl_seconds: float = 3600):
        self.ttl_seconds = ttl_seconds
        self._snapshot: Optional[CacheSnapshot] = None

    def get_fresh(self, now: float) -> Optional[CacheSnapshot]:
        snapshot = self._snapshot
        if snapshot is not None and snapshot.is_fresh(now, self.ttl_seconds):
            return snapshot
        return None

    def peek(self) -> Optional[CacheSnapshot]:
        return self._snapshot

    def put(self, snapshot: CacheSnapshot) -> None:
        self._snapshot = snapshot

    def reset(self) -> None:
        self._snapshot = None
