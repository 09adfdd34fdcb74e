"""Distributed (L2) cache tier over a key-value store."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from contextpack.errors import CacheBackendUnavailable
from contextpack.models import KnowledgeBaseStatus, SourceDocument, UploadedAsset
from contextpack.parsers import load_json, parse_asset_map, parse_document_manifest, parse_status
from contextpack.protocols import KeyValueStore

logger = logging.getLogger(__name__)

# --- Keys ---
KB_CONTEXT_KEY = "kb:context"
KB_ASSETS_KEY = "kb:gemini-uris"
KB_STATUS_KEY = "kb:status"


@dataclass
class CachedContext:
    text_block: str
    file_names: list[str]
    cached_at: float
    documents: Optional[list[SourceDocument]] = None


class DistributedTier:
    """Typed reads and writes of the shared cache entries.

    Each value is a whole JSON document carrying its own timestamp, so
    concurrent writers from different processes simply overwrite each
    other. Backend failures read as misses and writes are dropped.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        context_ttl_seconds: int = 3600,
        asset_ttl_seconds: int = 47 * 60 * 60,
        status_ttl_seconds: int = 3600,
    ):
        self.kv = kv
        self.context_ttl_seconds = context_ttl_seconds
        self.asset_ttl_seconds = asset_ttl_seconds
        self.status_ttl_seconds = status_ttl_seconds

    async def _get(self, key: str) -> Any:
        try:
            return load_json(await self.kv.get(key))
        except CacheBackendUnavailable as e:
            logger.warning(f"Shared cache unavailable reading {key}: {e}")
            return None

    async def _set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            await self.kv.set(key, json.dumps(value), ttl_seconds)
        except CacheBackendUnavailable as e:
            logger.warning(f"Shared cache unavailable writing {key}: {e}")

    # --- Context ---

    async def get_context(self) -> Optional[CachedContext]:
        payload = await self._get(KB_CONTEXT_KEY)
        if not isinstance(payload, dict):
            return None
        cached_at = payload.get("cachedAt")
        if not isinstance(cached_at, (int, float)) or cached_at <= 0:
            return None
        names = payload.get("fileNames")
        return CachedContext(
            text_block=payload.get("textBlock") if isinstance(payload.get("textBlock"), str) else "",
            file_names=[n for n in names if isinstance(n, str)] if isinstance(names, list) else [],
            cached_at=float(cached_at),
            documents=parse_document_manifest(payload.get("documents")),
        )

    async def set_context(
        self, documents: list[SourceDocument], text_block: str, cached_at: float
    ) -> None:
        await self._set(
            KB_CONTEXT_KEY,
            {
                "textBlock": text_block,
                "fileNames": [doc.name for doc in documents],
                "cachedAt": cached_at,
                "documents": [doc.manifest() for doc in documents],
            },
            self.context_ttl_seconds,
        )

    async def expire_context(self) -> None:
        """Overwrite the context with an entry that reads as a miss."""
        await self._set(
            KB_CONTEXT_KEY,
            {"textBlock": "", "fileNames": [], "cachedAt": 0},
            self.context_ttl_seconds,
        )

    # --- Uploaded assets ---

    async def get_assets(self) -> dict[str, UploadedAsset]:
        return parse_asset_map(await self._get(KB_ASSETS_KEY))

    async def set_assets(self, assets: dict[str, UploadedAsset]) -> None:
        await self._set(
            KB_ASSETS_KEY,
            {source_id: asset.to_dict() for source_id, asset in assets.items()},
            self.asset_ttl_seconds,
        )

    # --- Status ---

    async def get_status(self) -> Optional[KnowledgeBaseStatus]:
        return parse_status(await self._get(KB_STATUS_KEY))

    async def set_status(self, status: KnowledgeBaseStatus) -> None:
        await self._set(KB_STATUS_KEY, status.to_dict(), self.status_ttl_seconds)
