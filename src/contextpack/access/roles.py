"""Role-based folder access."""

import json
import logging
import time
from typing import Callable, Iterable, Optional

import httpx

from contextpack.errors import ContextPackError
from contextpack.models import PUBLIC_FOLDER, WILDCARD, FolderScope, SourceDocument
from contextpack.parsers import load_json, parse_role_mappings
from contextpack.protocols import KeyValueStore, RoleFolderMapping, RoleMappingSource

logger = logging.getLogger(__name__)

ROLE_ACCESS_KEY = "kb:role-access"


def filter_documents(documents: Iterable[SourceDocument], scope: FolderScope) -> list[SourceDocument]:
    """Keep the documents whose folder tag is in ``scope`` (case-insensitive)."""
    if scope.wildcard:
        return list(documents)
    return [doc for doc in documents if scope.allows(doc.folder_tag)]


class RoleFilter:
    """Maps user roles to the folder tags they may read.

    ``public`` is always included. A matched mapping that grants ``*``
    short-circuits to full access.
    """

    def __init__(self, mappings: RoleMappingSource):
        self.mappings = mappings

    async def folders_for_roles(self, roles: Iterable[str]) -> FolderScope:
        normalized_roles = {r.strip().lower() for r in roles if r and r.strip()}
        folders = {PUBLIC_FOLDER}

        for mapping in await self.mappings.all_mappings():
            if mapping.role.lower() not in normalized_roles:
                continue
            if WILDCARD in mapping.folders:
                return FolderScope.everything()
            folders.update(f.lower() for f in mapping.folders)

        return FolderScope.of(folders)


class StaticRoleMappings:
    """Mappings supplied up front, e.g. from configuration."""

    def __init__(self, mappings: list[RoleFolderMapping]):
        self._mappings = list(mappings)

    @classmethod
    def from_json(cls, raw: str) -> "StaticRoleMappings":
        """Parse ``[{"role": ..., "folders": [...]}]``; invalid JSON yields no mappings."""
        try:
            payload = json.loads(raw) if raw else []
        except ValueError:
            logger.warning("Role mappings are not valid JSON; only public access is granted")
            payload = []
        return cls(parse_role_mappings(payload))

    async def all_mappings(self) -> list[RoleFolderMapping]:
        return list(self._mappings)


class CachedRoleMappings:
    """Serves role mappings from process memory, then the shared tier, then the source.

    A failing source degrades to no mappings, which leaves every user with
    public access only until the next refresh.
    """

    def __init__(
        self,
        source: RoleMappingSource,
        kv: KeyValueStore,
        ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.source = source
        self.kv = kv
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cached: Optional[list[RoleFolderMapping]] = None
        self._cached_at = 0.0

    def reset(self) -> None:
        self._cached = None
        self._cached_at = 0.0

    async def all_mappings(self) -> list[RoleFolderMapping]:
        now = self._clock()
        if self._cached is not None and now - self._cached_at < self.ttl_seconds:
            return self._cached

        payload = load_json(await self.kv.get(ROLE_ACCESS_KEY))
        cached_at = payload.get("cachedAt") if isinstance(payload, dict) else None
        if isinstance(cached_at, (int, float)) and now - cached_at < self.ttl_seconds:
            self._cached = parse_role_mappings(payload)
            self._cached_at = float(cached_at)
            return self._cached

        return await self.refresh()

    async def refresh(self) -> list[RoleFolderMapping]:
        try:
            mappings = await self.source.all_mappings()
        except (ContextPackError, httpx.HTTPError, OSError, ValueError) as e:
            logger.warning(f"Role mapping source unavailable: {e}")
            return []

        now = self._clock()
        self._cached = mappings
        self._cached_at = now
        blob = json.dumps(
            {
                "mappings": [{"role": m.role, "folders": list(m.folders)} for m in mappings],
                "cachedAt": now,
            }
        )
        await self.kv.set(ROLE_ACCESS_KEY, blob, self.ttl_seconds)
        logger.info(f"Role access: loaded {len(mappings)} role mappings")
        return mappings
