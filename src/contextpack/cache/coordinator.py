"""Tiered cache coordinator: process memory, shared cache, then origin."""

import asyncio
import logging
import time
from typing import Any, Callable, Optional

from contextpack.assets import BinaryAssetUploadManager
from contextpack.cache.distributed import DistributedTier
from contextpack.cache.inflight import InFlightRegistry
from contextpack.cache.store import CacheSnapshot, CacheStore
from contextpack.errors import ErrorKind, Result
from contextpack.models import (
    ContextBundle,
    FolderScope,
    KnowledgeBaseStatus,
    SourceDocument,
    UploadedAsset,
)
from contextpack.origin import OriginFetchAdapter
from contextpack.retrieval import VectorRetriever

logger = logging.getLogger(__name__)

CONTEXT_FLIGHT_KEY = "context"
WARM_GUARD_SECONDS = 180


class TieredCacheCoordinator:
    """Serves document context from the cheapest valid tier.

    Lookup order:

    1. L1, the in-process ``CacheStore`` snapshot
    2. L2, the shared ``DistributedTier`` (hydrates L1)
    3. L3, a single-flight fetch from origin, followed by binary uploads,
       index sync and writes to both tiers

    When the origin fails, a stale snapshot is served if one exists;
    otherwise callers get an empty bundle and the shared status is set to
    ``not_synced``. Errors from the origin never escape ``get_context``.
    """

    def __init__(
        self,
        fetcher: OriginFetchAdapter,
        uploads: BinaryAssetUploadManager,
        distributed: DistributedTier,
        store: CacheStore | None = None,
        inflight: InFlightRegistry | None = None,
        retriever: VectorRetriever | None = None,
        index_on_fetch: bool = True,
        context_ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.fetcher = fetcher
        self.uploads = uploads
        self.distributed = distributed
        self.store = store or CacheStore(ttl_seconds=context_ttl_seconds)
        self.inflight = inflight or InFlightRegistry()
        self.retriever = retriever
        self.index_on_fetch = index_on_fetch
        self.context_ttl_seconds = context_ttl_seconds
        self._clock = clock
        self.last_error: Optional[Result] = None
        self._generation = 0

    # --- Reads ---

    async def get_context(self, scope: FolderScope | None = None) -> ContextBundle:
        """Return the context bundle visible to ``scope`` (everything when ``None``)."""
        scope = scope or FolderScope.everything()
        snapshot = await self.get_snapshot(scope)
        if snapshot is None:
            return ContextBundle.empty()
        return snapshot.view(scope)

    async def get_documents(self, scope: FolderScope | None = None) -> list[SourceDocument]:
        """Return the source documents visible to ``scope``."""
        scope = scope or FolderScope.everything()
        snapshot = await self.get_snapshot(scope)
        if snapshot is not None and not snapshot.granular:
            # Wildcard served from a manifest-less shared entry: refetch for documents
            result = await self.inflight.run(CONTEXT_FLIGHT_KEY, self._fetch_from_origin)
            snapshot = result.value if result.ok else self.store.peek()
        if snapshot is None:
            return []
        return snapshot.scoped_documents(scope)

    async def get_snapshot(self, scope: FolderScope) -> Optional[CacheSnapshot]:
        """Return a snapshot able to serve ``scope``, or ``None`` when nothing is available."""
        now = self._clock()

        snapshot = self.store.get_fresh(now)
        if snapshot is not None and snapshot.can_serve(scope):
            return snapshot

        if snapshot is None:
            restored = await self._restore_from_distributed(now)
            if restored.ok and restored.value.can_serve(scope):
                return restored.value

        result = await self.inflight.run(CONTEXT_FLIGHT_KEY, self._fetch_from_origin)
        if result.ok:
            return result.value

        stale = self.store.peek()
        if stale is not None and stale.can_serve(scope):
            logger.warning(f"Serving stale context from {stale.last_synced}: {result.message}")
            return stale
        return None

    async def get_status(self) -> KnowledgeBaseStatus:
        snapshot = self.store.peek()
        if snapshot is not None:
            return snapshot.status()
        if self.inflight.in_flight(CONTEXT_FLIGHT_KEY):
            return KnowledgeBaseStatus(state="loading")
        status = await self.distributed.get_status()
        return status or KnowledgeBaseStatus.not_synced()

    # --- Lifecycle ---

    async def invalidate(self) -> None:
        """Drop cached context in this process and in the shared tier.

        Uploaded assets are kept; they expire on their own window.
        """
        self.store.reset()
        self._generation += 1
        self.inflight.forget(CONTEXT_FLIGHT_KEY)
        await asyncio.gather(
            self.distributed.expire_context(),
            self.distributed.set_status(KnowledgeBaseStatus.not_synced()),
        )
        logger.info("Context cache cleared")

    async def clear_cache(self) -> None:
        await self.invalidate()

    async def warm(self, force: bool = False) -> dict[str, Any]:
        """Load the context ahead of the first request.

        Returns a status dict: ``ready`` with the file count, ``already_warming``
        when another instance started a warm-up recently, or ``error``.
        """
        if force:
            await self.invalidate()

        now = self._clock()
        current = await self.distributed.get_status()
        if (
            current is not None
            and current.state == "loading"
            and current.warm_started_at is not None
            and now - current.warm_started_at < WARM_GUARD_SECONDS
        ):
            logger.info("Warm-up already in progress on another instance")
            return {"status": "already_warming"}

        await self.distributed.set_status(KnowledgeBaseStatus(state="loading", warm_started_at=now))

        snapshot = await self.get_snapshot(FolderScope.everything())
        if snapshot is None:
            await self.distributed.set_status(KnowledgeBaseStatus.not_synced())
            message = self.last_error.message if self.last_error else "no documents loaded"
            return {"status": "error", "error": message}

        await self.distributed.set_status(snapshot.status())
        return {"status": "ready", "fileCount": len(snapshot.file_names)}

    # --- Tiers ---

    async def _restore_from_distributed(self, now: float) -> Result[CacheSnapshot]:
        cached = await self.distributed.get_context()
        if cached is None:
            return Result.failure(ErrorKind.CACHE_UNAVAILABLE, "shared cache miss")

        self.uploads.remember(await self.distributed.get_assets())
        snapshot = CacheSnapshot(
            documents=cached.documents,
            assets=self._assets_for(cached.documents),
            cached_at=cached.cached_at,
            text_block=cached.text_block,
            file_names=cached.file_names,
        )

        if not snapshot.is_fresh(now, self.context_ttl_seconds):
            # Kept only as a stand-in should the origin fetch fail
            if self.store.peek() is None:
                self.store.put(snapshot)
            return Result.failure(ErrorKind.CACHE_UNAVAILABLE, "shared cache entry expired")

        self.store.put(snapshot)
        logger.info(
            f"Context restored from shared cache: {len(snapshot.file_names)} files "
            f"({'with' if snapshot.granular else 'without'} document manifest)"
        )
        return Result.success(snapshot)

    async def _fetch_from_origin(self) -> Result[CacheSnapshot]:
        start_time = time.monotonic()
        generation = self._generation
        try:
            documents = await self.fetcher.fetch_all()
        except Exception as e:
            result: Result[CacheSnapshot] = Result.from_exception(e)
            self.last_error = result
            if result.kind is ErrorKind.CONFIGURATION:
                logger.error(f"Origin is not configured: {e}")
            else:
                logger.warning(f"Origin fetch failed ({result.kind.value}): {e}")
            if self.store.peek() is None:
                await self.distributed.set_status(KnowledgeBaseStatus.not_synced())
            return result

        if not self.uploads.assets():
            self.uploads.remember(await self.distributed.get_assets())
        await self._upload_binaries(documents)

        snapshot = CacheSnapshot(
            documents=documents,
            assets=self._assets_for(documents),
            cached_at=self._clock(),
        )
        if generation != self._generation:
            # Cleared while this fetch ran: hand the result to its waiters only
            logger.info("Discarding context fetched before the cache was cleared")
            return Result.success(snapshot)

        self.store.put(snapshot)
        self.last_error = None

        await asyncio.gather(
            self.distributed.set_context(documents, snapshot.text_block, snapshot.cached_at),
            self.distributed.set_assets(self.uploads.assets()),
            self.distributed.set_status(snapshot.status()),
        )

        if self.retriever is not None and self.index_on_fetch:
            await self._sync_index(documents)

        duration = time.monotonic() - start_time
        logger.info(
            f"Context loaded from origin: {len(documents)} files, "
            f"{len(snapshot.assets)} assets in {duration:.1f}s"
        )
        return Result.success(snapshot)

    async def _upload_binaries(self, documents: list[SourceDocument]) -> None:
        binaries = [doc for doc in documents if not doc.is_text and doc.binary is not None]
        if binaries:
            await asyncio.gather(*(self._upload_one(doc) for doc in binaries))

    async def _upload_one(self, doc: SourceDocument) -> Optional[UploadedAsset]:
        try:
            return await self.uploads.get_or_upload(doc.id, doc.binary, doc.name, doc.mime_type)
        except Exception as e:
            logger.warning(f'Upload failed for "{doc.name}", asset dropped: {e}')
            return None

    async def _sync_index(self, documents: list[SourceDocument]) -> None:
        try:
            await self.retriever.sync(documents)
        except Exception as e:
            logger.warning(f"Index sync after fetch failed: {e}")

    def _assets_for(self, documents: Optional[list[SourceDocument]]) -> dict[str, UploadedAsset]:
        reusable = self.uploads.assets()
        if documents is None:
            return reusable
        return {doc.id: reusable[doc.id] for doc in documents if doc.id in reusable}
