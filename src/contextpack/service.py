"""Caller-facing knowledge base facade and its wiring from settings."""

import asyncio
import logging
from typing import Any, Iterable, Optional

from contextpack.access import CachedRoleMappings, RoleFilter, StaticRoleMappings, filter_documents
from contextpack.assets import BinaryAssetUploadManager, GeminiFileHost
from contextpack.cache import DistributedTier, TieredCacheCoordinator
from contextpack.chunkers import ParagraphChunker
from contextpack.config import Settings, get_settings
from contextpack.embedders import get_embedder
from contextpack.errors import ConfigurationError
from contextpack.models import (
    ContextBundle,
    FolderScope,
    IndexSyncResult,
    KnowledgeBaseStatus,
    Match,
    RetrievalResult,
)
from contextpack.origin import OriginFetchAdapter, get_origin
from contextpack.protocols import KeyValueStore
from contextpack.retrieval import VectorRetriever
from contextpack.storage import NullKVStore, RedisKVStore, SQLiteVectorIndex
from contextpack.utils import with_timeout

logger = logging.getLogger(__name__)


class KnowledgeBase:
    """Entry point for callers assembling context for a generative-AI call."""

    def __init__(
        self,
        coordinator: TieredCacheCoordinator,
        role_filter: RoleFilter,
        retriever: VectorRetriever | None = None,
        kv: KeyValueStore | None = None,
        composite_timeout_seconds: float = 8.0,
    ):
        self.coordinator = coordinator
        self.role_filter = role_filter
        self.retriever = retriever
        self.kv = kv
        self.composite_timeout_seconds = composite_timeout_seconds

    async def get_context(self, allowed_folders: Iterable[str] | None = None) -> ContextBundle:
        """Return the context visible to ``allowed_folders`` (everything when ``None``)."""
        return await self.coordinator.get_context(FolderScope.of(allowed_folders))

    async def get_status(self) -> KnowledgeBaseStatus:
        return await self.coordinator.get_status()

    async def clear_cache(self) -> None:
        await self.coordinator.clear_cache()

    async def trigger_sync(self, force: bool = False) -> dict[str, Any]:
        return await self.coordinator.warm(force=force)

    async def trigger_index_rebuild(self) -> IndexSyncResult:
        """Re-index every current text document.

        Raises:
            ConfigurationError: If no retriever is configured
        """
        if self.retriever is None:
            raise ConfigurationError("No vector retriever is configured")
        documents = await self.coordinator.get_documents(FolderScope.everything())
        return await self.retriever.sync(documents)

    async def folders_for_roles(self, roles: Iterable[str]) -> FolderScope:
        return await self.role_filter.folders_for_roles(roles)

    async def search(self, question: str, roles: Iterable[str] | None = None) -> list[Match]:
        """Return the diversified chunk matches for ``question``; all folders when ``roles`` is ``None``."""
        if self.retriever is None:
            raise ConfigurationError("No vector retriever is configured")
        scope = FolderScope.everything() if roles is None else await self.folders_for_roles(roles)
        return await self.retriever.query(question, scope)

    async def context_for_question(self, question: str, roles: Iterable[str]) -> RetrievalResult:
        """Build a question-specific context for a user with ``roles``.

        Role lookup and the document snapshot run concurrently; each is
        bounded by the composite timeout and falls back to public-only access
        and no documents respectively.
        """
        timeout = self.composite_timeout_seconds
        scope, documents = await asyncio.gather(
            with_timeout(
                self.folders_for_roles(roles), timeout, FolderScope.public(), label="role lookup"
            ),
            with_timeout(
                self.coordinator.get_documents(FolderScope.everything()),
                timeout,
                [],
                label="document snapshot",
            ),
        )

        accessible = [doc for doc in filter_documents(documents, scope) if doc.is_text]
        if self.retriever is None:
            return VectorRetriever.full_text(accessible)

        return await with_timeout(
            self.retriever.retrieve(question, scope, documents),
            timeout,
            VectorRetriever.full_text(accessible),
            label="retrieval",
        )

    async def close(self) -> None:
        if isinstance(self.kv, RedisKVStore):
            await self.kv.close()


def build_knowledge_base(settings: Optional[Settings] = None) -> KnowledgeBase:
    """Wire a ``KnowledgeBase`` from settings."""
    settings = settings or get_settings()

    if settings.redis_url:
        kv: KeyValueStore = RedisKVStore(settings.redis_url, timeout=settings.redis_timeout_seconds)
    else:
        logger.warning("No Redis URL configured; the shared cache tier is disabled")
        kv = NullKVStore()

    gemini_key = settings.gemini_api_key.get_secret_value() if settings.gemini_api_key else None
    uploads = BinaryAssetUploadManager(
        GeminiFileHost(gemini_key),
        reuse_window_seconds=settings.asset_reuse_seconds,
        poll_interval=settings.upload_poll_interval_seconds,
        max_polls=settings.upload_max_polls,
    )

    retriever = VectorRetriever(
        SQLiteVectorIndex(settings.index_path),
        get_embedder(settings),
        chunker=ParagraphChunker(settings.chunk_target_chars, settings.chunk_overlap_chars),
        top_k=settings.top_k,
        min_score=settings.min_score,
        max_chunks_per_file=settings.max_chunks_per_file,
        max_total_chunks=settings.max_total_chunks,
        small_document_chars=settings.small_document_chars,
    )

    coordinator = TieredCacheCoordinator(
        OriginFetchAdapter(get_origin(settings)),
        uploads,
        DistributedTier(
            kv,
            context_ttl_seconds=settings.context_ttl_seconds,
            asset_ttl_seconds=settings.asset_reuse_seconds,
            status_ttl_seconds=settings.status_ttl_seconds,
        ),
        retriever=retriever,
        index_on_fetch=settings.index_on_fetch,
        context_ttl_seconds=settings.context_ttl_seconds,
    )

    role_mappings = CachedRoleMappings(
        StaticRoleMappings.from_json(settings.role_mappings_json),
        kv,
        ttl_seconds=settings.role_mapping_ttl_seconds,
    )

    return KnowledgeBase(
        coordinator,
        RoleFilter(role_mappings),
        retriever=retriever,
        kv=kv,
        composite_timeout_seconds=settings.composite_timeout_seconds,
    )
