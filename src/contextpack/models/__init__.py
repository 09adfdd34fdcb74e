"""Data models for contextpack."""

from contextpack.models.document import (
    PUBLIC_FOLDER,
    AssetRef,
    Chunk,
    ChunkMetadata,
    ContextBundle,
    SourceDocument,
    UploadedAsset,
    render_document,
    render_text_block,
)
from contextpack.models.retrieval import IndexSyncResult, Match, RetrievalResult
from contextpack.models.scope import WILDCARD, FolderScope
from contextpack.models.status import KnowledgeBaseStatus

__all__ = [
    "PUBLIC_FOLDER",
    "WILDCARD",
    "AssetRef",
    "Chunk",
    "ChunkMetadata",
    "ContextBundle",
    "FolderScope",
    "IndexSyncResult",
    "KnowledgeBaseStatus",
    "Match",
    "RetrievalResult",
    "SourceDocument",
    "UploadedAsset",
    "render_document",
    "render_text_block",
]
