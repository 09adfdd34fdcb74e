"""Protocol definitions for external collaborators."""

from contextpack.protocols.asset_host import AssetHost, HostedFile
from contextpack.protocols.chunker import ChunkingStrategy
from contextpack.protocols.embedder import EmbeddingProvider
from contextpack.protocols.kv_store import KeyValueStore
from contextpack.protocols.origin import DocumentOrigin, OriginEntry
from contextpack.protocols.role_mapping import RoleFolderMapping, RoleMappingSource
from contextpack.protocols.vector_index import VectorHit, VectorIndex, VectorPage, VectorRecord

__all__ = [
    "AssetHost",
    "ChunkingStrategy",
    "DocumentOrigin",
    "EmbeddingProvider",
    "HostedFile",
    "KeyValueStore",
    "OriginEntry",
    "RoleFolderMapping",
    "RoleMappingSource",
    "VectorHit",
    "VectorIndex",
    "VectorPage",
    "VectorRecord",
]
