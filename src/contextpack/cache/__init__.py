"""Tiered caching of the assembled document context."""

from contextpack.cache.coordinator import TieredCacheCoordinator
from contextpack.cache.distributed import CachedContext, DistributedTier
from contextpack.cache.inflight import InFlightRegistry
from contextpack.cache.store import CacheSnapshot, CacheStore

__all__ = [
    "CachedContext",
    "CacheSnapshot",
    "CacheStore",
    "DistributedTier",
    "InFlightRegistry",
    "TieredCacheCoordinator",
]
