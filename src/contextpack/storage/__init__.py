"""Storage backends: the local vector index and the distributed key-value tier."""

from contextpack.storage.kv import NullKVStore, RedisKVStore
from contextpack.storage.store import SQLiteVectorIndex

__all__ = ["NullKVStore", "RedisKVStore", "SQLiteVectorIndex"]
