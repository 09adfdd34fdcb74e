"""Key-value backends for the distributed cache tier."""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class RedisKVStore:
    """Redis-backed key-value store.

    Every failure degrades: reads return ``None`` and writes are dropped,
    with a warning, so callers fall through to the next tier.
    """

    def __init__(self, url: str, timeout: float = 2.0, client: Optional[redis.Redis] = None):
        self._client = client or redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._client.get(key)
        except (RedisError, OSError) as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        if value is None:
            logger.debug(f"Cache MISS {key}")
        return value

    async def set(self, key: str, blob: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, blob, ex=max(1, int(ttl_seconds)))
        except (RedisError, OSError) as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def close(self) -> None:
        await self._client.aclose()


class NullKVStore:
    """Stand-in used when no distributed backend is configured: always a miss."""

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, blob: str, ttl_seconds: int) -> None:
        return None
