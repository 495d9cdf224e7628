"""Redis cache backend adapter."""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from ....core.exceptions import CacheError

logger = logging.getLogger(__name__)


class RedisAdapter:
    """Redis implementation of the CacheBackend protocol.

    Lets several processes share the registry cache so an invalidation in one
    process is seen by the others.
    """

    def __init__(self, url: Optional[str] = None, client: Optional[redis.Redis] = None):
        if client is None and url is None:
            raise ValueError("RedisAdapter needs a url or a client")
        self._client = client or redis.from_url(url, decode_responses=True)

    @classmethod
    def from_url(cls, url: str) -> "RedisAdapter":
        return cls(url=url)

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._client.get(key)
        except RedisError as e:
            logger.error(f"Redis get failed for key {key}: {e}")
            raise CacheError(f"Failed to read cache key {key}: {e}") from e
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        try:
            if ttl and ttl > 0:
                await self._client.set(key, value, ex=ttl)
            else:
                await self._client.set(key, value)
        except RedisError as e:
            logger.error(f"Redis set failed for key {key}: {e}")
            raise CacheError(f"Failed to write cache key {key}: {e}") from e

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self._client.delete(key))
        except RedisError as e:
            logger.error(f"Redis delete failed for key {key}: {e}")
            raise CacheError(f"Failed to delete cache key {key}: {e}") from e

    async def delete_pattern(self, pattern: str) -> int:
        deleted = 0
        try:
            async for key in self._client.scan_iter(match=pattern):
                deleted += await self._client.delete(key)
        except RedisError as e:
            logger.error(f"Redis delete_pattern failed for {pattern}: {e}")
            raise CacheError(f"Failed to delete cache keys matching {pattern}: {e}") from e
        return deleted

    async def close(self) -> None:
        await self._client.aclose()
