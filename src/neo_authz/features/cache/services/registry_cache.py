"""Registry cache with per-key single-flight loading.

Holds enumerated definitions and global grant maps. Every mutation calls
``invalidate`` before returning, so a reader never sees a stale value after a
grant or definition change made through the engine.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from ..entities import CacheBackend, CacheEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RegistryCache:
    """Two-layer cache: decoded values in process, encoded values in an optional shared backend."""

    def __init__(
        self,
        ttl: int = 86400,
        key_prefix: str = "neo_authz.registry",
        backend: Optional[CacheBackend] = None,
    ):
        self.ttl = ttl
        self.key_prefix = key_prefix
        self.backend = backend
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Future] = {}
        # Bumped on invalidation so an in-flight load cannot store a stale value
        self._generations: Dict[str, int] = {}
        self.hits = 0
        self.misses = 0
        self.loads = 0

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}.{key}"

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[T]],
        ttl: Optional[int] = None,
        encode: Optional[Callable[[T], str]] = None,
        decode: Optional[Callable[[str], T]] = None,
    ) -> T:
        """Return the cached value for ``key`` or run ``loader`` once for all concurrent callers.

        A ``ttl`` of 0 disables caching and always runs the loader.
        """
        ttl = self.ttl if ttl is None else ttl
        if ttl <= 0:
            self.loads += 1
            return await loader()

        full_key = self._key(key)
        entry = self._entries.get(full_key)
        if entry is not None and not entry.is_expired:
            self.hits += 1
            return entry.value

        pending = self._inflight.get(full_key)
        if pending is not None:
            self.hits += 1
            return await asyncio.shield(pending)

        self.misses += 1
        generation = self._generations.get(full_key, 0)
        # The load runs in its own task so cancelling one caller leaves the others waiting
        task = asyncio.ensure_future(self._fill(full_key, loader, ttl, encode, decode, generation))
        self._inflight[full_key] = task
        return await asyncio.shield(task)

    async def _fill(
        self,
        full_key: str,
        loader: Callable[[], Awaitable[T]],
        ttl: int,
        encode: Optional[Callable[[T], str]],
        decode: Optional[Callable[[str], T]],
        generation: int,
    ) -> T:
        current = asyncio.current_task()
        try:
            value = await self._load(full_key, loader, ttl, encode, decode, generation)
            if self._generations.get(full_key, 0) == generation:
                self._entries[full_key] = CacheEntry.with_ttl(value, ttl)
            return value
        finally:
            if self._inflight.get(full_key) is current:
                del self._inflight[full_key]

    async def _load(
        self,
        full_key: str,
        loader: Callable[[], Awaitable[T]],
        ttl: int,
        encode: Optional[Callable[[T], str]],
        decode: Optional[Callable[[str], T]],
        generation: int,
    ) -> T:
        shared = self.backend is not None and encode is not None and decode is not None
        if shared:
            raw = await self.backend.get(full_key)
            if raw is not None:
                logger.debug(f"Registry cache backend hit for {full_key}")
                return decode(raw)

        self.loads += 1
        value = await loader()
        logger.debug(f"Registry cache loaded {full_key}")

        if shared and self._generations.get(full_key, 0) == generation:
            await self.backend.set(full_key, encode(value), ttl)
        return value

    async def invalidate(self, key: str) -> None:
        """Drop ``key`` from every layer and detach any in-flight load."""
        full_key = self._key(key)
        self._generations[full_key] = self._generations.get(full_key, 0) + 1
        self._entries.pop(full_key, None)
        self._inflight.pop(full_key, None)
        if self.backend is not None:
            await self.backend.delete(full_key)
        logger.debug(f"Registry cache invalidated {full_key}")

    async def clear(self) -> None:
        """Drop every key under the prefix."""
        for full_key in set(self._entries) | set(self._inflight):
            self._generations[full_key] = self._generations.get(full_key, 0) + 1
        self._entries.clear()
        self._inflight.clear()
        if self.backend is not None:
            await self.backend.delete_pattern(f"{self.key_prefix}.*")
        logger.info(f"Registry cache cleared ({self.key_prefix})")

    def contains(self, key: str) -> bool:
        entry = self._entries.get(self._key(key))
        return entry is not None and not entry.is_expired
