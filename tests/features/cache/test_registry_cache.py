"""Tests for the registry cache and its Redis backend."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from neo_authz.core.exceptions import CacheError
from neo_authz.features.cache.adapters import RedisAdapter
from neo_authz.features.cache.entities import CacheEntry
from neo_authz.features.cache.services import RegistryCache


class CountingLoader:
    """Loader returning ``value`` and counting calls, optionally gated on an event."""

    def __init__(self, value, gate: asyncio.Event = None):
        self.value = value
        self.gate = gate
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        return self.value


class TestRegistryCache:

    @pytest.mark.asyncio
    async def test_value_is_cached(self):
        cache = RegistryCache(ttl=60)
        loader = CountingLoader(["editor"])

        assert await cache.get_or_load("roles", loader) == ["editor"]
        assert await cache.get_or_load("roles", loader) == ["editor"]
        assert loader.calls == 1
        assert (cache.hits, cache.misses, cache.loads) == (1, 1, 1)

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_load(self):
        cache = RegistryCache(ttl=60)
        gate = asyncio.Event()
        loader = CountingLoader({"1": {2}}, gate)

        tasks = [asyncio.create_task(cache.get_or_load("role_permission", loader)) for _ in range(5)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*tasks)

        assert loader.calls == 1
        assert all(result == {"1": {2}} for result in results)

    @pytest.mark.asyncio
    async def test_ttl_zero_always_loads(self):
        cache = RegistryCache(ttl=0)
        loader = CountingLoader([])

        await cache.get_or_load("permissions", loader)
        await cache.get_or_load("permissions", loader)

        assert loader.calls == 2
        assert not cache.contains("permissions")

    @pytest.mark.asyncio
    async def test_invalidate_forces_reload(self):
        cache = RegistryCache(ttl=60)
        loader = CountingLoader([])
        await cache.get_or_load("permissions", loader)

        await cache.invalidate("permissions")
        await cache.get_or_load("permissions", loader)

        assert loader.calls == 2

    @pytest.mark.asyncio
    async def test_invalidation_during_load_discards_the_value(self):
        cache = RegistryCache(ttl=60)
        gate = asyncio.Event()
        stale = CountingLoader(["stale"], gate)

        task = asyncio.create_task(cache.get_or_load("roles", stale))
        await asyncio.sleep(0)
        await cache.invalidate("roles")
        gate.set()

        assert await task == ["stale"]
        assert not cache.contains("roles")
        assert await cache.get_or_load("roles", CountingLoader(["fresh"])) == ["fresh"]

    @pytest.mark.asyncio
    async def test_loader_errors_propagate_to_every_waiter(self):
        cache = RegistryCache(ttl=60)
        gate = asyncio.Event()

        async def failing():
            await gate.wait()
            raise ConnectionError("database down")

        tasks = [asyncio.create_task(cache.get_or_load("roles", failing)) for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(result, ConnectionError) for result in results)
        assert not cache.contains("roles")
        assert await cache.get_or_load("roles", CountingLoader(["ok"])) == ["ok"]

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_other_waiters(self):
        cache = RegistryCache(ttl=60)
        gate = asyncio.Event()
        loader = CountingLoader(["editor"], gate)

        owner = asyncio.create_task(cache.get_or_load("roles", loader))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(cache.get_or_load("roles", loader))
        await asyncio.sleep(0)

        owner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await owner
        gate.set()

        assert await waiter == ["editor"]
        assert loader.calls == 1
        assert cache.contains("roles")

    @pytest.mark.asyncio
    async def test_cancelled_only_caller_still_fills_the_cache(self):
        cache = RegistryCache(ttl=60)
        gate = asyncio.Event()
        loader = CountingLoader(["editor"], gate)

        owner = asyncio.create_task(cache.get_or_load("roles", loader))
        await asyncio.sleep(0)
        owner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await owner

        gate.set()
        assert await cache.get_or_load("roles", loader) == ["editor"]
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_expired_entry_reloads(self):
        cache = RegistryCache(ttl=60)
        loader = CountingLoader([])
        await cache.get_or_load("roles", loader)
        cache._entries["neo_authz.registry.roles"] = CacheEntry(value=[], expires_at=0.0)

        await cache.get_or_load("roles", loader)

        assert loader.calls == 2

    @pytest.mark.asyncio
    async def test_backend_used_only_with_codec(self):
        backend = AsyncMock()
        backend.get.return_value = None
        cache = RegistryCache(ttl=60, key_prefix="test", backend=backend)

        await cache.get_or_load("plain", CountingLoader([1]))
        backend.get.assert_not_awaited()

        await cache.get_or_load("shared", CountingLoader([1, 2]), encode=json.dumps, decode=json.loads)
        backend.get.assert_awaited_once_with("test.shared")
        backend.set.assert_awaited_once_with("test.shared", "[1, 2]", 60)

    @pytest.mark.asyncio
    async def test_backend_hit_skips_loader(self):
        backend = AsyncMock()
        backend.get.return_value = "[3]"
        cache = RegistryCache(ttl=60, key_prefix="test", backend=backend)
        loader = CountingLoader([1])

        assert await cache.get_or_load("shared", loader, encode=json.dumps, decode=json.loads) == [3]
        assert loader.calls == 0

    @pytest.mark.asyncio
    async def test_invalidate_and_clear_reach_the_backend(self):
        backend = AsyncMock()
        cache = RegistryCache(ttl=60, key_prefix="test", backend=backend)

        await cache.invalidate("roles")
        await cache.clear()

        backend.delete.assert_awaited_once_with("test.roles")
        backend.delete_pattern.assert_awaited_once_with("test.*")


async def _keys(*keys):
    for key in keys:
        yield key


class TestRedisAdapter:

    @pytest.mark.asyncio
    async def test_get_and_set(self):
        client = AsyncMock()
        client.get.return_value = b"cached"
        adapter = RedisAdapter(client=client)

        assert await adapter.get("key") == "cached"
        await adapter.set("key", "value", ttl=30)
        await adapter.set("key", "value")

        client.set.assert_any_await("key", "value", ex=30)
        client.set.assert_any_await("key", "value")

    @pytest.mark.asyncio
    async def test_delete_pattern(self):
        client = AsyncMock()
        client.scan_iter = MagicMock(return_value=_keys("p.a", "p.b"))
        client.delete.return_value = 1
        adapter = RedisAdapter(client=client)

        assert await adapter.delete_pattern("p.*") == 2
        client.scan_iter.assert_called_once_with(match="p.*")

    @pytest.mark.asyncio
    async def test_errors_become_cache_errors(self):
        client = AsyncMock()
        client.get.side_effect = RedisConnectionError("connection refused")
        adapter = RedisAdapter(client=client)

        with pytest.raises(CacheError):
            await adapter.get("key")

    def test_needs_url_or_client(self):
        with pytest.raises(ValueError):
            RedisAdapter()

    @pytest.mark.asyncio
    async def test_cache_error_reaches_the_caller(self):
        client = AsyncMock()
        client.get.side_effect = RedisConnectionError("connection refused")
        cache = RegistryCache(ttl=60, backend=RedisAdapter(client=client))

        with pytest.raises(CacheError):
            await cache.get_or_load("roles", CountingLoader([]), encode=json.dumps, decode=json.loads)
