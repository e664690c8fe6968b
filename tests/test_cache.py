"""
Unit Tests: Cache Backends

The in-memory backend with a controllable clock, and the Redis backend
against a small stand-in client that records the commands it receives.
"""

import fnmatch
import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from takeaway.services.cache import (
    MockCacheService,
    RedisCacheService,
    get_cache_service,
    reset_cache_service,
)
from takeaway.services.cache import real


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingRedis:
    """Just enough of ``redis.asyncio.Redis`` for the cache service."""

    def __init__(self, healthy: bool = True):
        self.store: dict[str, str] = {}
        self.expiries: dict[str, int] = {}
        self.delete_calls: list[tuple[str, ...]] = []
        self.healthy = healthy
        self.closed = False

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiries[key] = ex

    async def scan_iter(self, match=None, count=None):
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def delete(self, *keys):
        self.delete_calls.append(keys)
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    async def ping(self):
        if not self.healthy:
            raise RedisConnectionError("connection refused")
        return True

    async def aclose(self):
        self.closed = True


# =============================================================================
# In-memory cache
# =============================================================================

class TestMockCacheService:

    async def test_get_returns_what_was_set(self):
        cache = MockCacheService()
        await cache.set("dish_1_1", [{"id": 1, "name": "Mapo Tofu"}], ttl_seconds=60)

        assert await cache.get("dish_1_1") == [{"id": 1, "name": "Mapo Tofu"}]
        assert cache.hits == 1

    async def test_miss_is_counted(self):
        cache = MockCacheService()

        assert await cache.get("dish_9_1") is None
        assert cache.misses == 1

    async def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = MockCacheService(clock=clock)
        await cache.set("dish_all_1", [], ttl_seconds=86400)

        clock.now += 86399
        assert await cache.get("dish_all_1") == []

        clock.now += 1
        assert await cache.get("dish_all_1") is None
        assert cache.keys() == []

    async def test_returned_values_are_copies(self):
        cache = MockCacheService()
        await cache.set("dish_1_1", [{"id": 1}], ttl_seconds=60)

        value = await cache.get("dish_1_1")
        value.append({"id": 2})

        assert await cache.get("dish_1_1") == [{"id": 1}]

    async def test_delete_pattern_only_touches_matching_keys(self):
        cache = MockCacheService()
        for key in ["dish_1_1", "dish_2_0", "dish_all_1", "setmeal_1_1"]:
            await cache.set(key, [], ttl_seconds=60)

        result = await cache.delete_pattern("dish_*")

        assert result.pattern == "dish_*"
        assert result.deleted == 3
        assert cache.keys() == ["setmeal_1_1"]

    async def test_delete_pattern_without_matches(self):
        cache = MockCacheService()

        result = await cache.delete_pattern("dish_*")

        assert result.deleted == 0

    async def test_health_check(self):
        assert await MockCacheService().health_check() is True


# =============================================================================
# Redis cache
# =============================================================================

class TestRedisCacheService:

    async def test_set_writes_json_with_expiry(self):
        client = RecordingRedis()
        cache = RedisCacheService(client=client)

        await cache.set("dish_3_1", [{"id": 3, "price": 12.5}], ttl_seconds=86400)

        assert json.loads(client.store["dish_3_1"]) == [{"id": 3, "price": 12.5}]
        assert client.expiries["dish_3_1"] == 86400
        assert await cache.get("dish_3_1") == [{"id": 3, "price": 12.5}]

    async def test_get_miss(self):
        cache = RedisCacheService(client=RecordingRedis())

        assert await cache.get("dish_3_1") is None

    async def test_delete_pattern_scans_and_deletes(self):
        client = RecordingRedis()
        cache = RedisCacheService(client=client)
        for key in ["dish_1_1", "dish_2_1", "setmeal_1_1"]:
            await cache.set(key, [], ttl_seconds=60)

        result = await cache.delete_pattern("dish_*")

        assert result.deleted == 2
        assert list(client.store) == ["setmeal_1_1"]

    async def test_delete_pattern_in_batches(self, monkeypatch):
        monkeypatch.setattr(real, "DELETE_BATCH_SIZE", 2)
        client = RecordingRedis()
        cache = RedisCacheService(client=client)
        for category_id in range(5):
            await cache.set(f"dish_{category_id}_1", [], ttl_seconds=60)

        result = await cache.delete_pattern("dish_*")

        assert result.deleted == 5
        assert [len(keys) for keys in client.delete_calls] == [2, 2, 1]

    async def test_delete_pattern_without_matches_sends_no_delete(self):
        client = RecordingRedis()
        cache = RedisCacheService(client=client)

        result = await cache.delete_pattern("dish_*")

        assert result.deleted == 0
        assert client.delete_calls == []

    async def test_health_check_reports_unreachable_server(self):
        assert await RedisCacheService(client=RecordingRedis()).health_check() is True
        assert await RedisCacheService(client=RecordingRedis(healthy=False)).health_check() is False

    async def test_close(self):
        client = RecordingRedis()
        await RedisCacheService(client=client).close()

        assert client.closed is True


# =============================================================================
# Factory
# =============================================================================

def test_factory_uses_memory_cache_in_development():
    reset_cache_service()
    try:
        cache = get_cache_service()
        assert isinstance(cache, MockCacheService)
        assert get_cache_service() is cache
    finally:
        reset_cache_service()


@pytest.mark.parametrize("pattern,key,expected", [
    ("dish_*", "dish_12_0", True),
    ("dish_*", "setmeal_12_0", False),
    ("setmeal_*", "setmeal_all_1", True),
])
async def test_patterns_follow_redis_glob(pattern, key, expected):
    cache = MockCacheService()
    await cache.set(key, [], ttl_seconds=60)

    result = await cache.delete_pattern(pattern)

    assert (result.deleted == 1) is expected
