"""
Tests for the analysis cache stores.

MemoryCacheStore is tested directly; RedisCacheStore is tested against a
mocked redis client (no server needed).
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from auditflow.cache import (
    CacheConfig,
    MemoryCacheStore,
    RedisCacheStore,
    TechnicalAnalysis,
    create_cache_store,
)
from auditflow.cache.models import deserialize_analysis, serialize_analysis
from auditflow.errors import StorageTimeoutError

BASE = datetime(2026, 1, 1, 9, 0, 0)


def make_analysis(minutes: int = 0, score: int = 80, domain: str = "example.com") -> TechnicalAnalysis:
    return TechnicalAnalysis(
        domain=domain,
        audit_id="audit-1",
        url=f"https://{domain}/",
        scores={"performance": score},
        overall_score=score,
        overall_grade="B",
        issues=[],
        computed_at=BASE + timedelta(minutes=minutes),
    )


class TestSerialization:

    def test_entry_survives_storage_format(self):
        entry = make_analysis(5, score=91)
        restored = deserialize_analysis(serialize_analysis(entry))
        assert restored == entry


class TestMemoryCacheStore:

    @pytest.mark.asyncio
    async def test_empty_domain_is_a_miss(self):
        store = MemoryCacheStore()
        assert await store.get_latest("example.com") is None
        assert [e async for e in store.history("example.com")] == []

    @pytest.mark.asyncio
    async def test_latest_is_newest_even_when_appended_out_of_order(self):
        store = MemoryCacheStore()
        await store.append(make_analysis(10, score=70))
        await store.append(make_analysis(0, score=60))

        latest = await store.get_latest("example.com")
        assert latest.overall_score == 70

        history = [e.overall_score async for e in store.history("example.com")]
        assert history == [60, 70]

    @pytest.mark.asyncio
    async def test_history_stops_at_until(self):
        store = MemoryCacheStore()
        for minutes in (0, 10, 20):
            await store.append(make_analysis(minutes, score=50 + minutes))

        entries = [e async for e in store.history("example.com", until=BASE + timedelta(minutes=15))]
        assert [e.overall_score for e in entries] == [50, 60]

    @pytest.mark.asyncio
    async def test_history_is_a_snapshot(self):
        store = MemoryCacheStore()
        await store.append(make_analysis(0))
        await store.append(make_analysis(10))

        seen = []
        async for entry in store.history("example.com"):
            seen.append(entry)
            await store.append(make_analysis(5 + len(seen)))

        assert len(seen) == 2
        assert len([e async for e in store.history("example.com")]) == 4

    @pytest.mark.asyncio
    async def test_domains_are_separate(self):
        store = MemoryCacheStore()
        await store.append(make_analysis(0, domain="a.com"))
        assert await store.get_latest("b.com") is None

    @pytest.mark.asyncio
    async def test_append_requires_timestamp(self):
        store = MemoryCacheStore()
        entry = TechnicalAnalysis("example.com", "a", "https://example.com/", {}, 0, "D")
        with pytest.raises(ValueError):
            await store.append(entry)


class TestCreateCacheStore:

    def test_memory_backend(self):
        assert isinstance(create_cache_store(CacheConfig(backend="memory")), MemoryCacheStore)

    def test_redis_backend(self):
        assert isinstance(create_cache_store(CacheConfig(backend="redis")), RedisCacheStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_cache_store(CacheConfig(backend="memcached"))


class TestRedisCacheStore:

    @pytest.fixture
    def redis_client(self):
        client = MagicMock()
        client.zrevrangebyscore = AsyncMock(return_value=[])
        client.zrangebyscore = AsyncMock(return_value=[])
        client.zadd = AsyncMock(return_value=1)
        client.ping = AsyncMock(return_value=True)
        return client

    @pytest.fixture
    def store(self, redis_client):
        config = CacheConfig(backend="redis", namespace="test", history_page_size=2, operation_timeout=1.0)
        return RedisCacheStore(config, redis=redis_client)

    def test_history_key(self, store):
        assert store.history_key("example.com") == "test:technical-analysis:example.com"

    @pytest.mark.asyncio
    async def test_append_scores_by_timestamp(self, store, redis_client):
        entry = make_analysis(3)
        await store.append(entry)

        key, mapping = redis_client.zadd.call_args.args
        assert key == "test:technical-analysis:example.com"
        assert list(mapping.values()) == [entry.timestamp]

    @pytest.mark.asyncio
    async def test_get_latest_reads_highest_score(self, store, redis_client):
        entry = make_analysis(7, score=88)
        redis_client.zrevrangebyscore.return_value = [serialize_analysis(entry)]

        latest = await store.get_latest("example.com")
        assert latest == entry
        assert store.get_stats()["hits"] == 1

    @pytest.mark.asyncio
    async def test_get_latest_degrades_to_miss_when_redis_fails(self, store, redis_client):
        redis_client.zrevrangebyscore.side_effect = RedisConnectionError("connection refused")
        assert await store.get_latest("example.com") is None
        assert store.get_stats()["errors"] == 1

    @pytest.mark.asyncio
    async def test_append_failure_surfaces(self, store, redis_client):
        redis_client.zadd.side_effect = RedisConnectionError("connection refused")
        with pytest.raises(StorageTimeoutError):
            await store.append(make_analysis(0))

    @pytest.mark.asyncio
    async def test_history_pages_with_fixed_upper_bound(self, store, redis_client):
        pages = [
            [serialize_analysis(make_analysis(0)), serialize_analysis(make_analysis(1))],
            [serialize_analysis(make_analysis(2))],
        ]
        redis_client.zrangebyscore.side_effect = pages
        until = BASE + timedelta(hours=1)

        entries = [e async for e in store.history("example.com", until=until)]

        assert [e.computed_at for e in entries] == [BASE + timedelta(minutes=m) for m in range(3)]
        first, second = redis_client.zrangebyscore.call_args_list
        assert first.args[2] == second.args[2]
        assert first.kwargs["start"] == 0
        assert second.kwargs["start"] == 2

    @pytest.mark.asyncio
    async def test_health_check_reports_ping_failure(self, store, redis_client):
        redis_client.ping.side_effect = RedisConnectionError("connection refused")

        health = await store.health_check()

        assert health["healthy"] is False
        assert "connection refused" in health["error"]

    @pytest.mark.asyncio
    async def test_health_check_connected(self, store):
        health = await store.health_check()

        assert health["healthy"] is True
        assert health["stats"]["connected"] is True
