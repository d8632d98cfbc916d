import hashlib
import json
from datetime import timedelta

import pytest

from insight.services.cache import (
    CacheWrite,
    ResultCache,
    auction_cache_key,
    profile_cache_key,
)
from insight.services.connection import ConnectionConfig, ConnectionManager, ConnectionState


def test_cache_keys():
    assert profile_cache_key("fp", "cb") == "insight:profile:fp:cb"

    digest = hashlib.md5(b"Developer, premium device").hexdigest()
    assert auction_cache_key("Developer, premium device", "de") == f"insight:auction:{digest}:DE"
    assert auction_cache_key("a", "US") != auction_cache_key("b", "US")


@pytest.mark.asyncio
async def test_put_then_get_roundtrips_with_ttl(connection, store):
    cache = ResultCache(connection)

    outcome = await cache.put("k", {"score": 1}, ttl=timedelta(hours=1))

    assert outcome == CacheWrite.STORED
    assert store.ttls["k"] == 3600
    assert await cache.get("k") == {"score": 1}
    assert cache.get_stats().hits == 1
    assert cache.get_stats().writes == 1


@pytest.mark.asyncio
async def test_missing_key_is_a_miss(connection):
    cache = ResultCache(connection, debug=True)

    assert await cache.get("absent") is None
    assert cache.get_stats().misses == 1


@pytest.mark.asyncio
async def test_unconfigured_store_reads_as_miss_and_skips_writes(redis_factory):
    cache = ResultCache(ConnectionManager("cache", ConnectionConfig(url=None), redis_factory))

    assert await cache.get("k") is None
    assert await cache.put("k", {"a": 1}, ttl=timedelta(seconds=5)) == CacheWrite.SKIPPED

    stats = cache.get_stats().to_dict()
    assert stats["unavailable"] == 1
    assert stats["skipped_writes"] == 1
    assert redis_factory.created == []


@pytest.mark.asyncio
async def test_read_error_is_a_miss_and_cools_connection(connection, store):
    cache = ResultCache(connection)
    await connection.acquire()
    store.fail("get")

    assert await cache.get("k") is None
    assert connection.state == ConnectionState.COOLDOWN
    assert cache.get_stats().errors == 1

    # Cooling down: the next read does not touch the store
    calls = len(store.calls)
    assert await cache.get("k") is None
    assert len(store.calls) == calls


@pytest.mark.asyncio
async def test_write_error_reports_failed_without_raising(connection, store):
    cache = ResultCache(connection)
    store.fail("setex")

    outcome = await cache.put("k", {"a": 1}, ttl=timedelta(seconds=5))

    assert outcome == CacheWrite.FAILED
    assert connection.state == ConnectionState.COOLDOWN
    assert "k" not in store.values


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '"text"'])
async def test_undecodable_entries_are_misses(connection, store, raw):
    cache = ResultCache(connection)
    store.values["k"] = raw

    assert await cache.get("k") is None
    assert cache.get_stats().hits == 0


def test_hit_rate_counts_every_lookup():
    from insight.services.cache import CacheStats

    stats = CacheStats(hits=1, misses=2, unavailable=1)
    assert stats.hit_rate == 0.25
    assert stats.to_dict()["hit_rate"] == "25.00%"
    assert CacheStats().hit_rate == 0.0
    assert json.dumps(stats.to_dict())
