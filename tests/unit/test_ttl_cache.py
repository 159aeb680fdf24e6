"""Unit tests for the TTL cache and its stores."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from scamwatch.core.cache import MemoryCacheStore, RedisCacheStore, TTLCache
from scamwatch.core.exceptions import ExternalAPIError
from scamwatch.services.analysis_types import DateRange


class _FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class _FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.expiry: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def set(self, key: str, value: str, ex: int) -> None:
        self.values[key] = value
        self.expiry[key] = ex

    async def delete(self, key: str) -> None:
        self.values.pop(key, None)

    async def scan_iter(self, match: str):
        prefix = match.rstrip("*")
        for key in list(self.values):
            if key.startswith(prefix):
                yield key


@pytest.mark.asyncio
async def test_memory_store_expires_entries_by_clock() -> None:
    clock = _FakeClock()
    store = MemoryCacheStore(clock=clock)

    await store.set("key", {"value": 1}, ttl_seconds=60)
    assert await store.get("key") == {"value": 1}

    clock.now += 61
    assert await store.get("key") is None
    assert len(store) == 0


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_computation() -> None:
    cache = TTLCache()
    calls = 0
    release = asyncio.Event()

    async def factory() -> str:
        nonlocal calls
        calls += 1
        await release.wait()
        return "computed"

    first = asyncio.create_task(cache.get_or_set("key", factory, 60))
    await asyncio.sleep(0)
    assert cache.in_flight("key")
    second = asyncio.create_task(cache.get_or_set("key", factory, 60))
    await asyncio.sleep(0)
    release.set()

    assert await asyncio.gather(first, second) == ["computed", "computed"]
    assert calls == 1
    assert not cache.in_flight("key")
    assert await cache.get_or_set("key", factory, 60) == "computed"
    assert calls == 1


@pytest.mark.asyncio
async def test_failure_reaches_every_waiter_and_is_not_cached() -> None:
    cache = TTLCache()
    calls = 0
    started = asyncio.Event()
    release = asyncio.Event()

    async def failing() -> str:
        nonlocal calls
        calls += 1
        started.set()
        await release.wait()
        raise ExternalAPIError("Search Console", "boom")

    first = asyncio.create_task(cache.get_or_set("key", failing, 60))
    await started.wait()
    second = asyncio.create_task(cache.get_or_set("key", failing, 60))
    await asyncio.sleep(0)
    release.set()

    results = await asyncio.gather(first, second, return_exceptions=True)
    assert all(isinstance(result, ExternalAPIError) for result in results)
    assert calls == 1

    async def succeeding() -> str:
        return "recovered"

    assert await cache.get_or_set("key", succeeding, 60) == "recovered"


@pytest.mark.asyncio
async def test_none_results_are_returned_but_not_stored() -> None:
    cache = TTLCache()
    calls = 0

    async def nothing() -> None:
        nonlocal calls
        calls += 1
        return None

    assert await cache.get_or_set("key", nothing, 60) is None
    assert await cache.get_or_set("key", nothing, 60) is None
    assert calls == 2


@pytest.mark.asyncio
async def test_redis_store_round_trips_through_encode_and_decode() -> None:
    redis = _FakeRedis()
    cache = TTLCache(RedisCacheStore(redis, key_prefix="test"))

    async def factory() -> DateRange:
        return DateRange(start_date="2026-01-01", end_date="2026-01-07")

    value = await cache.get_or_set(
        "range",
        factory,
        120,
        encode=DateRange.to_dict,
        decode=DateRange.from_dict,
    )
    cached = await cache.get("range", decode=DateRange.from_dict)

    assert value == cached == DateRange(start_date="2026-01-01", end_date="2026-01-07")
    assert json.loads(redis.values["test:range"]) == {
        "start_date": "2026-01-01",
        "end_date": "2026-01-07",
    }
    assert redis.expiry["test:range"] == 120

    await cache.clear()
    assert redis.values == {}


@pytest.mark.asyncio
async def test_redis_store_ignores_corrupt_payloads() -> None:
    redis = _FakeRedis()
    redis.values["test:broken"] = "{not json"
    store = RedisCacheStore(redis, key_prefix="test")

    value: Any = await store.get("broken")

    assert value is None
