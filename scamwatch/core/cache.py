"""TTL cache with single-flight computation per key.

Services receive a ``TTLCache`` instead of holding module-level state. The
cache is backed by a pluggable store: an in-process dict (default) or Redis.
Concurrent ``get_or_set`` callers for the same uncached key share one
underlying computation.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar

from redis.asyncio import Redis

from scamwatch.config import settings
from scamwatch.core.redis import get_redis_client

logger = logging.getLogger(__name__)

T = TypeVar("T")

Encoder = Callable[[Any], Any]
Decoder = Callable[[Any], Any]


class CacheStore(Protocol):
    """Key/value storage with per-key expiry."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...


class MemoryCacheStore:
    """In-process store with monotonic-clock expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._entries[key] = (self._clock() + max(1, ttl_seconds), value)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisCacheStore:
    """Redis-backed store; values must be JSON-serializable."""

    def __init__(self, client: Redis, *, key_prefix: str = "scamwatch:cache") -> None:
        self._client = client
        self._key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}"

    async def get(self, key: str) -> Any | None:
        raw = await self._client.get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Invalid cache payload in Redis", extra={"key": key})
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self._client.set(self._key(key), json.dumps(value), ex=max(1, ttl_seconds))

    async def delete(self, key: str) -> None:
        await self._client.delete(self._key(key))

    async def clear(self) -> None:
        async for redis_key in self._client.scan_iter(match=f"{self._key_prefix}:*"):
            await self._client.delete(redis_key)


class TTLCache:
    """Cache facade adding encode/decode hooks and single-flight loading."""

    def __init__(
        self,
        store: CacheStore | None = None,
        *,
        default_ttl_seconds: int = 3600,
    ) -> None:
        self.store: CacheStore = store or MemoryCacheStore()
        self.default_ttl_seconds = default_ttl_seconds
        self._inflight: dict[str, asyncio.Future[Any]] = {}

    async def get(self, key: str, *, decode: Decoder | None = None) -> Any | None:
        value = await self.store.get(key)
        if value is None:
            return None
        return decode(value) if decode else value

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: int | None = None,
        *,
        encode: Encoder | None = None,
    ) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        await self.store.set(key, encode(value) if encode else value, ttl)

    async def delete(self, key: str) -> None:
        await self.store.delete(key)

    async def clear(self) -> None:
        await self.store.clear()

    def in_flight(self, key: str) -> bool:
        """Whether a computation for ``key`` is currently running."""
        return key in self._inflight

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        ttl_seconds: int | None = None,
        *,
        encode: Encoder | None = None,
        decode: Decoder | None = None,
    ) -> T:
        """Return the cached value for ``key`` or compute it exactly once.

        Callers arriving while a computation is running await the same
        future. Failures propagate to every waiter and are not cached;
        ``None`` results are returned but never stored.
        """
        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug("Joining in-flight computation", extra={"key": key})
            return await asyncio.shield(pending)

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            cached = await self.get(key, decode=decode)
            if cached is not None:
                logger.debug("Cache hit", extra={"key": key})
                value = cached
            else:
                logger.debug("Cache miss", extra={"key": key})
                value = await factory()
                if value is not None:
                    await self.set(key, value, ttl_seconds, encode=encode)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unawaited future does not log a warning
            future.exception()
            raise
        else:
            future.set_result(value)
            return value
        finally:
            self._inflight.pop(key, None)


def build_cache_store() -> CacheStore:
    """Create the store selected by ``CACHE_BACKEND``."""
    if settings.cache_backend == "redis":
        return RedisCacheStore(get_redis_client())
    return MemoryCacheStore()
