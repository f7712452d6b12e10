from __future__ import annotations

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class CacheStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> dict[str, Any] | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        raise NotImplementedError


class RedisLikeCacheClient(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def setex(self, key: str, seconds: int, value: str) -> bool: ...


class InMemoryCacheStore(CacheStore):
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._items: dict[str, tuple[float, dict[str, Any]]] = {}
        self._clock = clock

    async def get(self, key: str) -> dict[str, Any] | None:
        item = self._items.get(key)
        if not item:
            return None
        expires_at, value = item
        if expires_at <= self._clock():
            self._items.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        self._items[key] = (self._clock() + ttl_seconds, value)


class RedisCacheStore(CacheStore):
    def __init__(self, client: RedisLikeCacheClient) -> None:
        self._client = client

    async def get(self, key: str) -> dict[str, Any] | None:
        raw = await self._client.get(key)
        if not raw:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        payload = json.dumps(value, ensure_ascii=True)
        await self._client.setex(key, ttl_seconds, payload)


@dataclass
class SearchResultCache:
    """Short-TTL get-or-compute cache for search payloads.

    Concurrent misses on one key compute once; the per-key lock never blocks
    unrelated keys. A failing store degrades to computing without caching.
    Entries expire by TTL only.
    """

    store: CacheStore
    ttl_seconds: int = 30
    prefix: str = "pharmacies:"
    _locks: dict[str, asyncio.Lock] = field(default_factory=dict, init=False, repr=False)

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[dict[str, Any]]],
    ) -> tuple[dict[str, Any], bool]:
        full_key = f"{self.prefix}{key}"
        cached = await self._read(full_key)
        if cached is not None:
            return cached, True

        lock = self._locks.setdefault(full_key, asyncio.Lock())
        try:
            async with lock:
                cached = await self._read(full_key)
                if cached is not None:
                    return cached, True
                value = await compute()
                await self._write(full_key, value)
                return value, False
        finally:
            if not lock.locked():
                self._locks.pop(full_key, None)

    async def _read(self, key: str) -> dict[str, Any] | None:
        try:
            return await self.store.get(key)
        except Exception:
            logger.warning("search_cache_read_failed", extra={"component": "locator_api", "key": key}, exc_info=True)
            return None

    async def _write(self, key: str, value: dict[str, Any]) -> None:
        try:
            await self.store.set(key, value, self.ttl_seconds)
        except Exception:
            logger.warning("search_cache_write_failed", extra={"component": "locator_api", "key": key}, exc_info=True)
