from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _default_client(url: str) -> Any:
    import redis.asyncio as redis

    return redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=30,
    )


class AsyncRedisManager:
    """Cache-facing Redis commands with reconnect-and-retry.

    Exposes only the commands the search cache needs. A failed command drops
    the client, reconnects, and retries up to ``max_retries`` attempts.
    """

    def __init__(
        self,
        url: str,
        *,
        max_retries: int = 3,
        base_delay_seconds: float = 0.2,
        client_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self._url = url
        self._max_retries = max_retries
        self._base_delay_seconds = base_delay_seconds
        self._client_factory = client_factory or _default_client
        self._client: Any | None = None
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        return await self._run(lambda client: client.get(key))

    async def setex(self, key: str, seconds: int, value: str) -> bool:
        return await self._run(lambda client: client.setex(key, seconds, value))

    async def close(self) -> None:
        async with self._lock:
            await self._drop_client()

    async def _connected(self) -> Any:
        async with self._lock:
            if self._client is None:
                client = self._client_factory(self._url)
                await client.ping()
                self._client = client
            return self._client

    async def _run(self, command: Callable[[Any], Awaitable[T]]) -> T:
        for attempt in range(1, self._max_retries + 1):
            try:
                return await command(await self._connected())
            except Exception:
                if attempt >= self._max_retries:
                    raise
                logger.warning("redis_command_retry", extra={"component": "devkit", "attempt": attempt})
                async with self._lock:
                    await self._drop_client()
                await asyncio.sleep(self._base_delay_seconds * (2 ** (attempt - 1)))
        raise RuntimeError("unreachable")

    async def _drop_client(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.close()
        except Exception:
            logger.warning("redis_close_failed", extra={"component": "devkit"}, exc_info=True)


def create_redis_client(url: str | None) -> AsyncRedisManager | None:
    if not url:
        return None
    return AsyncRedisManager(url)
