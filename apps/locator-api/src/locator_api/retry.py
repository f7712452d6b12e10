from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")


async def with_exponential_backoff(
    operation: Callable[[], Awaitable[T]],
    retries: int = 3,
    base_delay_seconds: float = 0.1,
    max_delay_seconds: float = 2.0,
    on_retry: Callable[[int, float, Exception], None] | None = None,
    should_retry: Callable[[Exception], bool] | None = None,
) -> T:
    """Run ``operation`` up to ``retries`` times; the last error is re-raised."""
    if retries < 1:
        raise ValueError("retries must be >= 1")
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if should_retry and not should_retry(exc):
                raise
            attempt += 1
            if attempt >= retries:
                raise
            delay = min(max_delay_seconds, base_delay_seconds * (2 ** (attempt - 1)))
            if on_retry:
                on_retry(attempt, delay, exc)
            await asyncio.sleep(delay)
