from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Protocol

from geo_engine.models import GeoPoint

from locator_api.circuit_breaker import CircuitBreaker, CircuitOpenError
from locator_api.observability import SearchMetrics

logger = logging.getLogger(__name__)


class RoutingProviderLike(Protocol):
    async def batch_travel_time(self, origin: GeoPoint, destinations: list[GeoPoint]) -> list[int | None]: ...


class TravelTimeService:
    """Best-effort travel times; never raises for provider trouble.

    The result always has one entry per destination. Provider errors,
    timeouts and an open circuit all yield ``None`` entries.
    """

    def __init__(
        self,
        provider: RoutingProviderLike,
        circuit_breaker: CircuitBreaker | None = None,
        timeout_seconds: float = 5.0,
        metrics: SearchMetrics | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._provider = provider
        self._circuit_breaker = circuit_breaker or CircuitBreaker(name="routing")
        self._timeout_seconds = timeout_seconds
        self._metrics = metrics
        self._clock = clock

    async def enrich(self, origin: GeoPoint, destinations: list[GeoPoint]) -> list[int | None]:
        if not destinations:
            return []
        try:
            minutes = await self._circuit_breaker.call(
                lambda: asyncio.wait_for(
                    self._provider.batch_travel_time(origin, destinations),
                    timeout=self._timeout_seconds,
                ),
                now_seconds=self._clock(),
            )
        except CircuitOpenError:
            self._record_failure("circuit_open", len(destinations))
            return [None] * len(destinations)
        except TimeoutError:
            self._record_failure("timeout", len(destinations))
            return [None] * len(destinations)
        except Exception as exc:
            self._record_failure(type(exc).__name__, len(destinations))
            return [None] * len(destinations)

        if len(minutes) != len(destinations):
            self._record_failure("length_mismatch", len(destinations))
            return (list(minutes) + [None] * len(destinations))[: len(destinations)]
        return list(minutes)

    def _record_failure(self, reason: str, destination_count: int) -> None:
        logger.warning(
            "travel_time_enrichment_failed",
            extra={"component": "locator_api", "reason": reason, "destination_count": destination_count},
        )
        if self._metrics is not None:
            self._metrics.record_travel_time_failure()
