from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import httpx
from geo_engine.models import GeoPoint

from locator_api.retry import with_exponential_backoff

logger = logging.getLogger(__name__)

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"
MAX_DESTINATIONS_PER_REQUEST = 25


class RoutingProviderError(Exception):
    def __init__(self, message: str, status_code: int | None = None, retryable: bool = False) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


def _is_retryable(exc: Exception) -> bool:
    return isinstance(exc, RoutingProviderError) and exc.retryable


def _format_point(point: GeoPoint) -> str:
    return f"{point.lat},{point.lng}"


def parse_element_minutes(payload: dict[str, Any], expected: int) -> list[int | None]:
    """Driving minutes per destination; non-OK elements become ``None``."""
    rows = payload.get("rows") or [{}]
    elements = rows[0].get("elements") or []
    minutes: list[int | None] = []
    for element in elements[:expected]:
        if element.get("status") != "OK":
            minutes.append(None)
            continue
        seconds = (element.get("duration") or {}).get("value")
        minutes.append(int(seconds) // 60 if seconds is not None else None)
    minutes.extend([None] * (expected - len(minutes)))
    return minutes


class RoutingProviderClient:
    """Google Distance Matrix client that batches destinations per request."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DISTANCE_MATRIX_URL,
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
        base_delay_seconds: float = 0.2,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._base_delay_seconds = base_delay_seconds
        self._client_factory = client_factory

    async def batch_travel_time(self, origin: GeoPoint, destinations: list[GeoPoint]) -> list[int | None]:
        if not destinations:
            return []
        chunks = [
            destinations[start : start + MAX_DESTINATIONS_PER_REQUEST]
            for start in range(0, len(destinations), MAX_DESTINATIONS_PER_REQUEST)
        ]
        factory = self._client_factory or (lambda: httpx.AsyncClient(timeout=self._timeout_seconds))
        async with factory() as client:
            outcomes = await asyncio.gather(
                *(self._fetch_chunk(client, origin, chunk) for chunk in chunks),
                return_exceptions=True,
            )

        failures = [item for item in outcomes if isinstance(item, BaseException)]
        for item in failures:
            if not isinstance(item, Exception):
                raise item
        if len(failures) == len(chunks):
            raise failures[0]

        minutes: list[int | None] = []
        for chunk, outcome in zip(chunks, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(
                    "routing_chunk_failed",
                    extra={"component": "locator_api", "chunk_size": len(chunk), "error": str(outcome)},
                )
                minutes.extend([None] * len(chunk))
            else:
                minutes.extend(outcome)
        return minutes

    async def _fetch_chunk(
        self,
        client: httpx.AsyncClient,
        origin: GeoPoint,
        chunk: list[GeoPoint],
    ) -> list[int | None]:
        params = {
            "origins": _format_point(origin),
            "destinations": "|".join(_format_point(point) for point in chunk),
            "mode": "driving",
            "avoid": "tolls",
            "units": "metric",
            "key": self._api_key,
        }
        payload = await with_exponential_backoff(
            lambda: self._request(client, params),
            retries=self._max_retries,
            base_delay_seconds=self._base_delay_seconds,
            on_retry=self._log_retry,
            should_retry=_is_retryable,
        )
        return parse_element_minutes(payload, len(chunk))

    async def _request(self, client: httpx.AsyncClient, params: dict[str, str]) -> dict[str, Any]:
        try:
            response = await client.get(self._base_url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise RoutingProviderError(
                f"routing provider returned {status}",
                status_code=status,
                retryable=status == 429 or status >= 500,
            ) from exc
        except httpx.TimeoutException as exc:
            raise RoutingProviderError("routing provider timeout") from exc
        except httpx.HTTPError as exc:
            raise RoutingProviderError("routing provider request failed") from exc

        payload = response.json()
        status = payload.get("status")
        if status == "OVER_QUERY_LIMIT":
            raise RoutingProviderError("routing provider rate limited", status_code=429, retryable=True)
        if status != "OK":
            raise RoutingProviderError(f"routing provider status {status}")
        return payload

    @staticmethod
    def _log_retry(attempt: int, delay: float, exc: Exception) -> None:
        logger.warning(
            "routing_provider_retry",
            extra={"component": "locator_api", "attempt": attempt, "delay_seconds": delay, "error": str(exc)},
        )
