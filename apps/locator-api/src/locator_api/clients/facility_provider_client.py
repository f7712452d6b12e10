from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from locator_api.errors import ApiError


class FacilityProviderClient:
    """HTTP client for a secondary pharmacy directory."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    async def fetch_in_bounding_box(
        self,
        min_lat: float,
        max_lat: float,
        min_lng: float,
        max_lng: float,
        active_only: bool = True,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "min_lat": min_lat,
            "max_lat": max_lat,
            "min_lng": min_lng,
            "max_lng": max_lng,
            "active_only": str(active_only).lower(),
        }
        response = await self._get("/pharmacies", params=params)
        payload = response.json()
        return list(payload.get("data", []))

    async def fetch_facility(self, facility_id: str) -> dict[str, Any] | None:
        response = await self._get(f"/pharmacies/{facility_id}", allow_not_found=True)
        if response is None:
            return None
        return response.json().get("data")

    async def _get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> httpx.Response | None:
        try:
            factory = self._client_factory or (lambda: httpx.AsyncClient(timeout=self._timeout_seconds))
            async with factory() as client:
                response = await client.get(f"{self._base_url}{path}", params=params)
                if allow_not_found and response.status_code == 404:
                    return None
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ApiError("UPSTREAM_TIMEOUT", "Upstream timeout", 504) from exc
        except httpx.HTTPStatusError as exc:
            raise ApiError("UPSTREAM_HTTP_ERROR", "Upstream returned error", 502) from exc
        except httpx.HTTPError as exc:
            raise ApiError("UPSTREAM_FAILURE", "Upstream request failed", 502) from exc
        return response
