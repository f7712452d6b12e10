from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from time import perf_counter
from typing import Any, TypeVar

from devkit.config import ServiceSettings
from devkit.timezone import now_local
from geo_engine.geofence import bounding_box
from geo_engine.models import GeoPoint
from pharmacy_engine.availability import (
    ProductCatalogLike,
    estimate_availability,
    estimate_many,
    filter_by_min_confidence,
    resolve_product,
)
from pharmacy_engine.filters import apply_filters
from pharmacy_engine.models import FacilityRecord, SortKey
from pharmacy_engine.ranking import rank

from locator_api.cache import SearchResultCache
from locator_api.errors import ApiError, InternalError, InvalidRequestError, UpstreamUnavailableError
from locator_api.observability import SearchMetrics
from locator_api.repositories.facility_repository import FacilityRepositoryLike
from locator_api.schemas.pharmacy import AvailabilityItem, SearchRequest, SearchResult
from locator_api.services.travel_time_service import TravelTimeService

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MIN_CONFIDENCE = 0.7
OPEN_NOW_RADIUS_KM = 15.0
OPEN_NOW_MAX_RESULTS = 15


def _flag(value: bool | None) -> str:
    return "*" if value is None else str(value).lower()


def build_search_cache_key(request: SearchRequest, radius_km: float, max_results: int) -> str:
    """Normalized key: 4-decimal coordinate, radius, active filters, product, sort and size."""
    services = ",".join(sorted({tag.strip().lower() for tag in request.services if tag and tag.strip()}))
    parts = (
        f"{request.latitude:.4f}",
        f"{request.longitude:.4f}",
        repr(float(radius_km)),
        _flag(request.open_now),
        _flag(request.is_24_hours),
        _flag(request.has_delivery),
        _flag(request.has_drive_through),
        _flag(request.accepts_insurance),
        (request.chain_name or "").strip().lower() or "*",
        services or "*",
        (request.medicine_name or "").strip().lower() or "*",
        request.sort_by.value,
        str(max_results),
    )
    return ":".join(parts)


class PharmacySearchService:
    def __init__(
        self,
        facilities: FacilityRepositoryLike,
        products: ProductCatalogLike,
        travel_time: TravelTimeService,
        cache: SearchResultCache | None = None,
        settings: ServiceSettings | None = None,
        metrics: SearchMetrics | None = None,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        settings = settings or ServiceSettings()
        self._facilities = facilities
        self._products = products
        self._travel_time = travel_time
        self._cache = cache
        self._metrics = metrics
        self._clock = clock
        self._default_radius_km = settings.SEARCH_DEFAULT_RADIUS_KM
        self._max_radius_km = settings.SEARCH_MAX_RADIUS_KM
        self._default_max_results = settings.SEARCH_DEFAULT_MAX_RESULTS
        self._max_results_cap = settings.SEARCH_MAX_RESULTS_CAP

    async def search(self, request: SearchRequest) -> list[SearchResult]:
        radius_km, max_results = self._normalize(request)
        center = GeoPoint(lat=request.latitude, lng=request.longitude)
        started = perf_counter()
        logger.info(
            "pharmacy_search_started",
            extra={
                "component": "locator_api",
                "radius_km": radius_km,
                "max_results": max_results,
                "sort_by": request.sort_by.value,
                "medicine_name": request.medicine_name,
            },
        )

        if self._cache is None:
            results = await self._compute(request, center, radius_km, max_results)
        else:
            key = build_search_cache_key(request, radius_km, max_results)

            async def _compute_payload() -> dict[str, Any]:
                computed = await self._compute(request, center, radius_km, max_results)
                return {"results": [item.model_dump(mode="json") for item in computed]}

            payload, hit = await self._cache.get_or_compute(key, _compute_payload)
            if hit:
                logger.info("search_cache_hit", extra={"component": "locator_api", "key": key})
            if self._metrics is not None:
                self._metrics.record_cache(hit)
            results = [SearchResult.model_validate(item) for item in payload["results"]]

        duration_ms = (perf_counter() - started) * 1000.0
        if self._metrics is not None:
            self._metrics.observe_search(duration_ms)
        logger.info(
            "pharmacy_search_completed",
            extra={"component": "locator_api", "result_count": len(results), "duration_ms": round(duration_ms, 2)},
        )
        return results

    async def search_with_product(
        self,
        request: SearchRequest,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    ) -> list[SearchResult]:
        if not request.medicine_name or not request.medicine_name.strip():
            raise InvalidRequestError("medicine_name", "must not be empty")
        if not 0.0 <= min_confidence <= 1.0:
            raise InvalidRequestError("min_confidence", "must be in [0, 1]")
        results = await self.search(request)
        return filter_by_min_confidence(results, min_confidence)

    async def search_open_now(
        self,
        latitude: float,
        longitude: float,
        radius_km: float = OPEN_NOW_RADIUS_KM,
        max_results: int = OPEN_NOW_MAX_RESULTS,
    ) -> list[SearchResult]:
        request = SearchRequest(
            latitude=latitude,
            longitude=longitude,
            radius_km=radius_km,
            max_results=max_results,
            open_now=True,
            sort_by=SortKey.DISTANCE,
        )
        return await self.search(request)

    async def get_details(self, facility_id: str, origin: GeoPoint | None = None) -> SearchResult | None:
        facility = await self._guard_store(lambda: self._facilities.find_by_id(facility_id))
        if facility is None:
            return None
        result = SearchResult.from_facility(facility, origin, self._clock())
        if origin is None:
            return result
        minutes = await self._travel_time.enrich(origin, [facility.location])
        return result.model_copy(update={"travel_time_minutes": minutes[0]})

    async def availability_summary(
        self,
        facility_id: str,
        medicine_names: Sequence[str],
    ) -> dict[str, AvailabilityItem] | None:
        if not any(name.strip() for name in medicine_names):
            raise InvalidRequestError("medicine_names", "must name at least one medicine")
        facility = await self._guard_store(lambda: self._facilities.find_by_id(facility_id))
        if facility is None:
            return None
        estimates = await estimate_many(facility, self._products, medicine_names, self._clock())
        return {name: AvailabilityItem.from_estimate(estimate) for name, estimate in estimates.items()}

    def _normalize(self, request: SearchRequest) -> tuple[float, int]:
        if not -90.0 <= request.latitude <= 90.0:
            raise InvalidRequestError("latitude", "must be in [-90, 90]")
        if not -180.0 <= request.longitude <= 180.0:
            raise InvalidRequestError("longitude", "must be in [-180, 180]")

        radius_km = self._default_radius_km if request.radius_km is None else request.radius_km
        if not radius_km > 0:
            raise InvalidRequestError("radius_km", "must be > 0")
        max_results = self._default_max_results if request.max_results is None else request.max_results
        if max_results < 1:
            raise InvalidRequestError("max_results", "must be >= 1")
        return min(radius_km, self._max_radius_km), min(max_results, self._max_results_cap)

    async def _compute(
        self,
        request: SearchRequest,
        center: GeoPoint,
        radius_km: float,
        max_results: int,
    ) -> list[SearchResult]:
        box = bounding_box(center, radius_km)
        candidates = await self._guard_store(
            lambda: self._facilities.find_in_bounding_box(
                box.min_lat, box.max_lat, box.min_lng, box.max_lng, active_only=True
            )
        )
        now = self._clock()
        matched = apply_filters(candidates, center, radius_km, request.criteria(), now)
        results = [SearchResult.from_facility(facility, center, now) for facility in matched]

        if request.medicine_name and request.medicine_name.strip():
            results = await self._attach_availability(results, matched, request.medicine_name.strip(), now)

        minutes = await self._travel_time.enrich(center, [item.location for item in results])
        results = [
            item.model_copy(update={"travel_time_minutes": value}) for item, value in zip(results, minutes)
        ]
        return rank(results, request.sort_by)[:max_results]

    async def _attach_availability(
        self,
        results: list[SearchResult],
        facilities: list[FacilityRecord],
        medicine_name: str,
        now: datetime,
    ) -> list[SearchResult]:
        product = await resolve_product(self._products, medicine_name)
        return [
            item.model_copy(
                update={
                    "availability": AvailabilityItem.from_estimate(
                        estimate_availability(facility, product, medicine_name, now)
                    )
                }
            )
            for item, facility in zip(results, facilities)
        ]

    async def _guard_store(self, operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await operation()
        except ApiError as exc:
            logger.warning(
                "facility_store_unavailable",
                extra={"component": "locator_api", "code": exc.code},
            )
            raise UpstreamUnavailableError(exc.message) from exc
        except Exception as exc:
            logger.exception("facility_store_failed", extra={"component": "locator_api"})
            raise InternalError("Facility lookup failed") from exc
