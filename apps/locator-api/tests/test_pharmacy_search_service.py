from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from devkit.config import ServiceSettings
from geo_engine.models import GeoPoint
from locator_api.cache import InMemoryCacheStore, SearchResultCache
from locator_api.errors import ApiError, InternalError, InvalidRequestError, UpstreamUnavailableError
from locator_api.repositories.facility_repository import FacilityRepository
from locator_api.repositories.product_repository import ProductRepository
from locator_api.schemas.pharmacy import SearchRequest
from locator_api.services.pharmacy_search_service import PharmacySearchService, build_search_cache_key
from locator_api.services.travel_time_service import TravelTimeService
from pharmacy_engine.models import FacilityRecord, SortKey, StockLevel

CENTER_LAT, CENTER_LNG = 40.7128, -74.0060
WEDNESDAY_NOON = datetime(2024, 6, 5, 12, 0, tzinfo=timezone.utc)


def pharmacy(facility_id: str, lat: float = CENTER_LAT, lng: float = CENTER_LNG, **overrides) -> FacilityRecord:
    values = {"id": facility_id, "name": f"Pharmacy {facility_id}", "address": "1 Main St", "lat": lat, "lng": lng}
    values.update(overrides)
    return FacilityRecord(**values)


TWO_OPEN_PHARMACIES = [
    pharmacy("far", lat=40.7848, is_24_hours=True),
    pharmacy("near", is_24_hours=True),
]


class CountingRepository(FacilityRepository):
    def __init__(self, seed) -> None:
        super().__init__(seed=seed)
        self.box_calls = 0

    async def find_in_bounding_box(self, *args, **kwargs):
        self.box_calls += 1
        await asyncio.sleep(0.01)
        return await super().find_in_bounding_box(*args, **kwargs)


class FailingRepository:
    def __init__(self, error: Exception) -> None:
        self.error = error

    async def find_in_bounding_box(self, *args, **kwargs):
        raise self.error

    async def find_by_id(self, facility_id):
        raise self.error


class StubRouting:
    def __init__(self, minutes: int = 7, delay: float = 0.0, error: Exception | None = None) -> None:
        self.minutes = minutes
        self.delay = delay
        self.error = error

    async def batch_travel_time(self, origin, destinations):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return [self.minutes for _ in destinations]


def build_service(
    facilities=None,
    repository=None,
    routing=None,
    cache: SearchResultCache | None = None,
    timeout_seconds: float = 1.0,
) -> PharmacySearchService:
    return PharmacySearchService(
        facilities=repository or FacilityRepository(seed=facilities or TWO_OPEN_PHARMACIES),
        products=ProductRepository(),
        travel_time=TravelTimeService(routing or StubRouting(), timeout_seconds=timeout_seconds),
        cache=cache,
        settings=ServiceSettings(),
        clock=lambda: WEDNESDAY_NOON,
    )


def request(**overrides) -> SearchRequest:
    values = {"latitude": CENTER_LAT, "longitude": CENTER_LNG, "radius_km": 10, "max_results": 20}
    values.update(overrides)
    return SearchRequest(**values)


@pytest.mark.asyncio
async def test_two_facility_scenario_orders_by_distance() -> None:
    results = await build_service().search(request(sort_by=SortKey.DISTANCE))

    assert [item.id for item in results] == ["near", "far"]
    assert results[0].distance_km == 0.00
    assert 7.9 < results[1].distance_km < 8.1
    assert all(item.is_open_now for item in results)
    assert all(item.travel_time_minutes == 7 for item in results)
    assert results[0].directions_url.startswith("https://www.google.com/maps/dir/40.712800,-74.006000/")
    assert all(item.availability is None for item in results)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"latitude": 90.5}, "latitude must be in [-90, 90]"),
        ({"longitude": -181}, "longitude must be in [-180, 180]"),
        ({"radius_km": 0}, "radius_km must be > 0"),
        ({"radius_km": -5}, "radius_km must be > 0"),
        ({"max_results": 0}, "max_results must be >= 1"),
    ],
)
async def test_invalid_requests_fail_before_store_access(overrides, message) -> None:
    repository = CountingRepository(TWO_OPEN_PHARMACIES)

    with pytest.raises(InvalidRequestError) as exc_info:
        await build_service(repository=repository).search(request(**overrides))

    assert exc_info.value.message == message
    assert exc_info.value.status_code == 422
    assert repository.box_calls == 0


@pytest.mark.asyncio
async def test_radius_is_clamped_to_configured_maximum() -> None:
    facilities = [pharmacy("within-50", lat=CENTER_LAT + 0.40), pharmacy("beyond-50", lat=CENTER_LAT + 0.50)]

    results = await build_service(facilities=facilities).search(request(radius_km=500))

    assert [item.id for item in results] == ["within-50"]


@pytest.mark.asyncio
async def test_defaults_apply_when_radius_and_size_missing() -> None:
    results = await build_service().search(request(radius_km=None, max_results=None))

    assert len(results) == 2


@pytest.mark.asyncio
async def test_results_are_truncated_and_capped() -> None:
    facilities = [pharmacy(f"ph-{index:02d}", lat=CENTER_LAT + index * 0.001) for index in range(60)]
    service = build_service(facilities=facilities)

    three = await service.search(request(max_results=3))
    capped = await service.search(request(max_results=500))

    assert [item.id for item in three] == ["ph-00", "ph-01", "ph-02"]
    assert len(capped) == 50


@pytest.mark.asyncio
async def test_travel_time_timeout_leaves_other_fields_populated() -> None:
    service = build_service(routing=StubRouting(delay=1.0), timeout_seconds=0.01)

    results = await service.search(request())

    assert len(results) == 2
    assert all(item.travel_time_minutes is None for item in results)
    assert all(item.distance_km is not None and item.name for item in results)


@pytest.mark.asyncio
async def test_travel_time_error_never_raises() -> None:
    results = await build_service(routing=StubRouting(error=RuntimeError("quota"))).search(request())

    assert [item.travel_time_minutes for item in results] == [None, None]


@pytest.mark.asyncio
async def test_open_first_ranking_through_service() -> None:
    facilities = [
        pharmacy("closed-near", operating_hours="Sat-Sun: 9AM-9PM"),
        pharmacy("open-far", lat=CENTER_LAT + 0.04, operating_hours="Mon-Fri: 8AM-10PM"),
    ]

    results = await build_service(facilities=facilities).search(request(sort_by="OPENING_HOURS"))

    assert [item.id for item in results] == ["open-far", "closed-near"]
    assert [item.is_open_now for item in results] == [True, False]


@pytest.mark.asyncio
async def test_availability_is_attached_when_medicine_named() -> None:
    facilities = [pharmacy("cvs", chain_name="CVS", is_24_hours=True, services=("a", "b", "c"))]

    results = await build_service(facilities=facilities).search(request(medicine_name="advil"))

    availability = results[0].availability
    assert availability is not None
    assert availability.stock_level is StockLevel.HIGH
    assert availability.likely_available
    assert availability.computed_at == WEDNESDAY_NOON


@pytest.mark.asyncio
async def test_unknown_medicine_is_reported_as_unknown() -> None:
    results = await build_service().search(request(medicine_name="unobtainium"))

    assert all(item.availability.stock_level is StockLevel.UNKNOWN for item in results)
    assert all(item.availability.confidence <= 0.1 for item in results)


@pytest.mark.asyncio
async def test_identical_requests_are_served_from_cache() -> None:
    repository = CountingRepository(TWO_OPEN_PHARMACIES)
    cache = SearchResultCache(store=InMemoryCacheStore(), ttl_seconds=30)
    service = build_service(repository=repository, cache=cache)

    first = await service.search(request(latitude=40.71281))
    second = await service.search(request(latitude=40.71284))

    assert repository.box_calls == 1
    assert first == second


@pytest.mark.asyncio
async def test_concurrent_identical_requests_compute_once() -> None:
    repository = CountingRepository(TWO_OPEN_PHARMACIES)
    cache = SearchResultCache(store=InMemoryCacheStore(), ttl_seconds=30)
    service = build_service(repository=repository, cache=cache)

    outcomes = await asyncio.gather(*(service.search(request()) for _ in range(4)))

    assert repository.box_calls == 1
    assert all(len(item) == 2 for item in outcomes)


@pytest.mark.asyncio
async def test_store_api_error_maps_to_upstream_unavailable() -> None:
    service = build_service(repository=FailingRepository(ApiError("UPSTREAM_TIMEOUT", "Upstream timeout", 504)))

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await service.search(request())

    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_unexpected_store_error_maps_to_internal() -> None:
    service = build_service(repository=FailingRepository(RuntimeError("disk on fire")))

    with pytest.raises(InternalError) as exc_info:
        await service.search(request())

    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_search_with_product_requires_medicine_name() -> None:
    with pytest.raises(InvalidRequestError) as exc_info:
        await build_service().search_with_product(request(medicine_name="  "))

    assert exc_info.value.field == "medicine_name"


@pytest.mark.asyncio
async def test_search_with_product_filters_by_confidence() -> None:
    facilities = [
        pharmacy("chain", chain_name="Walgreens", is_24_hours=True),
        pharmacy("plain", lat=CENTER_LAT + 0.01, is_24_hours=False, operating_hours="Mon-Fri: 8AM-10PM"),
    ]
    service = build_service(facilities=facilities)

    results = await service.search_with_product(request(medicine_name="Amoxicillin 500mg"), min_confidence=0.7)

    assert [item.id for item in results] == ["chain"]


@pytest.mark.asyncio
async def test_search_open_now_keeps_only_open_facilities() -> None:
    facilities = [
        pharmacy("weekend-only", operating_hours="Sat-Sun: 9AM-9PM"),
        pharmacy("always", lat=CENTER_LAT + 0.01, is_24_hours=True),
    ]

    results = await build_service(facilities=facilities).search_open_now(CENTER_LAT, CENTER_LNG)

    assert [item.id for item in results] == ["always"]


@pytest.mark.asyncio
async def test_get_details_with_and_without_origin() -> None:
    service = build_service()

    assert await service.get_details("missing") is None

    bare = await service.get_details("far")
    assert bare is not None
    assert bare.distance_km is None
    assert bare.travel_time_minutes is None

    located = await service.get_details("far", GeoPoint(lat=CENTER_LAT, lng=CENTER_LNG))
    assert located is not None
    assert 7.9 < located.distance_km < 8.1
    assert located.travel_time_minutes == 7
    assert located.directions_url is not None



@pytest.mark.asyncio
async def test_availability_summary_estimates_each_medicine() -> None:
    service = build_service(facilities=[pharmacy("cvs", chain_name="CVS", is_24_hours=True)])

    summary = await service.availability_summary("cvs", ["advil", "unobtainium", " "])

    assert summary is not None
    assert set(summary) == {"advil", "unobtainium"}
    assert summary["advil"].likely_available
    assert summary["unobtainium"].stock_level is StockLevel.UNKNOWN
    assert await service.availability_summary("missing", ["advil"]) is None
    with pytest.raises(InvalidRequestError):
        await service.availability_summary("cvs", [" "])

def test_cache_key_normalizes_coordinate_and_filters() -> None:
    first = build_search_cache_key(request(latitude=40.71281, services=("Vaccinations", " photo")), 10, 20)
    second = build_search_cache_key(request(latitude=40.71284, services=("photo", "vaccinations")), 10, 20)
    other_sort = build_search_cache_key(request(sort_by=SortKey.RATING), 10, 20)

    assert first == second
    assert first != other_sort


def test_cache_key_keeps_full_radius_precision() -> None:
    base = request()
    assert build_search_cache_key(base, 10.0000001, 20) != build_search_cache_key(base, 10.0000002, 20)
    assert build_search_cache_key(base, 10, 20) == build_search_cache_key(base, 10.0, 20)
