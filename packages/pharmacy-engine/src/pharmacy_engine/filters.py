from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime

from geo_engine.geofence import is_point_inside_radius
from geo_engine.models import GeoPoint

from pharmacy_engine.models import FacilityCriteria, FacilityRecord
from pharmacy_engine.opening_hours import is_open_now

FacilityPredicate = Callable[[FacilityRecord], bool]


def within_radius(center: GeoPoint, radius_km: float) -> FacilityPredicate:
    return lambda facility: is_point_inside_radius(center, facility.location, radius_km)


def is_active(facility: FacilityRecord) -> bool:
    return facility.is_active


def open_at(now: datetime) -> FacilityPredicate:
    return lambda facility: is_open_now(facility.operating_hours, facility.is_24_hours, now)


def flag_equals(field: str, expected: bool) -> FacilityPredicate:
    return lambda facility: getattr(facility, field) == expected


def chain_contains(chain_name: str) -> FacilityPredicate:
    needle = chain_name.strip().lower()
    return lambda facility: bool(facility.chain_name) and needle in facility.chain_name.lower()


def offers_any_service(requested: Iterable[str]) -> FacilityPredicate:
    wanted = [item.strip().lower() for item in requested if item and item.strip()]

    def _predicate(facility: FacilityRecord) -> bool:
        offered = [item.lower() for item in facility.services]
        return any(tag in service for tag in wanted for service in offered)

    return _predicate


def build_predicates(
    center: GeoPoint,
    radius_km: float,
    criteria: FacilityCriteria,
    now: datetime,
) -> list[FacilityPredicate]:
    predicates: list[FacilityPredicate] = [within_radius(center, radius_km), is_active]
    if criteria.open_now:
        predicates.append(open_at(now))
    for field in ("is_24_hours", "has_delivery", "has_drive_through", "accepts_insurance"):
        expected = getattr(criteria, field)
        if expected is not None:
            predicates.append(flag_equals(field, expected))
    if criteria.chain_name and criteria.chain_name.strip():
        predicates.append(chain_contains(criteria.chain_name))
    if any(item and item.strip() for item in criteria.services):
        predicates.append(offers_any_service(criteria.services))
    return predicates


def apply_filters(
    candidates: Iterable[FacilityRecord],
    center: GeoPoint,
    radius_km: float,
    criteria: FacilityCriteria,
    now: datetime,
) -> list[FacilityRecord]:
    predicates = build_predicates(center, radius_km, criteria, now)
    return [facility for facility in candidates if all(check(facility) for check in predicates)]
