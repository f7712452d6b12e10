from __future__ import annotations

from datetime import datetime
from typing import Any

from geo_engine.directions import build_directions_url
from geo_engine.distance import haversine_distance_km
from geo_engine.models import GeoPoint
from pharmacy_engine.models import AvailabilityEstimate, FacilityCriteria, FacilityRecord, SortKey, StockLevel
from pharmacy_engine.opening_hours import is_open_now
from pydantic import BaseModel, ConfigDict, field_validator


class SearchRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    radius_km: float | None = None
    max_results: int | None = None
    open_now: bool | None = None
    is_24_hours: bool | None = None
    has_delivery: bool | None = None
    has_drive_through: bool | None = None
    accepts_insurance: bool | None = None
    chain_name: str | None = None
    services: tuple[str, ...] = ()
    medicine_name: str | None = None
    sort_by: SortKey = SortKey.DISTANCE

    @field_validator("sort_by", mode="before")
    @classmethod
    def _coerce_sort_key(cls, value: Any) -> Any:
        if value is None:
            return SortKey.DISTANCE
        if isinstance(value, str):
            return SortKey(value)
        return value

    def criteria(self) -> FacilityCriteria:
        return FacilityCriteria(
            open_now=self.open_now,
            is_24_hours=self.is_24_hours,
            has_delivery=self.has_delivery,
            has_drive_through=self.has_drive_through,
            accepts_insurance=self.accepts_insurance,
            chain_name=self.chain_name,
            services=self.services,
        )


class AvailabilityItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    medicine_name: str
    likely_available: bool
    confidence: float
    stock_level: StockLevel
    computed_at: datetime

    @classmethod
    def from_estimate(cls, estimate: AvailabilityEstimate) -> AvailabilityItem:
        return cls(
            medicine_name=estimate.medicine_name,
            likely_available=estimate.likely_available,
            confidence=estimate.confidence,
            stock_level=estimate.stock_level,
            computed_at=estimate.computed_at,
        )


class SearchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    address: str
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    phone_number: str | None = None
    website_url: str | None = None
    latitude: float
    longitude: float
    operating_hours: str | None = None
    emergency_hours: str | None = None
    is_24_hours: bool = False
    has_delivery: bool = False
    has_drive_through: bool = False
    accepts_insurance: bool = False
    has_consultation: bool = False
    chain_name: str | None = None
    rating: float | None = None
    services: tuple[str, ...] = ()
    distance_km: float | None = None
    is_open_now: bool = False
    travel_time_minutes: int | None = None
    availability: AvailabilityItem | None = None
    directions_url: str | None = None

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(lat=self.latitude, lng=self.longitude)

    @classmethod
    def from_facility(cls, facility: FacilityRecord, origin: GeoPoint | None, now: datetime) -> SearchResult:
        distance_km = None
        directions_url = None
        if origin is not None:
            distance_km = round(haversine_distance_km(origin, facility.location), 2)
            directions_url = build_directions_url(origin, facility.location)
        return cls(
            id=facility.id,
            name=facility.name,
            address=facility.address,
            city=facility.city,
            state=facility.state,
            zip_code=facility.zip_code,
            phone_number=facility.phone_number,
            website_url=facility.website_url,
            latitude=facility.lat,
            longitude=facility.lng,
            operating_hours=facility.operating_hours,
            emergency_hours=facility.emergency_hours,
            is_24_hours=facility.is_24_hours,
            has_delivery=facility.has_delivery,
            has_drive_through=facility.has_drive_through,
            accepts_insurance=facility.accepts_insurance,
            has_consultation=facility.has_consultation,
            chain_name=facility.chain_name,
            rating=facility.rating,
            services=facility.services,
            distance_km=distance_km,
            is_open_now=is_open_now(facility.operating_hours, facility.is_24_hours, now),
            directions_url=directions_url,
        )
