from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from geo_engine.models import GeoPoint


class StockLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    UNKNOWN = "UNKNOWN"


class SortKey(str, Enum):
    DISTANCE = "DISTANCE"
    RATING = "RATING"
    NAME = "NAME"
    OPEN_FIRST = "OPEN_FIRST"

    @classmethod
    def _missing_(cls, value: object) -> SortKey | None:
        if not isinstance(value, str):
            return None
        normalized = value.strip().upper()
        if normalized == "OPENING_HOURS":
            return cls.OPEN_FIRST
        for member in cls:
            if member.value == normalized:
                return member
        return None


@dataclass(frozen=True)
class FacilityRecord:
    id: str
    name: str
    address: str
    lat: float
    lng: float
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    phone_number: str | None = None
    website_url: str | None = None
    operating_hours: str | None = None
    emergency_hours: str | None = None
    is_24_hours: bool = False
    has_delivery: bool = False
    has_drive_through: bool = False
    accepts_insurance: bool = False
    has_consultation: bool = False
    chain_name: str | None = None
    rating: float | None = None
    is_active: bool = True
    services: tuple[str, ...] = ()

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)


@dataclass(frozen=True)
class ProductRecord:
    id: str
    name: str
    generic_name: str | None = None
    category: str | None = None
    requires_prescription: bool = False
    brand_names: tuple[str, ...] = ()
    manufacturer: str | None = None
    active_ingredient: str | None = None


@dataclass(frozen=True)
class AvailabilityEstimate:
    medicine_name: str
    likely_available: bool
    confidence: float
    stock_level: StockLevel
    computed_at: datetime


@dataclass(frozen=True)
class FacilityCriteria:
    """Optional feature constraints; ``None`` never rejects."""

    open_now: bool | None = None
    is_24_hours: bool | None = None
    has_delivery: bool | None = None
    has_drive_through: bool | None = None
    accepts_insurance: bool | None = None
    chain_name: str | None = None
    services: tuple[str, ...] = ()
