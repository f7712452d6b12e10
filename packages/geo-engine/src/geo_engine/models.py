from __future__ import annotations

from dataclasses import dataclass


class InvalidCoordinateError(ValueError):
    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field} {reason}")
        self.field = field
        self.reason = reason


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (-90 <= self.lat <= 90):
            raise InvalidCoordinateError("latitude", "must be in [-90, 90]")
        if not (-180 <= self.lng <= 180):
            raise InvalidCoordinateError("longitude", "must be in [-180, 180]")


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float
