from __future__ import annotations

from geo_engine.distance import haversine_distance_km
from geo_engine.models import GeoPoint


def estimate_travel_minutes(distance_km: float, average_speed_kmh: float) -> float:
    if average_speed_kmh <= 0:
        raise ValueError("average_speed_kmh must be > 0")
    return distance_km / average_speed_kmh * 60


class EstimatedRoutingProvider:
    """Straight-line travel time estimate used when no routing API is configured."""

    def __init__(self, average_speed_kmh: float = 30.0) -> None:
        if average_speed_kmh <= 0:
            raise ValueError("average_speed_kmh must be > 0")
        self._average_speed_kmh = average_speed_kmh

    async def batch_travel_time(
        self,
        origin: GeoPoint,
        destinations: list[GeoPoint],
    ) -> list[int | None]:
        return [
            round(estimate_travel_minutes(haversine_distance_km(origin, item), self._average_speed_kmh))
            for item in destinations
        ]
