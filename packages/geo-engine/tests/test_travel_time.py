import pytest

from geo_engine.directions import build_directions_url
from geo_engine.models import GeoPoint
from geo_engine.travel_time import EstimatedRoutingProvider, estimate_travel_minutes


def test_estimate_travel_minutes() -> None:
    assert estimate_travel_minutes(distance_km=10, average_speed_kmh=30) == pytest.approx(20.0)


def test_estimate_travel_minutes_invalid_speed() -> None:
    with pytest.raises(ValueError):
        estimate_travel_minutes(distance_km=1, average_speed_kmh=0)


@pytest.mark.asyncio
async def test_estimated_routing_provider_returns_one_value_per_destination() -> None:
    provider = EstimatedRoutingProvider(average_speed_kmh=60)
    origin = GeoPoint(lat=40.7128, lng=-74.0060)

    minutes = await provider.batch_travel_time(origin, [origin, GeoPoint(lat=40.8028, lng=-74.0060)])

    assert minutes[0] == 0
    assert minutes[1] == 10


def test_build_directions_url() -> None:
    url = build_directions_url(GeoPoint(lat=40.7128, lng=-74.006), GeoPoint(lat=40.73, lng=-73.99))
    assert url.startswith("https://www.google.com/maps/dir/40.712800,-74.006000/40.730000,-73.990000/")
