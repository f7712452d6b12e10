import math

from geo_engine.distance import haversine_distance_km
from geo_engine.models import BoundingBox, GeoPoint

KM_PER_DEGREE = 111.0


def is_point_inside_radius(center: GeoPoint, point: GeoPoint, radius_km: float) -> bool:
    if radius_km < 0:
        raise ValueError("radius_km must be >= 0")
    return haversine_distance_km(center, point) <= radius_km


def bounding_box(center: GeoPoint, radius_km: float) -> BoundingBox:
    """Loose lat/lng rectangle around ``center``.

    Degrees per km are approximated from the center latitude only, so the box
    over-selects near the poles and at large radii. Callers must re-check
    candidates with :func:`is_point_inside_radius`.
    """
    if radius_km <= 0:
        raise ValueError("radius_km must be > 0")
    lat_offset = radius_km / KM_PER_DEGREE
    lng_offset = radius_km / (KM_PER_DEGREE * math.cos(math.radians(center.lat)))
    return BoundingBox(
        min_lat=center.lat - lat_offset,
        max_lat=center.lat + lat_offset,
        min_lng=center.lng - lng_offset,
        max_lng=center.lng + lng_offset,
    )
