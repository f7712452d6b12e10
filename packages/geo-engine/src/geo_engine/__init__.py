"""Geo engine core package."""

from geo_engine.directions import build_directions_url
from geo_engine.distance import haversine_distance_km
from geo_engine.geofence import bounding_box, is_point_inside_radius
from geo_engine.models import BoundingBox, GeoPoint, InvalidCoordinateError
from geo_engine.travel_time import EstimatedRoutingProvider, estimate_travel_minutes

__all__ = [
    "BoundingBox",
    "EstimatedRoutingProvider",
    "GeoPoint",
    "InvalidCoordinateError",
    "bounding_box",
    "build_directions_url",
    "estimate_travel_minutes",
    "haversine_distance_km",
    "is_point_inside_radius",
]
