from geo_engine.models import GeoPoint

GOOGLE_MAPS_DIRECTIONS_URL = "https://www.google.com/maps/dir"


def build_directions_url(origin: GeoPoint, destination: GeoPoint) -> str:
    return (
        f"{GOOGLE_MAPS_DIRECTIONS_URL}/{origin.lat:f},{origin.lng:f}/"
        f"{destination.lat:f},{destination.lng:f}/"
        f"@{destination.lat:f},{destination.lng:f},15z"
    )
