from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from devkit.timezone import configure_service_timezone


class ServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    SERVICE_NAME: str = "service"
    SERVICE_TIMEZONE: str = "UTC"
    DATABASE_URL: str | None = None
    REDIS_URL: str | None = None
    FACILITY_PROVIDER_BASE_URL: str | None = None

    SEARCH_DEFAULT_RADIUS_KM: float = 10.0
    SEARCH_MAX_RADIUS_KM: float = 50.0
    SEARCH_DEFAULT_MAX_RESULTS: int = 20
    SEARCH_MAX_RESULTS_CAP: int = 50
    SEARCH_CACHE_TTL_SECONDS: int = 30

    GOOGLE_MAPS_API_KEY: str | None = None
    ROUTING_TIMEOUT_SECONDS: float = 5.0
    ROUTING_MAX_RETRIES: int = 3
    ROUTING_AVERAGE_SPEED_KMH: float = 30.0


def load_settings(service_name: str) -> ServiceSettings:
    settings = ServiceSettings(SERVICE_NAME=service_name)
    configure_service_timezone(settings.SERVICE_TIMEZONE)
    return settings
