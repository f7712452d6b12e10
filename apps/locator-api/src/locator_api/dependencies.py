from __future__ import annotations

from devkit.config import ServiceSettings, load_settings
from devkit.redis import create_redis_client
from geo_engine.travel_time import EstimatedRoutingProvider

from locator_api.cache import CacheStore, InMemoryCacheStore, RedisCacheStore, SearchResultCache
from locator_api.circuit_breaker import CircuitBreaker
from locator_api.clients.facility_provider_client import FacilityProviderClient
from locator_api.clients.routing_provider_client import RoutingProviderClient
from locator_api.observability import SearchMetrics
from locator_api.repositories.external_facility_repository import ExternalFacilityRepository
from locator_api.repositories.facility_repository import FacilityRepository, FacilityRepositoryLike
from locator_api.repositories.layered_facility_repository import LayeredFacilityRepository
from locator_api.repositories.product_repository import ProductRepository
from locator_api.services.pharmacy_search_service import PharmacySearchService
from locator_api.services.travel_time_service import RoutingProviderLike, TravelTimeService

_settings = load_settings("locator-api")

_facility_repository: FacilityRepositoryLike = FacilityRepository(database_url=_settings.DATABASE_URL)
if _settings.FACILITY_PROVIDER_BASE_URL:
    _facility_repository = LayeredFacilityRepository(
        primary=_facility_repository,
        secondary=ExternalFacilityRepository(
            FacilityProviderClient(base_url=_settings.FACILITY_PROVIDER_BASE_URL, timeout_seconds=5.0),
        ),
    )

_redis_client = create_redis_client(_settings.REDIS_URL)
_cache_store: CacheStore = RedisCacheStore(_redis_client) if _redis_client else InMemoryCacheStore()
_search_cache = SearchResultCache(store=_cache_store, ttl_seconds=_settings.SEARCH_CACHE_TTL_SECONDS)

_routing_provider: RoutingProviderLike
if _settings.GOOGLE_MAPS_API_KEY:
    _routing_provider = RoutingProviderClient(
        api_key=_settings.GOOGLE_MAPS_API_KEY,
        timeout_seconds=_settings.ROUTING_TIMEOUT_SECONDS,
        max_retries=_settings.ROUTING_MAX_RETRIES,
    )
else:
    _routing_provider = EstimatedRoutingProvider(average_speed_kmh=_settings.ROUTING_AVERAGE_SPEED_KMH)

_search_metrics = SearchMetrics()
_travel_time_service = TravelTimeService(
    provider=_routing_provider,
    circuit_breaker=CircuitBreaker(name="routing", failure_threshold=3, recovery_timeout_seconds=30),
    timeout_seconds=_settings.ROUTING_TIMEOUT_SECONDS,
    metrics=_search_metrics,
)
_search_service = PharmacySearchService(
    facilities=_facility_repository,
    products=ProductRepository(),
    travel_time=_travel_time_service,
    cache=_search_cache,
    settings=_settings,
    metrics=_search_metrics,
)


def get_settings() -> ServiceSettings:
    return _settings


def get_search_service() -> PharmacySearchService:
    return _search_service


def get_search_metrics() -> SearchMetrics:
    return _search_metrics
