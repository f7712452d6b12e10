"""Common runtime devkit for service infrastructure concerns."""

from devkit.config import ServiceSettings, load_settings
from devkit.db import (
    AsyncDatabaseManager,
    Base,
    create_all_tables,
    create_async_engine,
    create_schema_if_not_exists,
    is_postgres_dsn,
    is_transient_db_error,
    normalize_postgres_dsn,
)
from devkit.observability import configure_otel, configure_quiet_access_log
from devkit.redis import AsyncRedisManager, create_redis_client
from devkit.timezone import configure_service_timezone, now_local, service_zone

__all__ = [
    "AsyncDatabaseManager",
    "AsyncRedisManager",
    "Base",
    "ServiceSettings",
    "configure_otel",
    "configure_quiet_access_log",
    "configure_service_timezone",
    "create_all_tables",
    "create_async_engine",
    "create_redis_client",
    "create_schema_if_not_exists",
    "is_postgres_dsn",
    "is_transient_db_error",
    "load_settings",
    "normalize_postgres_dsn",
    "now_local",
    "service_zone",
]
