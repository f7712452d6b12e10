from devkit.config import load_settings
from devkit.timezone import configure_service_timezone, now_local, service_zone


def test_load_settings_reads_env(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql://example")
    monkeypatch.setenv("REDIS_URL", "redis://example:6379/0")
    monkeypatch.setenv("SEARCH_MAX_RADIUS_KM", "25")
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "test-key")
    settings = load_settings("locator-api")

    assert settings.SERVICE_NAME == "locator-api"
    assert settings.DATABASE_URL == "postgresql://example"
    assert settings.REDIS_URL == "redis://example:6379/0"
    assert settings.SEARCH_MAX_RADIUS_KM == 25.0
    assert settings.GOOGLE_MAPS_API_KEY == "test-key"


def test_load_settings_defaults(monkeypatch) -> None:
    for name in ("SEARCH_DEFAULT_RADIUS_KM", "SEARCH_MAX_RADIUS_KM", "SEARCH_MAX_RESULTS_CAP", "SERVICE_TIMEZONE"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings("locator-api")

    assert settings.SEARCH_DEFAULT_RADIUS_KM == 10.0
    assert settings.SEARCH_MAX_RADIUS_KM == 50.0
    assert settings.SEARCH_MAX_RESULTS_CAP == 50
    assert settings.SERVICE_TIMEZONE == "UTC"


def test_service_timezone_is_configurable(monkeypatch) -> None:
    monkeypatch.setenv("SERVICE_TIMEZONE", "America/New_York")
    load_settings("locator-api")
    try:
        assert service_zone().key == "America/New_York"
        assert now_local().tzinfo is not None
    finally:
        configure_service_timezone("UTC")
