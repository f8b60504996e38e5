from bodenrichtwert.settings import get_settings, reset_settings_cache


def test_defaults(monkeypatch):
    for name in ("BRW_CACHE", "BRW_CACHE_TTL_DAYS", "NOMINATIM_URL", "BRW_HTTP_RETRIES", "BRW_ESTIMATOR"):
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    settings = get_settings()
    assert settings.cache_enabled is True
    assert settings.cache_ttl_days == 180
    assert settings.nominatim_url == "https://nominatim.openstreetmap.org"
    assert settings.http_retries == 1
    assert settings.health_timeout == 5.0
    assert settings.estimator_enabled is True


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("BRW_CACHE", "off")
    monkeypatch.setenv("BRW_CACHE_TTL_DAYS", "30")
    monkeypatch.setenv("NOMINATIM_URL", "http://localhost:8080/")
    monkeypatch.setenv("BRW_HTTP_RETRIES", "-3")
    monkeypatch.setenv("BRW_ESTIMATOR", "0")
    reset_settings_cache()
    settings = get_settings()
    assert settings.cache_enabled is False
    assert settings.cache_ttl_days == 30.0
    assert settings.nominatim_url == "http://localhost:8080"
    assert settings.http_retries == 0
    assert settings.estimator_enabled is False


def test_garbage_values_fall_back(monkeypatch):
    monkeypatch.setenv("BRW_CACHE", "maybe")
    monkeypatch.setenv("BRW_HEALTH_TIMEOUT", "soon")
    reset_settings_cache()
    settings = get_settings()
    assert settings.cache_enabled is True
    assert settings.health_timeout == 5.0


def test_settings_are_cached(monkeypatch):
    reset_settings_cache()
    first = get_settings()
    monkeypatch.setenv("BRW_CACHE_TTL_DAYS", "1")
    assert get_settings() is first
