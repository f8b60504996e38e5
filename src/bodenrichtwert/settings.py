from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


DEFAULT_USER_AGENT = "BRW-API/1.0 (lebenswert.de)"
DEFAULT_CACHE_PATH = "./data/cache.json"
DEFAULT_NOMINATIM_URL = "https://nominatim.openstreetmap.org"

# Upper bound for a plausible reference value in EUR/m2. Larger numbers are
# almost always unit or parsing mistakes.
MAX_VALUE = 500_000.0


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = str(raw).strip().lower()
    if v in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, float(default)))


@dataclass(frozen=True)
class Settings:
    """Process configuration, read once from the environment."""

    cache_enabled: bool
    cache_path: str
    cache_ttl_days: float
    nominatim_url: str
    user_agent: str
    http_retries: int
    health_timeout: float
    estimator_enabled: bool

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            cache_enabled=_env_bool("BRW_CACHE", True),
            cache_path=os.getenv("CACHE_PATH") or DEFAULT_CACHE_PATH,
            cache_ttl_days=_env_float("BRW_CACHE_TTL_DAYS", 6 * 30),
            nominatim_url=(os.getenv("NOMINATIM_URL") or DEFAULT_NOMINATIM_URL).rstrip("/"),
            user_agent=os.getenv("BRW_USER_AGENT") or DEFAULT_USER_AGENT,
            http_retries=max(_env_int("BRW_HTTP_RETRIES", 1), 0),
            health_timeout=_env_float("BRW_HEALTH_TIMEOUT", 5.0),
            estimator_enabled=_env_bool("BRW_ESTIMATOR", True),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Test helper to force env re-read."""

    get_settings.cache_clear()
