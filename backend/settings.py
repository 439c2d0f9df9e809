"""Django settings for the rain status service."""
from __future__ import annotations

import os
from datetime import timezone

from django.core.exceptions import ImproperlyConfigured


def env(name: str, default: str | None = None) -> str:
    """Fetch environment variables while allowing explicit defaults."""

    value = os.environ.get(name, default)
    if value is None:
        raise ImproperlyConfigured(f"Environment variable {name} is required")
    return value


def env_flag(name: str, default: str = "0") -> bool:
    return env(name, default).strip().lower() in ("1", "true", "yes", "on")


def env_float(name: str, default: str) -> float:
    raw = env(name, default)
    try:
        return float(raw)
    except ValueError as exc:
        raise ImproperlyConfigured(f"Environment variable {name} must be a number, got {raw!r}") from exc


def env_int(name: str, default: str) -> int:
    raw = env(name, default)
    try:
        return int(raw)
    except ValueError as exc:
        raise ImproperlyConfigured(f"Environment variable {name} must be an integer, got {raw!r}") from exc


SECRET_KEY = env("DJANGO_SECRET_KEY")
DEBUG = os.environ.get("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",")

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "rest_framework",
    "backend.api",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "backend.urls"

REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "UNAUTHENTICATED_USER": None,
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True
DEFAULT_TIMEZONE = timezone.utc

# Rain status ---------------------------------------------------------------

RAIN_LOG_LEVEL = env("RAIN_LOG_LEVEL", "INFO").upper()
RAIN_STATION_TIMEZONE = os.environ.get("RAIN_STATION_TIMEZONE") or None


def _rain_sources() -> list[dict]:
    sources: list[dict] = []
    if env_flag("RAIN_CURRENT_ENABLED", "1"):
        sources.append(
            {
                "source_id": "current_conditions",
                "name": env("RAIN_CURRENT_NAME", "Current Rain Status"),
                "station_id": env("RAIN_CURRENT_STATION", "KPHL"),
                "poll_interval_seconds": int(env_float("RAIN_CURRENT_INTERVAL_MINUTES", "5") * 60),
                "timezone": RAIN_STATION_TIMEZONE,
            }
        )
    if env_flag("RAIN_PREVIOUS_ENABLED", "1"):
        thresholds = [
            {"window_days": 1, "amount_inches": env_float("RAIN_PREVIOUS_DAY_THRESHOLD", "0.1")},
            {"window_days": 2, "amount_inches": env_float("RAIN_TWO_DAY_THRESHOLD", "0.25")},
        ]
        if os.environ.get("RAIN_THREE_DAY_THRESHOLD"):
            thresholds.append({"window_days": 3, "amount_inches": env_float("RAIN_THREE_DAY_THRESHOLD", "0")})
        sources.append(
            {
                "source_id": "recent_rainfall",
                "name": env("RAIN_PREVIOUS_NAME", "Previous Rainfall"),
                "station_id": env("RAIN_PREVIOUS_STATION", "PHL"),
                "poll_interval_seconds": int(env_float("RAIN_PREVIOUS_INTERVAL_MINUTES", "60") * 60),
                "thresholds": thresholds,
                "lookback_days": env_int("RAIN_LOOKBACK_DAYS", "3"),
                "timezone": RAIN_STATION_TIMEZONE,
            }
        )
    return sources


RAIN_STATUS = {
    "sources": _rain_sources(),
    "notify_policy": env("RAIN_NOTIFY_POLICY", "change_only"),
    "autostart": env_flag("RAIN_STATUS_AUTOSTART", "0"),
    "http": {
        "timeout": env_float("RAIN_HTTP_TIMEOUT", "10"),
        "retries": env_int("RAIN_HTTP_RETRIES", "3"),
        "backoff_base": env_float("RAIN_HTTP_BACKOFF", "1"),
        "user_agent": env("RAIN_USER_AGENT", "rain-status/1.0 (https://github.com/rain-status/rain-status)"),
        "nws_base_url": env("RAIN_NWS_BASE_URL", "https://api.weather.gov"),
        "acis_url": env("RAIN_ACIS_URL", "https://data.rcc-acis.org/StnData"),
    },
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "standard"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        name: {"level": RAIN_LOG_LEVEL}
        for name in (
            "rainstatus",
            "backend",
            "RainStatusService",
            "NWSObservationProvider",
            "ACISPrecipitationProvider",
        )
    },
}
