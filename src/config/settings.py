"""Django settings for the EV trip planner project."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
PROJECT_ROOT = BASE_DIR.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "change-me-in-production")
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = [host for host in os.getenv("DJANGO_ALLOWED_HOSTS", "").split(",") if host]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    "ev_trip_planner",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": PROJECT_ROOT / "db.sqlite3",
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "ev-trip-planner-cache",
    }
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "ev_trip_planner": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": True,
        },
    },
}

OSRM_BASE_URL = os.getenv("OSRM_BASE_URL", "https://router.project-osrm.org")
OSRM_TIMEOUT_SECONDS = float(os.getenv("OSRM_TIMEOUT_SECONDS", "12"))
OSRM_RETRY_COUNT = int(os.getenv("OSRM_RETRY_COUNT", "2"))

GEOCODING_BASE_URL = os.getenv("GEOCODING_BASE_URL", "https://nominatim.openstreetmap.org")
GEOCODING_USER_AGENT = os.getenv("GEOCODING_USER_AGENT", "ev-trip-planner/1.0")
GEOCODING_TIMEOUT_SECONDS = float(os.getenv("GEOCODING_TIMEOUT_SECONDS", "12"))
GEOCODING_RETRY_COUNT = int(os.getenv("GEOCODING_RETRY_COUNT", "2"))

ROUTE_CACHE_TTL_SECONDS = int(os.getenv("ROUTE_CACHE_TTL_SECONDS", "600"))
GEOCODE_CACHE_TTL_SECONDS = int(os.getenv("GEOCODE_CACHE_TTL_SECONDS", "86400"))

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
)
GEMINI_TIMEOUT_SECONDS = float(os.getenv("GEMINI_TIMEOUT_SECONDS", "20"))

EV_MIN_BATTERY_PERCENT_AT_DESTINATION = float(
    os.getenv("EV_MIN_BATTERY_PERCENT_AT_DESTINATION", "20")
)
EV_TARGET_BATTERY_PERCENT_AT_CHARGER_ARRIVAL = float(
    os.getenv("EV_TARGET_BATTERY_PERCENT_AT_CHARGER_ARRIVAL", "15")
)
EV_DEFAULT_CHARGE_UP_TO_PERCENT = float(os.getenv("EV_DEFAULT_CHARGE_UP_TO_PERCENT", "80"))
EV_KM_PER_KWH = float(os.getenv("EV_KM_PER_KWH", "6"))
EV_CHARGING_RATE_KW = float(os.getenv("EV_CHARGING_RATE_KW", "50"))
EV_FALLBACK_AVG_SPEED_KMH = float(os.getenv("EV_FALLBACK_AVG_SPEED_KMH", "80"))
EV_DEFAULT_RANGE_KM = float(os.getenv("EV_DEFAULT_RANGE_KM", "300"))
