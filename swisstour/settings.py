"""
Django settings for swisstour.

Values that differ between deployments are read from the environment. A
``.env`` file in the project root (or the file named by SWISSTOUR_ENV_FILE)
is loaded first; variables already set in the process win.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(os.environ.get("SWISSTOUR_ENV_FILE", BASE_DIR / ".env"))


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.environ.get("SWISSTOUR_SECRET_KEY", "swisstour-insecure-development-key")

DEBUG = env_bool("SWISSTOUR_DEBUG", True)

ALLOWED_HOSTS = os.environ.get("SWISSTOUR_ALLOWED_HOSTS", "localhost").split(",")

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "reversion",
    "swisstour.tournament_core",
    "swisstour.tournament",
]

MIDDLEWARE = []

DATABASES = {
    "default": {
        "ENGINE": os.environ.get("SWISSTOUR_DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("SWISSTOUR_DB_NAME", str(BASE_DIR / "swisstour.sqlite3")),
        "USER": os.environ.get("SWISSTOUR_DB_USER", ""),
        "PASSWORD": os.environ.get("SWISSTOUR_DB_PASSWORD", ""),
        "HOST": os.environ.get("SWISSTOUR_DB_HOST", ""),
        "PORT": os.environ.get("SWISSTOUR_DB_PORT", ""),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "UTC"

# Pairing engine
PAIRING_ENGINE_BACKEND = os.environ.get(
    "PAIRING_ENGINE_BACKEND", "swisstour.tournament.engine.BbpPairingsEngine"
)
PAIRING_ENGINE_COMMAND = os.environ.get(
    "BBPPAIRINGS_PATH", str(BASE_DIR / "bbpPairings" / "bbpPairings")
)
PAIRING_ENGINE_TIMEOUT = int(os.environ.get("PAIRING_ENGINE_TIMEOUT", "60"))
PAIRING_ENGINE_TEMP_DIR = os.environ.get("PAIRING_ENGINE_TEMP_DIR") or None

# Allow pairing round N+1 while round N still has games without a result
PAIRING_ALLOW_UNFINISHED_ROUNDS = env_bool("PAIRING_ALLOW_UNFINISHED_ROUNDS", True)

# Standings
STANDINGS_STATUSES = ("registered",)
STANDINGS_TIEBREAKS = ("rating",)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.environ.get("SWISSTOUR_LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "swisstour": {
            "handlers": ["console"],
            "level": os.environ.get("SWISSTOUR_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
