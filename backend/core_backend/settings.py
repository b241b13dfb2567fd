"""
Django settings for the cost & margin engine.

Values are read from the environment with development defaults, so the same
module drives local runs and the test suite.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("SECRET_KEY", "django-insecure-dev-key-change-me")

DEBUG = os.environ.get("DEBUG", "True").lower() in ("1", "true", "yes")

ALLOWED_HOSTS = [h for h in os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "core_backend",
    "cogs",
    "sales",
    "expenses",
    "payroll",
    "payables",
    "reports",
]

MIDDLEWARE = []

if os.environ.get("DB_ENGINE") == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ.get("DB_NAME", "costing"),
            "USER": os.environ.get("DB_USER", "postgres"),
            "PASSWORD": os.environ.get("DB_PASSWORD", ""),
            "HOST": os.environ.get("DB_HOST", "localhost"),
            "PORT": os.environ.get("DB_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.environ.get("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("TIME_ZONE", "America/New_York")
USE_I18N = True
USE_TZ = True


# ============================================================================
# LOGGING
# ============================================================================

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
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
        "level": "WARNING",
    },
    "loggers": {
        app: {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False}
        for app in ("cogs", "sales", "expenses", "payroll", "payables", "reports")
    },
}


# ============================================================================
# COSTING ENGINE
# ============================================================================
# Rates are simplified planning figures, not jurisdiction tax tables.

COSTING_ENGINE = {
    "EFFECTIVE_HOURLY_LABOR_RATE": os.environ.get("EFFECTIVE_HOURLY_LABOR_RATE", "15.00"),
    "WITHHOLDING_RATES": {
        "federal": "0.12",
        "state": "0.05",
        "ss": "0.062",
        "medicare": "0.0145",
    },
    "EMPLOYER_RATES": {
        "ss": "0.062",
        "medicare": "0.0145",
        "futa": "0.006",
        "suta": "0.027",
    },
    "OVERTIME_MULTIPLIER": "1.5",
    "REGEX_TIMEOUT_MS": int(os.environ.get("MAPPING_REGEX_TIMEOUT_MS", "50")),
    "PRICE_STALENESS_DAYS": int(os.environ.get("PRICE_STALENESS_DAYS", "30")),
    "SE_TAX_RATE": "0.153",
    "SE_EARNINGS_FACTOR": "0.9235",
    "ESTIMATED_INCOME_TAX_RATE": "0.25",
    "FORM_1099_THRESHOLD": "600.00",
    "FORM_1099_NEAR_THRESHOLD": "400.00",
    "LEDGER_ACCOUNTS": {
        "cash": "1000",
        "inventory": "1300",
        "accounts_payable": "2000",
        "default_expense": "9200",
    },
}
