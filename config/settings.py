import os
from pathlib import Path

from celery.schedules import crontab
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("SECRET_KEY", "django-insecure-dealsync-development-key")

DEBUG = os.environ.get("DEBUG", "False") == "True"

ALLOWED_HOSTS = [h.strip() for h in os.environ.get("ALLOWED_HOSTS", "localhost").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "dealsync",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "config.urls"

WSGI_APPLICATION = "config.wsgi.application"

if os.environ.get("DB_ENGINE") == "postgresql":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ.get("DB_NAME", "dealsync"),
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
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    },
    "deals_read": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "deals-read",
        "TIMEOUT": int(os.environ.get("DEALS_READ_CACHE_TIMEOUT", "300")),
        "OPTIONS": {
            "MAX_ENTRIES": int(os.environ.get("DEALS_READ_CACHE_MAX_ENTRIES", "256")),
        },
    },
}

LANGUAGE_CODE = "pt-br"
TIME_ZONE = "America/Sao_Paulo"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.environ.get("LOG_LEVEL", "INFO"),
    },
}

# CRM (deals pipeline)
AC_BASE_URL = os.environ.get("AC_BASE_URL", "")
AC_API_TOKEN = os.environ.get("AC_API_TOKEN", "")

# E-commerce store
NUVEMSHOP_API_BASE_URL = os.environ.get("NUVEMSHOP_API_BASE_URL", "https://api.nuvemshop.com.br/v1")
NUVEMSHOP_USER_ID = os.environ.get("NUVEMSHOP_USER_ID", "")
NUVEMSHOP_ACCESS_TOKEN = os.environ.get("NUVEMSHOP_ACCESS_TOKEN", "")
NUVEMSHOP_USER_AGENT = os.environ.get("NUVEMSHOP_USER_AGENT", "dealsync")

# Sync tuning
SYNC_BATCH_SIZE = int(os.environ.get("SYNC_BATCH_SIZE", "10"))
SYNC_MIN_BATCH_INTERVAL_MS = int(os.environ.get("SYNC_MIN_BATCH_INTERVAL_MS", "700"))
SYNC_SAFETY_BUFFER_MS = int(os.environ.get("SYNC_SAFETY_BUFFER_MS", "50"))
SYNC_MAX_RETRIES = int(os.environ.get("SYNC_MAX_RETRIES", "3"))
SYNC_REQUEST_TIMEOUT = float(os.environ.get("SYNC_REQUEST_TIMEOUT", "30"))
SYNC_PAGE_SIZE = int(os.environ.get("SYNC_PAGE_SIZE", "100"))
SYNC_UPSERT_BATCH_SIZE = int(os.environ.get("SYNC_UPSERT_BATCH_SIZE", "100"))
SYNC_TRIGGER_TOKEN = os.environ.get("SYNC_TRIGGER_TOKEN", "")

CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_BEAT_SCHEDULE = {
    "sync-deals-every-30-minutes": {
        "task": "dealsync.run_sync",
        "schedule": crontab(minute="*/30"),
        "args": ("deals",),
    },
}
