import os

from .settings_template import *  # NOQA ignore=F405
from .settings_template import LOGGING

LOGGING["handlers"]["stream"]["level"] = "DEBUG"
LOGGING["loggers"] = {
    "django": {"handlers": ["stream"], "level": "INFO"},
    "celery": {"handlers": ["stream"], "level": "DEBUG"},
    "readinggroup": {"handlers": ["stream"], "level": "DEBUG"},
    "django.utils.autoreload": {"level": "INFO"},
    "django.template": {"level": "INFO"},
    "structlog": {
        "handlers": ["structlog_console"],
        "level": "DEBUG",
        "propagate": False,
    },
    "django_structlog": {
        "handlers": ["structlog_console"],
        "level": "INFO",
        "propagate": False,
    },
}

DEBUG = True

ALLOWED_HOSTS = ["127.0.0.1", "0.0.0.0", "*"]  # nosec

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.getenv("POSTGRESQL_DB", "readinggroup"),
        "USER": os.getenv("POSTGRESQL_USER", "postgres"),
        "PASSWORD": os.getenv("POSTGRESQL_PW", ""),
        "HOST": os.getenv("POSTGRESQL_HOST", "localhost"),
        "PORT": os.getenv("POSTGRESQL_PORT", "5432"),
        "CONN_MAX_AGE": 0,
        "OPTIONS": {
            "connect_timeout": 2,
            "options": "-c statement_timeout=5000 -c lock_timeout=3000",
        },
    }
}

# Working without Postgres or Redis running is normal during development
READINGGROUP_STORE_FALLBACK = True

if os.getenv("CELERY_TASK_ALWAYS_EAGER", "true").lower() == "true":
    CELERY_TASK_ALWAYS_EAGER = True
