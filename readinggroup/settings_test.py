from .settings_template import *  # NOQA ignore=F405
from .settings_template import LOGGING

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

ALLOWED_HOSTS = ["127.0.0.1", "0.0.0.0", "testserver"]  # nosec

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    },
}

SESSION_ENGINE = "django.contrib.sessions.backends.cache"

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

STORAGES = {
    "default": {
        "BACKEND": "django.core.files.storage.InMemoryStorage",
    },
    "staticfiles": {
        "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
    },
    "documents": {
        "BACKEND": "django.core.files.storage.InMemoryStorage",
    },
}

READINGGROUP_STORE_BACKEND = "readinggroup.backends.orm.OrmTopicStore"
READINGGROUP_STORE_FALLBACK = False

LOGGING["handlers"]["stream"]["level"] = "WARNING"
LOGGING["loggers"]["structlog"]["handlers"] = ["null"]
LOGGING["loggers"]["django_structlog"]["handlers"] = ["null"]
