import json
import os

from .secrets import get_secret
from .settings_template import *  # NOQA ignore=F405
from .settings_template import DATABASES, LOGGING, READINGGROUP_ENVIRONMENT

LOGGING["handlers"]["stream"]["level"] = "INFO"
LOGGING["loggers"]["django"]["level"] = "INFO"
LOGGING["loggers"]["celery"]["level"] = "INFO"

if os.getenv("AWS"):
    ENV_NAME = os.getenv("ENV_NAME")

    django_secret = json.loads(get_secret("readinggroup/%s/Django/SecretKey" % ENV_NAME))
    SECRET_KEY = django_secret["DjangoSecretKey"]

    postgres_secret = json.loads(
        get_secret("readinggroup/%s/DB/MasterUserPassword" % ENV_NAME)
    )
    DATABASES["default"].update({"PASSWORD": postgres_secret["password"]})
else:
    SECRET_KEY = os.environ["DJANGO_SECRET_KEY"]

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
CSRF_COOKIE_SECURE = True
SESSION_COOKIE_SECURE = True

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", CELERY_BROKER_URL)  # NOQA: F405
CELERY_RESULT_BACKEND = os.getenv(
    "CELERY_RESULT_BACKEND", CELERY_RESULT_BACKEND  # NOQA: F405
)

S3_BUCKET_NAME = os.getenv("S3_BUCKET_NAME")
AWS_STORAGE_BUCKET_NAME = S3_BUCKET_NAME

STORAGES = {
    "default": {
        "BACKEND": "storages.backends.s3boto3.S3Boto3Storage",
        "OPTIONS": {"default_acl": None},
    },
    "staticfiles": {
        "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
    },
    "documents": {
        "BACKEND": "readinggroup.storage_backends.DocumentS3Storage",
        "OPTIONS": {"location": "readings/%s" % READINGGROUP_ENVIRONMENT},
    },
}

MEDIA_URL = "https://%s.s3.amazonaws.com/" % S3_BUCKET_NAME

SESSION_ENGINE = "django.contrib.sessions.backends.cached_db"

# Production must surface an unreachable database rather than silently
# serving from process memory.
READINGGROUP_STORE_FALLBACK = (
    os.environ.get("READINGGROUP_STORE_FALLBACK", "false").lower() == "true"
)
