import os

import sentry_sdk
from celery import Celery
from sentry_sdk.integrations.celery import CeleryIntegration

from readinggroup.version import get_readinggroup_version

SENTRY_BACKEND_DSN = os.environ.get("SENTRY_BACKEND_DSN", None)

if SENTRY_BACKEND_DSN:
    READINGGROUP_ENVIRONMENT = os.environ.get("READINGGROUP_ENVIRONMENT", None)
    sentry_sdk.init(
        SENTRY_BACKEND_DSN,
        environment=READINGGROUP_ENVIRONMENT,
        release=get_readinggroup_version(),
        integrations=[CeleryIntegration()],
    )

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "readinggroup.settings_template")

app = Celery("readinggroup")

# All celery-related configuration keys live in the Django settings with a
# `CELERY_` prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django app configs.
app.autodiscover_tasks()
