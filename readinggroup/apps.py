from django.apps.config import AppConfig


class ReadingGroupAppConfig(AppConfig):
    name = "readinggroup"
    verbose_name = "Reading group"
    default_auto_field = "django.db.models.AutoField"

    def ready(self):
        # Registers the login handler and, through it, the Celery tasks the
        # topic operations look up by name.
        from .signals import handlers  # NOQA
