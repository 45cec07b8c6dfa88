import logging
from functools import wraps

from celery import Task

from readinggroup.contextmanagers import cache_lock

logger = logging.getLogger(__name__)


def locked_task(lock_id: str):
    """
    Skip a bound Celery task while another run holds ``lock_id``.

    Declare the task with ``bind=True`` and put the Celery decorator first:

    >>> @celery_app.task(bind=True)
    ... @locked_task(RECONCILE_LOCK)
    ... def reconcile_vote_state_task(self):
    ...     ...

    A skipped run returns ``None``. Calling with ``force=True`` runs the task
    even when the lock is held, for clearing up after a worker died holding it.
    """

    def decorator(f):
        @wraps(f)
        def wrapped(self: Task, *args, force: bool = False, **kwargs):
            owner = self.request.hostname or "local"
            with cache_lock(lock_id, owner) as acquired:
                if acquired:
                    return f(self, *args, **kwargs)
                if force:
                    logger.warning("Running %s without holding %s", self.name, lock_id)
                    return f(self, *args, **kwargs)
                logger.info("%s is already running; skipping", self.name)
                return None

        return wrapped

    return decorator
