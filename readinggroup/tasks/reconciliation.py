from readinggroup.contextmanagers import RECONCILE_LOCK
from readinggroup.decorators import locked_task
from readinggroup.reconciliation import reconcile_vote_state

from ..celery import app as celery_app


@celery_app.task(
    bind=True,
    name="readinggroup.tasks.reconciliation.reconcile_vote_state",
    ignore_result=True,
)
@locked_task(RECONCILE_LOCK)
def reconcile_vote_state_task(self) -> int:
    """
    Periodic repair of member vote and win lists.

    Scheduled through ``CELERY_BEAT_SCHEDULE``. Shares its lock with the
    ``reconcile_votes`` management command.
    """
    return reconcile_vote_state()
