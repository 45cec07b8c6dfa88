from logging import getLogger

from readinggroup.exceptions import StorageUnavailable
from readinggroup.logging import ReadingGroupLogger
from readinggroup.selection import credit_topic_voters

from ..celery import app as celery_app

logger = getLogger(__name__)
structured_logger = ReadingGroupLogger.get_logger(__name__)


@celery_app.task(
    bind=True,
    name="readinggroup.tasks.selection.credit_topic_voters",
    ignore_result=True,
    autoretry_for=(StorageUnavailable,),
    retry_backoff=5,
    retry_jitter=True,
    max_retries=5,
)
def credit_topic_voters_task(self, topic_id: int) -> int:
    # Runs after a selection commits; every member write is idempotent, so a
    # retry after a partial run only touches members not yet credited.
    structured_logger.info(
        "Crediting voters of selected topic",
        event_code="selection_fanout_task_start",
        topic_id=topic_id,
        attempt=self.request.retries + 1,
    )
    try:
        return credit_topic_voters(topic_id)
    except StorageUnavailable:
        if self.request.retries >= self.max_retries:
            structured_logger.exception(
                "Gave up crediting voters of the selected topic.",
                event_code="selection_fanout_task_failed",
                reason="Storage stayed unavailable for every retry.",
                reason_code="max_retries_exceeded",
                topic_id=topic_id,
            )
        raise
