from logging import getLogger

from readinggroup.exceptions import StorageUnavailable
from readinggroup.logging import ReadingGroupLogger
from readinggroup.voting import apply_member_upvote

from ..celery import app as celery_app

logger = getLogger(__name__)
structured_logger = ReadingGroupLogger.get_logger(__name__)

TASK_MAX_RETRIES = 5


@celery_app.task(
    bind=True,
    ignore_result=True,
    autoretry_for=(StorageUnavailable,),
    retry_backoff=5,
    retry_jitter=True,
    max_retries=TASK_MAX_RETRIES,
)
def record_member_upvote(self, identity: str, topic_id: int) -> bool:
    """
    Write the member side of an upvote already recorded on the topic.

    Retries on ``StorageUnavailable`` with exponential backoff. Once the retry
    budget is spent the failure is logged and the member record is left for
    ``reconcile_vote_state`` to repair.

    Args:
        identity: Identity of the voter.
        topic_id: Primary key of the topic that was upvoted.
    """
    try:
        return apply_member_upvote(identity, topic_id)
    except StorageUnavailable:
        if self.request.retries >= self.max_retries:
            structured_logger.exception(
                "Gave up writing the member side of an upvote.",
                event_code="member_upvote_task_failed",
                reason="Storage stayed unavailable for every retry.",
                reason_code="max_retries_exceeded",
                identity=identity,
                topic_id=topic_id,
                attempts=self.request.retries + 1,
            )
        else:
            logger.warning(
                "Storage unavailable recording upvote of %s on topic %s; retrying",
                identity,
                topic_id,
            )
        raise
