"""
The vote ledger.

An upvote touches two records: the topic (counter and voter list) and the
voter's member record (``upvoted_topics``). The topic side is written under a
row lock inside one transaction and is the authority on whether a vote
exists, so it alone decides ``AlreadyVoted`` and the counter can never be
incremented twice for one voter. The member side is written afterwards by the
``record_member_upvote`` Celery task; until that task runs the member record
lags behind, and ``reconcile_vote_state`` or the next retention operation
repairs it if the task is lost for good.
"""

from functools import partial
from typing import Optional

from readinggroup.accounts import Principal, ensure_member, require_principal
from readinggroup.backends import TopicStore, get_store
from readinggroup.exceptions import AlreadyVoted, MemberNotFound, TopicNotFound
from readinggroup.logging import ReadingGroupLogger
from readinggroup.records import Topic
from readinggroup.utils.celery import get_registered_task

structured_logger = ReadingGroupLogger.get_logger(__name__)

RECORD_MEMBER_UPVOTE_TASK = "readinggroup.tasks.votes.record_member_upvote"


def cast_upvote(
    principal: Optional[Principal], topic_id: int, store: Optional[TopicStore] = None
) -> Topic:
    """
    Record one upvote by ``principal`` on a topic and return the updated topic.

    Raises:
        Unauthenticated: If there is no principal.
        TopicNotFound: If the topic does not exist.
        AlreadyVoted: If the principal already appears among the topic's voters.
            Nothing is changed in that case. A rejected vote creates no member
            record either.
    """
    principal = require_principal(principal)
    store = store or get_store()

    with store.atomic():
        topic = store.get_topic(topic_id, for_update=True)
        member = ensure_member(principal, store)
        if topic.has_voter(member):
            raise AlreadyVoted()
        topic.upvoted_by.append(member.identity)
        topic.votes = len(topic.upvoted_by)
        topic = store.save_topic(topic)
        store.on_commit(partial(queue_member_upvote, member.identity, topic.id))

    structured_logger.info(
        "Upvote recorded.",
        event_code="topic_upvoted",
        topic=topic,
        principal=principal,
        votes=topic.votes,
    )
    return topic


def queue_member_upvote(identity: str, topic_id: int) -> None:
    # A failure to queue must not turn a recorded vote into an error for the
    # voter; the reconciliation pass picks up what is lost here.
    try:
        get_registered_task(RECORD_MEMBER_UPVOTE_TASK).delay(identity, topic_id)
    except Exception:
        structured_logger.exception(
            "Could not queue the member side of an upvote.",
            event_code="member_upvote_queue_failed",
            reason="The task broker rejected or could not accept the task.",
            reason_code="task_queue_unavailable",
            identity=identity,
            topic_id=topic_id,
        )


def apply_member_upvote(
    identity: str, topic_id: int, store: Optional[TopicStore] = None
) -> bool:
    """
    Add ``topic_id`` to the member's ``upvoted_topics``.

    The topic is re-read under lock first: if it has been deleted, or no longer
    lists the member as a voter, nothing is written. That makes the call safe
    to repeat and safe to run after a retention operation.

    Returns:
        bool: True if the member record changed.
    """
    store = store or get_store()
    with store.atomic():
        try:
            topic = store.get_topic(topic_id, for_update=True)
        except TopicNotFound:
            structured_logger.info(
                "Topic removed before the member side of its upvote was written.",
                event_code="member_upvote_topic_gone",
                identity=identity,
                topic_id=topic_id,
            )
            return False
        try:
            member = store.get_member_by_identity(identity, for_update=True)
        except MemberNotFound:
            structured_logger.warning(
                "Voter has no member record.",
                event_code="member_upvote_skipped",
                reason=f"No member with identity {identity}",
                reason_code="member_not_found",
                topic=topic,
                identity=identity,
            )
            return False
        if not topic.has_voter(member) or not member.add_upvoted(topic.id):
            return False
        store.save_member(member)

    structured_logger.debug(
        "Member side of upvote written.",
        event_code="member_upvote_recorded",
        member=member,
        topic_id=topic_id,
    )
    return True
