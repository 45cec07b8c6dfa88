"""
Selecting the topic for the current cycle.

Selection is a two-state machine per topic (unselected/selected) with at most
one selected topic overall. ``select_topic`` performs the transition and
credits the proposer in one transaction, records who is credited in the
topic's ``won_by`` list, and leaves crediting the voters to the
``credit_topic_voters`` Celery task once the transaction has committed.
"""

import datetime
from functools import partial
from typing import Optional

from django.utils import timezone

from readinggroup.accounts import Principal, require_admin
from readinggroup.backends import TopicStore, get_store
from readinggroup.exceptions import MemberNotFound, TopicNotFound
from readinggroup.logging import ReadingGroupLogger
from readinggroup.records import Topic, parse_member_ref
from readinggroup.utils.celery import get_registered_task

structured_logger = ReadingGroupLogger.get_logger(__name__)

CREDIT_TOPIC_VOTERS_TASK = "readinggroup.tasks.selection.credit_topic_voters"


def week_label(today: datetime.date) -> str:
    """
    Describe the Monday-to-Sunday reading week for ``today``.

    A selection made on a Sunday is for the coming week.

    >>> week_label(datetime.date(2024, 12, 31))
    'Dec 30 - Jan 5, 2025'
    """
    if today.weekday() == 6:
        monday = today + datetime.timedelta(days=1)
    else:
        monday = today - datetime.timedelta(days=today.weekday())
    sunday = monday + datetime.timedelta(days=6)
    return (
        f"{monday:%b} {monday.day} - "
        f"{sunday:%b} {sunday.day}, {sunday.year}"
    )


def _merge_refs(existing: list[str], additions: list[str]) -> list[str]:
    merged = list(existing)
    for raw in additions:
        if raw and raw not in merged:
            merged.append(raw)
    return merged


def select_topic(
    principal: Optional[Principal],
    topic_id: int,
    store: Optional[TopicStore] = None,
    today: Optional[datetime.date] = None,
) -> Topic:
    """
    Make ``topic_id`` the only selected topic and credit its proposer.

    Raises:
        Unauthenticated: If there is no principal.
        Forbidden: If the principal is not an admin.
        TopicNotFound: If the topic does not exist; no selection is changed.
    """
    principal = require_admin(principal)
    store = store or get_store()
    label = week_label(today or timezone.localdate())

    with store.atomic():
        topic = store.get_topic(topic_id, for_update=True)
        cleared = store.clear_selection()

        topic.is_selected = True
        topic.week_date = label
        topic.won_by = _merge_refs(
            topic.won_by, [topic.proposed_by] + list(topic.upvoted_by)
        )
        topic = store.save_topic(topic)

        credit_proposer(topic, store)
        store.on_commit(partial(queue_voter_credit, topic.id))

    structured_logger.info(
        "Topic selected.",
        event_code="topic_selected",
        topic=topic,
        principal=principal,
        week_date=label,
        previously_selected=cleared,
    )
    return topic


def credit_proposer(topic: Topic, store: TopicStore) -> bool:
    ref = topic.proposer_ref
    if ref is None:
        return False
    try:
        proposer = store.resolve_member(ref, for_update=True)
    except MemberNotFound:
        structured_logger.warning(
            "Could not find the proposer of the selected topic.",
            event_code="selection_proposer_skipped",
            reason=f"No member matches {ref}",
            reason_code="member_not_found",
            topic=topic,
        )
        return False
    if not proposer.add_won(topic.id):
        return False
    store.save_member(proposer)
    return True


def queue_voter_credit(topic_id: int) -> None:
    try:
        get_registered_task(CREDIT_TOPIC_VOTERS_TASK).delay(topic_id)
    except Exception:
        structured_logger.exception(
            "Could not queue crediting voters of the selected topic.",
            event_code="selection_fanout_queue_failed",
            reason="The task broker rejected or could not accept the task.",
            reason_code="task_queue_unavailable",
            topic_id=topic_id,
        )


def credit_topic_voters(topic_id: int, store: Optional[TopicStore] = None) -> int:
    """
    Add ``topic_id`` to ``won_topics`` of everyone recorded in its ``won_by``.

    Each member is updated in its own short transaction, after checking that
    the topic still exists. References that no longer resolve are logged and
    skipped. ``StorageUnavailable`` propagates so the calling task can retry;
    members already credited are simply unchanged on the next attempt.

    Returns:
        int: How many member records changed.
    """
    store = store or get_store()
    try:
        topic = store.get_topic(topic_id)
    except TopicNotFound:
        structured_logger.info(
            "Selected topic removed before its voters were credited.",
            event_code="selection_fanout_topic_gone",
            topic_id=topic_id,
        )
        return 0

    credited = 0
    for raw in topic.won_by:
        ref = parse_member_ref(raw)
        with store.atomic():
            try:
                store.get_topic(topic_id, for_update=True)
            except TopicNotFound:
                return credited
            try:
                member = store.resolve_member(ref, for_update=True)
            except MemberNotFound:
                structured_logger.warning(
                    "Could not find a voter of the selected topic.",
                    event_code="selection_voter_skipped",
                    reason=f"No member matches {ref}",
                    reason_code="member_not_found",
                    topic=topic,
                )
                continue
            if member.add_won(topic_id):
                store.save_member(member)
                credited += 1

    structured_logger.info(
        "Credited voters of the selected topic.",
        event_code="selection_fanout_complete",
        topic=topic,
        credited=credited,
    )
    return credited
