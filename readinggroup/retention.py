"""
Bulk deletion of topics.

Members keep denormalised lists of topic ids, so deleting topics without
rewriting those lists would leave references to rows that no longer exist.
Both operations here delete topics and rewrite every member's lists in the same
transaction. Stored documents of the deleted topics are released once the
transaction has committed.

Background tasks still queued for deleted topics re-read the topic under lock
before writing anything and find it gone, so they cannot reintroduce a
dangling reference after these operations finish.
"""

from functools import partial
from typing import Optional

from readinggroup.accounts import Principal, require_admin
from readinggroup.backends import TopicStore, get_store
from readinggroup.documents import release_document
from readinggroup.exceptions import PreconditionFailed
from readinggroup.logging import ReadingGroupLogger
from readinggroup.records import Topic

structured_logger = ReadingGroupLogger.get_logger(__name__)


def _release_documents_on_commit(store: TopicStore, topics: list[Topic]) -> None:
    for topic in topics:
        if topic.document is not None:
            store.on_commit(partial(release_document, topic.document.path))


def clear_all(principal: Optional[Principal], store: Optional[TopicStore] = None) -> int:
    """
    Delete every topic and empty every member's topic lists.

    Returns:
        int: Number of topics deleted.
    """
    principal = require_admin(principal)
    store = store or get_store()

    with store.atomic():
        topics = store.all_topics(for_update=True)
        reset = 0
        for member in store.all_members(for_update=True):
            if member.upvoted_topics or member.won_topics:
                member.upvoted_topics = []
                member.won_topics = []
                store.save_member(member)
                reset += 1
        deleted = store.delete_topics()
        _release_documents_on_commit(store, topics)

    structured_logger.info(
        "All topics cleared.",
        event_code="topics_cleared",
        principal=principal,
        deleted=deleted,
        members_reset=reset,
    )
    return deleted


def clear_except_selected(
    principal: Optional[Principal], store: Optional[TopicStore] = None
) -> int:
    """
    Delete every topic except the selected one.

    Each member ends up with ``[S]`` or ``[]`` in both lists, where ``S`` is the
    selected topic. Each list keeps ``S`` when the member already had it there,
    or when the topic lists the member as a voter (for ``upvoted_topics``) or
    as credited (for ``won_topics``). Deciding from the topic side heals a
    member record whose background update never ran.

    Returns:
        int: Number of topics deleted.

    Raises:
        Forbidden: If the principal is not an admin.
        PreconditionFailed: If no topic is selected. Nothing is deleted.
    """
    principal = require_admin(principal)
    store = store or get_store()

    with store.atomic():
        selected = store.selected_topics()
        if len(selected) != 1:
            raise PreconditionFailed(
                "No topic is currently selected. Please select a topic first."
            )
        survivor = store.get_topic(selected[0].id, for_update=True)
        doomed = [
            topic
            for topic in store.all_topics(for_update=True)
            if topic.id != survivor.id
        ]

        rewritten = 0
        for member in store.all_members(for_update=True):
            upvoted = (
                [survivor.id]
                if survivor.id in member.upvoted_topics or survivor.has_voter(member)
                else []
            )
            won = (
                [survivor.id]
                if survivor.id in member.won_topics or survivor.was_won_by(member)
                else []
            )
            if upvoted != member.upvoted_topics or won != member.won_topics:
                member.upvoted_topics = upvoted
                member.won_topics = won
                store.save_member(member)
                rewritten += 1

        deleted = store.delete_topics(keep=survivor.id)
        _release_documents_on_commit(store, doomed)

    structured_logger.info(
        "Topics cleared except the selected one.",
        event_code="topics_cleared_except_selected",
        principal=principal,
        topic=survivor,
        deleted=deleted,
        members_rewritten=rewritten,
    )
    return deleted
