from functools import partial
from typing import Optional

from readinggroup.accounts import (
    Principal,
    ensure_member,
    require_admin,
    require_principal,
)
from readinggroup.backends import TopicStore, get_store
from readinggroup.documents import release_document, store_document
from readinggroup.exceptions import BadRequest, MemberNotFound
from readinggroup.logging import ReadingGroupLogger
from readinggroup.records import ById, Member, MemberRef, Topic

structured_logger = ReadingGroupLogger.get_logger(__name__)

MAX_TOPIC_LENGTH = 2000


def propose_topic(
    principal: Optional[Principal], text: str, store: Optional[TopicStore] = None
) -> Topic:
    principal = require_principal(principal)
    text = (text or "").strip()
    if not text:
        raise BadRequest("Topic text is required")
    if len(text) > MAX_TOPIC_LENGTH:
        raise BadRequest(f"Topic text is limited to {MAX_TOPIC_LENGTH} characters")

    store = store or get_store()
    ensure_member(principal, store)
    topic = store.create_topic(text, principal.identity)
    structured_logger.info(
        "Topic proposed.",
        event_code="topic_proposed",
        topic=topic,
        principal=principal,
    )
    return topic


def list_topics(store: Optional[TopicStore] = None) -> list[Topic]:
    store = store or get_store()
    return store.all_topics()


def get_topic(topic_id: int, store: Optional[TopicStore] = None) -> Topic:
    store = store or get_store()
    return store.get_topic(topic_id)


def describe_member(ref: MemberRef, member: Optional[Member]) -> Optional[dict]:
    """
    Summarise a proposer or voter for display.

    An identity that no longer has a member record is still shown, named after
    the local part of the address. A dangling primary-key reference carries no
    usable identity and yields ``None``.
    """
    if member is not None:
        return {
            "identity": member.identity,
            "name": member.display_name or member.identity.split("@")[0],
        }
    if isinstance(ref, ById):
        return None
    return {"identity": ref.identity, "name": ref.identity.split("@")[0]}


def list_voters(topic_id: int, store: Optional[TopicStore] = None) -> list[dict]:
    """
    Return everyone who upvoted a topic, once each.

    Members whose ``upvoted_topics`` name the topic are included as well, which
    covers votes whose topic-side record predates this application.
    """
    store = store or get_store()
    topic = store.get_topic(topic_id)

    voters = []
    seen = set()
    for ref, member in store.iter_resolved(topic.voter_refs):
        described = describe_member(ref, member)
        if described and described["identity"] not in seen:
            seen.add(described["identity"])
            voters.append(described)

    for member in store.all_members():
        if topic.id in member.upvoted_topics and member.identity not in seen:
            seen.add(member.identity)
            voters.append(describe_member(None, member))

    return voters


def get_proposer(topic_id: int, store: Optional[TopicStore] = None) -> Optional[dict]:
    store = store or get_store()
    topic = store.get_topic(topic_id)
    ref = topic.proposer_ref
    if ref is None:
        return None
    try:
        member = store.resolve_member(ref)
    except MemberNotFound:
        member = None
    return describe_member(ref, member)


def attach_file(
    principal: Optional[Principal],
    topic_id: int,
    upload,
    store: Optional[TopicStore] = None,
) -> Topic:
    """
    Store ``upload`` as the topic's reading and release any previous one.

    Raises:
        Unauthenticated: If there is no principal.
        Forbidden: If the principal is not an admin.
        TopicNotFound: If the topic does not exist.
        BadFile: If the upload is missing, not a PDF, or too large.
    """
    principal = require_admin(principal)
    store = store or get_store()
    store.get_topic(topic_id)

    document = store_document(upload)
    try:
        with store.atomic():
            topic = store.get_topic(topic_id, for_update=True)
            previous = topic.document
            topic.document = document
            topic = store.save_topic(topic)
            if previous is not None and previous.path != document.path:
                store.on_commit(partial(release_document, previous.path))
    except Exception:
        # The topic was not updated, so the file just stored is orphaned
        release_document(document.path)
        raise

    structured_logger.info(
        "Reading attached to topic.",
        event_code="topic_document_attached",
        topic=topic,
        principal=principal,
        original_name=document.original_name,
        superseded=previous.path if previous else None,
    )
    return topic
