from logging import getLogger
from typing import Optional

from readinggroup.backends import TopicStore, get_store
from readinggroup.logging import ReadingGroupLogger
from readinggroup.records import ById, parse_member_ref

logger = getLogger(__name__)
structured_logger = ReadingGroupLogger.get_logger(__name__)


def reconcile_vote_state(store: Optional[TopicStore] = None) -> int:
    """
    Rebuild every denormalised vote and win reference from the topics.

    Topics are the authority. For each topic the voter list is deduplicated
    (a voter recorded both by id and by identity counts once, and id references
    are rewritten to identities) and ``votes`` is set to its length. Each
    member's ``upvoted_topics`` is then rebuilt from the voter lists, and
    ``won_topics`` becomes the member's existing wins that still name a topic
    plus every topic whose ``won_by`` credits them.

    This is what finishes an upvote or a selection whose background task was
    lost, and what drops references to topics deleted outside the retention
    operations.

    Returns:
        int: How many topic and member records were changed.
    """
    store = store or get_store()
    changed = 0

    with store.atomic():
        topics = store.all_topics(for_update=True)
        members = store.all_members(for_update=True)

        by_id = {member.id: member for member in members}
        by_identity = {member.identity: member for member in members}

        def lookup(ref):
            if isinstance(ref, ById):
                return by_id.get(ref.member_id)
            return by_identity.get(ref.identity)

        upvoted = {member.id: [] for member in members}
        won = {member.id: [] for member in members}
        surviving_ids = {topic.id for topic in topics}

        for topic in topics:
            voters = []
            seen = set()
            for raw in topic.upvoted_by:
                member = lookup(parse_member_ref(raw))
                key = member.id if member else raw
                if key in seen:
                    continue
                seen.add(key)
                if member:
                    voters.append(member.identity)
                    upvoted[member.id].append(topic.id)
                else:
                    voters.append(raw)

            if voters != topic.upvoted_by or topic.votes != len(voters):
                logger.info(
                    "Topic %s: votes %s -> %s", topic.id, topic.votes, len(voters)
                )
                topic.upvoted_by = voters
                topic.votes = len(voters)
                store.save_topic(topic)
                changed += 1

            for raw in topic.won_by:
                member = lookup(parse_member_ref(raw))
                if member and topic.id not in won[member.id]:
                    won[member.id].append(topic.id)

        for member in members:
            new_upvoted = sorted(upvoted[member.id])
            kept_wins = {tid for tid in member.won_topics if tid in surviving_ids}
            new_won = sorted(kept_wins.union(won[member.id]))
            if new_upvoted != sorted(member.upvoted_topics) or new_won != sorted(
                member.won_topics
            ):
                member.upvoted_topics = new_upvoted
                member.won_topics = new_won
                store.save_member(member)
                changed += 1

    structured_logger.info(
        "Vote state reconciled.",
        event_code="vote_state_reconciled",
        changed=changed,
        topics=len(topics),
        members=len(members),
    )
    return changed
