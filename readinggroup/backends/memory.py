import copy
import itertools
import threading
from contextlib import contextmanager
from logging import getLogger

from django.conf import settings
from django.utils import timezone

from readinggroup.exceptions import MemberNotFound, StorageUnavailable, TopicNotFound
from readinggroup.records import Member, Topic

from .base import TopicStore

logger = getLogger(__name__)

# Journal marker for a record that did not exist before the transaction
_ABSENT = object()


class MemoryTopicStore(TopicStore):
    """
    Process-local TopicStore used when no database is reachable, and in tests.

    All state lives in two dictionaries guarded by one re-entrant lock, so an
    ``atomic()`` block is serialised against every other reader and writer in
    the process. Records are copied on the way in and out so callers can never
    mutate stored state without going through ``save_*``.

    Inside an ``atomic()`` block every write first journals the previous
    version of the record it touches. When the outermost block raises, the
    journal is replayed to restore those records; nothing else is copied.
    """

    name = "memory"

    def __init__(self, timeout=None):
        if timeout is None:
            timeout = getattr(settings, "READINGGROUP_STORE_TIMEOUT", 5)
        self.timeout = timeout
        self._lock = threading.RLock()
        self._local = threading.local()
        self._members: dict[int, Member] = {}
        self._topics: dict[int, Topic] = {}
        self._member_ids = itertools.count(1)
        self._topic_ids = itertools.count(1)

    @contextmanager
    def _locked(self):
        if not self._lock.acquire(timeout=self.timeout):
            raise StorageUnavailable(
                f"Timed out after {self.timeout}s waiting for the in-memory store"
            )
        try:
            yield
        finally:
            self._lock.release()

    @property
    def _depth(self):
        return getattr(self._local, "depth", 0)

    def _journal(self, collection: str, key: int) -> None:
        """Remember ``collection[key]`` as it was before this transaction."""
        if not self._depth:
            return
        journal = self._local.journal
        if (collection, key) not in journal:
            previous = getattr(self, collection).get(key, _ABSENT)
            journal[(collection, key)] = (
                previous if previous is _ABSENT else copy.deepcopy(previous)
            )

    def _rollback(self) -> None:
        for (collection, key), previous in self._local.journal.items():
            records = getattr(self, collection)
            if previous is _ABSENT:
                records.pop(key, None)
            else:
                records[key] = previous
        logger.debug("Rolled back %d in-memory records", len(self._local.journal))

    @contextmanager
    def atomic(self):
        with self._locked():
            outermost = self._depth == 0
            if outermost:
                self._local.journal = {}
                self._local.callbacks = []
            self._local.depth = self._depth + 1
            try:
                yield
            except BaseException:
                if outermost:
                    self._rollback()
                    self._local.callbacks = []
                raise
            finally:
                self._local.depth -= 1
                if outermost:
                    self._local.journal = {}
        if outermost:
            callbacks, self._local.callbacks = self._local.callbacks, []
            for callback in callbacks:
                callback()

    def on_commit(self, func):
        if self._depth:
            self._local.callbacks.append(func)
        else:
            func()

    def get_member(self, member_id, *, for_update=False):
        with self._locked():
            try:
                return copy.deepcopy(self._members[int(member_id)])
            except (KeyError, ValueError) as err:
                raise MemberNotFound(f"No user with id {member_id}") from err

    def get_member_by_identity(self, identity, *, for_update=False):
        with self._locked():
            for member in self._members.values():
                if member.identity == identity:
                    return copy.deepcopy(member)
        raise MemberNotFound(f"No user with identity {identity}")

    def get_or_create_member(self, identity, display_name="", is_admin=False):
        with self._locked():
            for member in self._members.values():
                if member.identity == identity:
                    self._journal("_members", member.id)
                    member.is_admin = is_admin
                    member.display_name = display_name or member.display_name
                    return copy.deepcopy(member), False
            member = Member(
                id=next(self._member_ids),
                identity=identity,
                display_name=display_name,
                is_admin=is_admin,
            )
            self._journal("_members", member.id)
            self._members[member.id] = member
            logger.debug("Created in-memory member %s", identity)
            return copy.deepcopy(member), True

    def all_members(self, *, for_update=False):
        with self._locked():
            return [copy.deepcopy(m) for _, m in sorted(self._members.items())]

    def save_member(self, member):
        with self._locked():
            if member.id not in self._members:
                raise MemberNotFound(f"No user with id {member.id}")
            self._journal("_members", member.id)
            self._members[member.id] = copy.deepcopy(member)
        return member

    def create_topic(self, text, proposed_by):
        with self._locked():
            topic = Topic(
                id=next(self._topic_ids),
                text=text,
                proposed_by=proposed_by,
                created_on=timezone.now(),
            )
            self._journal("_topics", topic.id)
            self._topics[topic.id] = topic
            return copy.deepcopy(topic)

    def get_topic(self, topic_id, *, for_update=False):
        with self._locked():
            try:
                return copy.deepcopy(self._topics[int(topic_id)])
            except (KeyError, ValueError) as err:
                raise TopicNotFound(f"No topic with id {topic_id}") from err

    def all_topics(self, *, for_update=False):
        with self._locked():
            topics = sorted(self._topics.values(), key=lambda t: (-t.votes, t.id))
            return [copy.deepcopy(t) for t in topics]

    def selected_topics(self):
        with self._locked():
            return [copy.deepcopy(t) for t in self._topics.values() if t.is_selected]

    def save_topic(self, topic):
        with self._locked():
            if topic.id not in self._topics:
                raise TopicNotFound(f"No topic with id {topic.id}")
            if topic.is_selected and any(
                other.is_selected
                for other in self._topics.values()
                if other.id != topic.id
            ):
                raise StorageUnavailable(
                    "A concurrent change conflicted with this one, please retry."
                )
            self._journal("_topics", topic.id)
            self._topics[topic.id] = copy.deepcopy(topic)
        return topic

    def clear_selection(self):
        with self._locked():
            changed = 0
            for topic in self._topics.values():
                if topic.is_selected:
                    self._journal("_topics", topic.id)
                    topic.is_selected = False
                    changed += 1
            return changed

    def delete_topics(self, *, keep=None):
        with self._locked():
            doomed = [tid for tid in self._topics if tid != keep]
            for tid in doomed:
                self._journal("_topics", tid)
                del self._topics[tid]
            return len(doomed)

    def __repr__(self):
        return (
            f"<MemoryTopicStore members={len(self._members)} "
            f"topics={len(self._topics)}>"
        )
