from contextlib import contextmanager
from logging import getLogger
from typing import Optional

from django.db import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    connections,
    transaction,
)
from django.utils import timezone

from readinggroup.exceptions import MemberNotFound, StorageUnavailable, TopicNotFound
from readinggroup.models import Member as MemberModel
from readinggroup.models import Topic as TopicModel
from readinggroup.records import Topic

from .base import TopicStore

logger = getLogger(__name__)


@contextmanager
def translate_database_errors():
    # Connection loss and statement/lock timeouts are retryable from the
    # caller's point of view. An IntegrityError here can only come from the
    # single-selection constraint when two selections race.
    try:
        yield
    except (OperationalError, InterfaceError) as err:
        logger.warning("Database unavailable: %s", err)
        raise StorageUnavailable(details=str(err)) from err
    except IntegrityError as err:
        logger.warning("Concurrent write conflict: %s", err)
        raise StorageUnavailable(
            "A concurrent change conflicted with this one, please retry.",
            details=str(err),
        ) from err


class OrmTopicStore(TopicStore):
    """TopicStore backed by the Django ORM models in ``readinggroup.models``."""

    name = "orm"

    def __init__(self, using: Optional[str] = None):
        self.using = using

    @contextmanager
    def atomic(self):
        with translate_database_errors():
            with transaction.atomic(using=self.using):
                yield

    def on_commit(self, func):
        transaction.on_commit(func, using=self.using)

    def ping(self) -> None:
        with translate_database_errors():
            connections[self.using or "default"].ensure_connection()

    def _members(self, for_update=False):
        qs = MemberModel.objects.using(self.using) if self.using else MemberModel.objects
        if for_update:
            qs = qs.select_for_update()
        return qs

    def _topics(self, for_update=False):
        qs = TopicModel.objects.using(self.using) if self.using else TopicModel.objects
        if for_update:
            qs = qs.select_for_update()
        return qs

    def get_member(self, member_id, *, for_update=False):
        with translate_database_errors():
            try:
                return self._members(for_update).get(pk=member_id).to_record()
            except MemberModel.DoesNotExist as err:
                raise MemberNotFound(f"No user with id {member_id}") from err

    def get_member_by_identity(self, identity, *, for_update=False):
        with translate_database_errors():
            try:
                return self._members(for_update).get(email=identity).to_record()
            except MemberModel.DoesNotExist as err:
                raise MemberNotFound(f"No user with identity {identity}") from err

    def get_or_create_member(self, identity, display_name="", is_admin=False):
        with translate_database_errors():
            member, created = self._members().get_or_create(
                email=identity, defaults={"name": display_name, "is_admin": is_admin}
            )
            if not created and (
                member.is_admin != is_admin or (display_name and member.name != display_name)
            ):
                member.is_admin = is_admin
                member.name = display_name or member.name
                member.save(update_fields=["is_admin", "name", "updated_on"])
        return member.to_record(), created

    def all_members(self, *, for_update=False):
        with translate_database_errors():
            return [m.to_record() for m in self._members(for_update).order_by("pk")]

    def save_member(self, member):
        with translate_database_errors():
            updated = self._members().filter(pk=member.id).update(
                email=member.identity,
                name=member.display_name,
                is_admin=member.is_admin,
                upvoted_topics=list(member.upvoted_topics),
                won_topics=list(member.won_topics),
                updated_on=timezone.now(),
            )
        if not updated:
            raise MemberNotFound(f"No user with id {member.id}")
        return member

    def create_topic(self, text, proposed_by):
        with translate_database_errors():
            topic = self._topics().create(text=text, proposed_by=proposed_by)
        return topic.to_record()

    def get_topic(self, topic_id, *, for_update=False) -> Topic:
        with translate_database_errors():
            try:
                return self._topics(for_update).get(pk=topic_id).to_record()
            except TopicModel.DoesNotExist as err:
                raise TopicNotFound(f"No topic with id {topic_id}") from err

    def all_topics(self, *, for_update=False):
        with translate_database_errors():
            return [
                t.to_record() for t in self._topics(for_update).order_by("-votes", "pk")
            ]

    def selected_topics(self):
        with translate_database_errors():
            return [t.to_record() for t in self._topics().filter(is_selected=True)]

    def save_topic(self, topic):
        with translate_database_errors():
            try:
                instance = self._topics().get(pk=topic.id)
            except TopicModel.DoesNotExist as err:
                raise TopicNotFound(f"No topic with id {topic.id}") from err
            instance.apply_record(topic)
            instance.save()
        return instance.to_record()

    def clear_selection(self):
        with translate_database_errors():
            return self._topics().filter(is_selected=True).update(is_selected=False)

    def delete_topics(self, *, keep=None):
        with translate_database_errors():
            qs = self._topics()
            if keep is not None:
                qs = qs.exclude(pk=keep)
            deleted, _ = qs.delete()
        return deleted

    def __repr__(self):
        return f"<OrmTopicStore using={self.using or 'default'}>"
