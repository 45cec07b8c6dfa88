from __future__ import annotations

import abc
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager
from typing import Optional

from readinggroup.exceptions import MemberNotFound
from readinggroup.records import ById, Member, MemberRef, Topic


class TopicStore(abc.ABC):
    """
    CRUD over the member and topic collections.

    Every multi-step mutation runs inside ``atomic()``. Reads made with
    ``for_update=True`` inside that block hold the record until the block
    exits, so two writers of the same topic cannot interleave. Work that must
    only happen once the mutation is durable (queueing Celery tasks, deleting
    files) is registered with ``on_commit``.

    Implementations raise ``StorageUnavailable`` when the backend cannot be
    reached within the configured timeout.
    """

    #: Short name used in logs
    name = "base"

    @abc.abstractmethod
    def atomic(self) -> AbstractContextManager:
        ...

    @abc.abstractmethod
    def on_commit(self, func: Callable[[], None]) -> None:
        ...

    # Members

    @abc.abstractmethod
    def get_member(self, member_id: int, *, for_update: bool = False) -> Member:
        """Raises ``MemberNotFound`` if no member has that primary key."""

    @abc.abstractmethod
    def get_member_by_identity(
        self, identity: str, *, for_update: bool = False
    ) -> Member:
        """Raises ``MemberNotFound`` if no member has that identity."""

    @abc.abstractmethod
    def get_or_create_member(
        self, identity: str, display_name: str = "", is_admin: bool = False
    ) -> tuple[Member, bool]:
        ...

    @abc.abstractmethod
    def all_members(self, *, for_update: bool = False) -> list[Member]:
        ...

    @abc.abstractmethod
    def save_member(self, member: Member) -> Member:
        ...

    # Topics

    @abc.abstractmethod
    def create_topic(self, text: str, proposed_by: str) -> Topic:
        ...

    @abc.abstractmethod
    def get_topic(self, topic_id: int, *, for_update: bool = False) -> Topic:
        """Raises ``TopicNotFound`` if no topic has that primary key."""

    @abc.abstractmethod
    def all_topics(self, *, for_update: bool = False) -> list[Topic]:
        """All topics, most votes first, ties in creation order."""

    @abc.abstractmethod
    def selected_topics(self) -> list[Topic]:
        ...

    @abc.abstractmethod
    def save_topic(self, topic: Topic) -> Topic:
        ...

    @abc.abstractmethod
    def clear_selection(self) -> int:
        """Set ``is_selected`` to False on every topic; return how many changed."""

    @abc.abstractmethod
    def delete_topics(self, *, keep: Optional[int] = None) -> int:
        """Delete every topic except ``keep``; return how many were deleted."""

    # Shared helpers

    def resolve_member(self, ref: MemberRef, *, for_update: bool = False) -> Member:
        """
        Find the member a stored proposer or voter reference points at.

        This is the single place where the two reference shapes are told apart:
        ``ById`` is looked up by primary key and ``ByIdentity`` by identity.
        """
        if isinstance(ref, ById):
            return self.get_member(ref.member_id, for_update=for_update)
        return self.get_member_by_identity(ref.identity, for_update=for_update)

    def iter_resolved(
        self, refs: list[MemberRef], *, for_update: bool = False
    ) -> Iterator[tuple[MemberRef, Optional[Member]]]:
        """
        Yield each reference with its member, or ``None`` when it does not resolve.

        References that resolve to a member already yielded are skipped, so a
        voter recorded both by id and by identity is only returned once.
        """
        seen = set()
        for ref in refs:
            try:
                member = self.resolve_member(ref, for_update=for_update)
            except MemberNotFound:
                yield ref, None
                continue
            if member.id in seen:
                continue
            seen.add(member.id)
            yield ref, member
