"""
Plain snapshots of the two entity collections.

Both storage backends hand these dataclasses to callers and accept them back
on save, so the voting, selection and retention code never touches a model
instance or a backend's internal dictionaries directly.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True)
class ById:
    """Reference to a member by primary key (legacy numeric form)."""

    member_id: int

    def __str__(self) -> str:
        return str(self.member_id)


@dataclass(frozen=True)
class ByIdentity:
    """Reference to a member by identity (email)."""

    identity: str

    def __str__(self) -> str:
        return self.identity


MemberRef = Union[ById, ByIdentity]


def parse_member_ref(raw: Union[str, int]) -> MemberRef:
    """
    Turn a stored reference into a ``ById`` or ``ByIdentity``.

    Older rows recorded the proposer and voters by primary key; everything
    written now uses the identity. A value made only of digits is the
    primary-key form.
    """
    value = str(raw).strip()
    if value.isdigit():
        return ById(int(value))
    return ByIdentity(value)


@dataclass
class Document:
    filename: str
    original_name: str
    path: str


@dataclass
class Member:
    id: int  # noqa: A003
    identity: str
    display_name: str = ""
    is_admin: bool = False
    upvoted_topics: list[int] = field(default_factory=list)
    won_topics: list[int] = field(default_factory=list)

    def matches(self, ref: MemberRef) -> bool:
        if isinstance(ref, ById):
            return ref.member_id == self.id
        return ref.identity == self.identity

    def add_upvoted(self, topic_id: int) -> bool:
        if topic_id in self.upvoted_topics:
            return False
        self.upvoted_topics.append(topic_id)
        return True

    def add_won(self, topic_id: int) -> bool:
        if topic_id in self.won_topics:
            return False
        self.won_topics.append(topic_id)
        return True


@dataclass
class Topic:
    id: int  # noqa: A003
    text: str
    proposed_by: str
    votes: int = 0
    is_selected: bool = False
    week_date: str = ""
    document: Optional[Document] = None
    upvoted_by: list[str] = field(default_factory=list)
    won_by: list[str] = field(default_factory=list)
    created_on: Optional[datetime.datetime] = None

    @property
    def proposer_ref(self) -> Optional[MemberRef]:
        if not self.proposed_by:
            return None
        return parse_member_ref(self.proposed_by)

    @property
    def voter_refs(self) -> list[MemberRef]:
        return [parse_member_ref(raw) for raw in self.upvoted_by]

    def has_voter(self, member: Member) -> bool:
        return any(member.matches(ref) for ref in self.voter_refs)

    def was_won_by(self, member: Member) -> bool:
        return any(member.matches(parse_member_ref(raw)) for raw in self.won_by)
