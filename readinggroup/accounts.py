from dataclasses import dataclass
from typing import Optional

from readinggroup.backends import TopicStore, get_store
from readinggroup.exceptions import Forbidden, Unauthenticated
from readinggroup.logging import ReadingGroupLogger
from readinggroup.records import Member

structured_logger = ReadingGroupLogger.get_logger(__name__)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as vouched for by the identity provider."""

    identity: str
    display_name: str = ""
    is_admin: bool = False


def principal_from_user(user) -> Principal:
    """
    Build a Principal from a Django user.

    Raises:
        Unauthenticated: If there is no authenticated user or it has no email.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        raise Unauthenticated()
    identity = getattr(user, "email", "") or ""
    if not identity:
        raise Unauthenticated("Authenticated user has no email address")
    display_name = user.get_full_name() or identity.split("@")[0]
    return Principal(
        identity=identity,
        display_name=display_name,
        is_admin=bool(user.is_staff or user.is_superuser),
    )


def require_principal(principal: Optional[Principal]) -> Principal:
    if principal is None:
        raise Unauthenticated()
    return principal


def require_admin(principal: Optional[Principal]) -> Principal:
    principal = require_principal(principal)
    if not principal.is_admin:
        raise Forbidden()
    return principal


def ensure_member(principal: Principal, store: Optional[TopicStore] = None) -> Member:
    """Fetch or create the member record for a principal, refreshing its flags."""
    store = store or get_store()
    member, created = store.get_or_create_member(
        principal.identity, principal.display_name, principal.is_admin
    )
    if created:
        structured_logger.info(
            "Created member on first authentication.",
            event_code="member_created",
            member=member,
        )
    return member


def user_stats(principal: Optional[Principal], store: Optional[TopicStore] = None):
    """
    Return how many topics the caller has upvoted and how many they have won.

    Returns:
        dict: ``{"total_voted": int, "total_selected": int}``
    """
    principal = require_principal(principal)
    member = ensure_member(principal, store)
    return {
        "total_voted": len(set(member.upvoted_topics)),
        "total_selected": len(set(member.won_topics)),
    }
