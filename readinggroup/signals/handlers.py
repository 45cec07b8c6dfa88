import logging
from typing import Any

import structlog
from django.contrib.auth.models import User
from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver
from django.http import HttpRequest
from django.http.response import HttpResponseBase
from django_structlog import signals

# Registers the Celery tasks that the topic operations look up by name
import readinggroup.tasks  # NOQA: F401
from readinggroup.accounts import ensure_member, principal_from_user
from readinggroup.backends import get_store
from readinggroup.backends.orm import OrmTopicStore
from readinggroup.exceptions import StorageUnavailable, Unauthenticated
from readinggroup.logging import ReadingGroupLogger
from readinggroup.models import Member

logger = logging.getLogger(__name__)
structured_logger = ReadingGroupLogger.get_logger(__name__)


@receiver(user_logged_in)
def ensure_member_on_login(
    sender: type[User],
    user: User,
    request: HttpRequest,
    **kwargs: Any,
) -> None:
    """
    Create or refresh the member record of a user who just logged in.

    The member's admin flag and display name follow the Django user. With the
    database store the member row is also linked to the user account.
    A failure here is logged and never blocks the login itself.

    Args:
        sender (type[User]): The User model class that sent the signal.
        user (User): The authenticated user.
        request (HttpRequest): The current request.
        **kwargs: Additional signal data (ignored).
    """
    try:
        principal = principal_from_user(user)
    except Unauthenticated as err:
        structured_logger.warning(
            "Logged-in user cannot become a member.",
            event_code="member_login_skipped",
            reason=err.message,
            reason_code=err.reason_code,
            user=user,
        )
        return

    store = get_store()
    try:
        member = ensure_member(principal, store)
        if isinstance(store, OrmTopicStore):
            Member.objects.filter(pk=member.id, user__isnull=True).update(user=user)
    except StorageUnavailable as err:
        structured_logger.warning(
            "Could not record member on login.",
            event_code="member_login_failed",
            reason=err.message,
            reason_code=err.reason_code,
            user=user,
        )
        return

    logger.info("Member %s logged in", member.identity)


@receiver(signals.update_failure_response)
@receiver(signals.bind_extra_request_finished_metadata)
def add_request_id_to_response(
    response: HttpResponseBase,
    logger: Any,
    **kwargs: Any,
) -> None:
    """Add an ``X-Request-ID`` header so API errors can be traced in the logs."""
    context = structlog.contextvars.get_merged_contextvars(logger)
    if "request_id" in context:
        response["X-Request-ID"] = context["request_id"]
