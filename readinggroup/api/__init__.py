from typing import Optional

from django.conf import settings
from django.http import HttpRequest
from ninja import File, NinjaAPI, Router
from ninja.errors import AuthenticationError, HttpError, ValidationError
from ninja.files import UploadedFile
from ninja.security import django_auth

from readinggroup import retention, selection, topics, voting
from readinggroup.accounts import Principal, principal_from_user, user_stats
from readinggroup.exceptions import (
    BadRequest,
    InternalError,
    MemberNotFound,
    ReadingGroupError,
    Unauthenticated,
)
from readinggroup.logging import ReadingGroupLogger
from readinggroup.records import Topic

from .schemas import (
    ClearedOut,
    PersonOut,
    PrincipalOut,
    TopicIn,
    TopicOut,
    UserStatsOut,
)

structured_logger = ReadingGroupLogger.get_logger(__name__)

# Reading topics, voters and proposers is open to anyone; every other route
# needs a logged-in user.
api = NinjaAPI(version=None, urls_namespace="api", auth=django_auth)


def error_response(request: HttpRequest, error: ReadingGroupError):
    return api.create_response(
        request,
        {"reasonCode": error.reason_code, "message": error.message},
        status=error.status_code,
    )


@api.exception_handler(ReadingGroupError)
def reading_group_error(request, exc):
    if exc.status_code >= 500:
        structured_logger.error(
            "API request failed.",
            event_code="api_request_failed",
            reason=exc.message,
            reason_code=exc.reason_code,
            user=request.user,
            path=request.path,
        )
    return error_response(request, exc)


@api.exception_handler(AuthenticationError)
def authentication_error(request, exc):
    return error_response(request, Unauthenticated())


@api.exception_handler(ValidationError)
def validation_error(request, exc):
    return error_response(request, BadRequest("Invalid request", details=exc.errors))


@api.exception_handler(HttpError)
def http_error(request, exc):
    return api.create_response(
        request,
        {"reasonCode": "http_error", "message": str(exc)},
        status=exc.status_code,
    )


@api.exception_handler(Exception)
def unexpected_error(request, exc):
    structured_logger.exception(
        "Unexpected error handling API request.",
        event_code="api_request_error",
        reason=str(exc),
        reason_code="unexpected_error",
        user=request.user,
        path=request.path,
    )
    error = InternalError(str(exc) if settings.DEBUG else None)
    return error_response(request, error)


def request_principal(request: HttpRequest) -> Principal:
    return principal_from_user(request.user)


def serialize_topic(topic: Topic) -> dict:
    document = topic.document
    return {
        "id": topic.id,
        "text": topic.text,
        "votes": topic.votes,
        "proposed_by": topic.proposed_by,
        "is_selected": topic.is_selected,
        "week_date": topic.week_date or None,
        "pdf_file": (
            {
                "filename": document.filename,
                "original_name": document.original_name,
                "path": document.path,
            }
            if document
            else None
        ),
        "upvoted_by": topic.upvoted_by,
        "created_on": topic.created_on,
    }


user = Router(tags=["user"])


@user.get("", response=PrincipalOut, by_alias=True)
def current_user(request):
    principal = request_principal(request)
    return {
        "identity": principal.identity,
        "display_name": principal.display_name,
        "is_admin": principal.is_admin,
    }


@user.get("/stats", response=UserStatsOut, by_alias=True)
def stats(request):
    """GET /user/stats – how many topics the caller upvoted and won."""
    return user_stats(request_principal(request))


topics_router = Router(tags=["topics"])


@topics_router.get("", response=list[TopicOut], by_alias=True, auth=None)
def topic_list(request):
    return [serialize_topic(topic) for topic in topics.list_topics()]


@topics_router.post("", response=TopicOut, by_alias=True)
def topic_create(request, payload: TopicIn):
    topic = topics.propose_topic(request_principal(request), payload.text)
    return serialize_topic(topic)


@topics_router.post("/{topic_id}/upvote", response=TopicOut, by_alias=True)
def topic_upvote(request, topic_id: int):
    topic = voting.cast_upvote(request_principal(request), topic_id)
    return serialize_topic(topic)


@topics_router.post("/{topic_id}/select", response=TopicOut, by_alias=True)
def topic_select(request, topic_id: int):
    """
    POST /topics/{topic_id}/select – admin only.

    Clears any other selection, labels the topic with the current week and
    credits its proposer; voters are credited in the background.
    """
    topic = selection.select_topic(request_principal(request), topic_id)
    return serialize_topic(topic)


@topics_router.post("/{topic_id}/upload-pdf", response=TopicOut, by_alias=True)
def topic_upload_pdf(
    request,
    topic_id: int,
    pdfFile: Optional[UploadedFile] = File(None),  # noqa: N803
):
    topic = topics.attach_file(request_principal(request), topic_id, pdfFile)
    return serialize_topic(topic)


@topics_router.get(
    "/{topic_id}/voters", response=list[PersonOut], by_alias=True, auth=None
)
def topic_voters(request, topic_id: int):
    return topics.list_voters(topic_id)


@topics_router.get(
    "/{topic_id}/proposer", response=PersonOut, by_alias=True, auth=None
)
def topic_proposer(request, topic_id: int):
    proposer = topics.get_proposer(topic_id)
    if proposer is None:
        raise MemberNotFound("The proposer of this topic is unknown")
    return proposer


@topics_router.delete("/clear-all", response=ClearedOut, by_alias=True)
def topic_clear_all(request):
    deleted = retention.clear_all(request_principal(request))
    return {
        "message": f"All topics cleared successfully. Deleted {deleted} topics.",
        "deleted": deleted,
    }


@topics_router.delete("/clear-except-selected", response=ClearedOut, by_alias=True)
def topic_clear_except_selected(request):
    deleted = retention.clear_except_selected(request_principal(request))
    return {
        "message": (
            "All topics except selected cleared successfully. "
            f"Deleted {deleted} topics."
        ),
        "deleted": deleted,
    }


api.add_router("/user", user)
api.add_router("/topics", topics_router)
