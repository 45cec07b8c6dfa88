class ReadingGroupError(Exception):
    """
    Base class for every error the topic and voting operations raise on purpose.

    ``reason_code`` is the stable machine-readable value returned to API
    clients and written to structured logs; ``status_code`` is the HTTP status
    the API layer answers with.
    """

    reason_code = "error"
    status_code = 400
    default_message = "The request could not be completed."

    def __init__(self, message=None, details=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details


class Unauthenticated(ReadingGroupError):
    reason_code = "unauthenticated"
    status_code = 401
    default_message = "Not authenticated"


class Forbidden(ReadingGroupError):
    reason_code = "forbidden"
    status_code = 403
    default_message = "Not authorized"


class NotFound(ReadingGroupError):
    reason_code = "not_found"
    status_code = 404
    default_message = "Not found"


class TopicNotFound(NotFound):
    reason_code = "topic_not_found"
    default_message = "Topic not found"


class MemberNotFound(NotFound):
    reason_code = "member_not_found"
    default_message = "User not found"


class AlreadyVoted(ReadingGroupError):
    reason_code = "already_voted"
    status_code = 409
    default_message = "Already upvoted"


class PreconditionFailed(ReadingGroupError):
    reason_code = "precondition_failed"
    status_code = 409
    default_message = "The topic state does not allow this operation."


class BadFile(ReadingGroupError):
    reason_code = "bad_file"
    status_code = 400
    default_message = "Only PDF files up to 10 MB are allowed"


class BadRequest(ReadingGroupError):
    reason_code = "bad_request"
    status_code = 400


class StorageUnavailable(ReadingGroupError):
    # Transient: callers may retry the same request
    reason_code = "storage_unavailable"
    status_code = 503
    default_message = "Storage is temporarily unavailable, please retry."


class InternalError(ReadingGroupError):
    reason_code = "internal_error"
    status_code = 500
    default_message = "Internal Server Error"


class CacheLockedError(Exception):
    """A cache lock needed by the caller is held by another process."""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details
