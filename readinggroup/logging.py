"""
Structured event logging for the reading group.

Every event carries a machine-readable ``event_code``; warnings and errors also
carry a human ``reason`` and a ``reason_code``. Domain objects passed as
``user=``, ``principal=``, ``member=`` or ``topic=`` are flattened into plain
fields so the JSON log lines stay small and searchable::

    structured_logger = ReadingGroupLogger.get_logger(__name__)
    structured_logger.info("Upvote recorded.", event_code="topic_upvoted",
                           topic=topic, principal=principal)
"""

from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

import structlog


def get_logging_user_id(user: Any) -> str:
    """Primary key of an authenticated Django user, otherwise ``"anonymous"``."""
    if not getattr(user, "is_authenticated", False):
        return "anonymous"
    user_id = getattr(user, "id", None)
    return "anonymous" if user_id is None else str(user_id)


def _principal_fields(principal) -> dict[str, Any]:
    return {
        "identity": getattr(principal, "identity", None),
        "is_admin": getattr(principal, "is_admin", None),
    }


def _member_fields(member) -> dict[str, Any]:
    return {
        "member_id": getattr(member, "id", None),
        "identity": getattr(member, "identity", None),
    }


EXTRACTORS: Mapping[str, Callable[[Any], dict[str, Any]]] = MappingProxyType(
    {
        "user": lambda user: {"user_id": get_logging_user_id(user)},
        "principal": _principal_fields,
        "member": _member_fields,
        "topic": lambda topic: {"topic_id": getattr(topic, "id", None)},
    }
)

REASON_LEVELS = frozenset(["warning", "error", "exception"])


class ReadingGroupLogger:
    """
    Wrapper around a structlog logger that validates and flattens event fields.

    Context bound with ``bind()`` is merged into every event. Precedence, from
    lowest to highest: fields extracted from domain objects, bound plain
    fields, explicit keyword arguments. ``None`` values are dropped.
    """

    def __init__(self, logger, context: Optional[dict[str, Any]] = None):
        self._logger = logger
        self._context = dict(context or {})

    @classmethod
    def get_logger(cls, name: str) -> "ReadingGroupLogger":
        # Routed through the "structlog" logger so the JSON handler picks it up
        return cls(structlog.get_logger(f"structlog.{name}"))

    def bind(self, **kwargs: Any) -> "ReadingGroupLogger":
        return ReadingGroupLogger(self._logger, context={**self._context, **kwargs})

    def _event_fields(self, context: dict[str, Any]) -> dict[str, Any]:
        merged = {**self._context, **context}
        fields: dict[str, Any] = {}

        for key, extract in EXTRACTORS.items():
            value = merged.pop(key, None)
            if value:
                for name, extracted in extract(value).items():
                    fields.setdefault(name, extracted)

        fields.update(merged)
        return {name: value for name, value in fields.items() if value is not None}

    def log(
        self,
        level: str,
        message: str,
        *,
        event_code: str,
        reason: Optional[str] = None,
        reason_code: Optional[str] = None,
        **context: Any,
    ) -> None:
        """
        Validate and emit one event at ``level``.

        Prefer the level methods; this is their shared implementation.

        Raises:
            ValueError: If the message or event code is empty, or a warning or
                error lacks its reason or reason code.
        """
        if not message:
            raise ValueError("Log message is required.")
        if not event_code:
            raise ValueError("Structured logs must include an 'event_code' field.")
        if level in REASON_LEVELS and not (reason and reason_code):
            raise ValueError(
                "Warnings and errors must include both 'reason' and 'reason_code'."
            )

        fields = self._event_fields(context)
        fields["event_code"] = event_code
        if reason:
            fields["reason"] = reason
        if reason_code:
            fields["reason_code"] = reason_code

        getattr(self._logger, level)(message, **fields)

    def debug(self, message: str, *, event_code: str, **kwargs):
        self.log("debug", message, event_code=event_code, **kwargs)

    def info(self, message: str, *, event_code: str, **kwargs):
        self.log("info", message, event_code=event_code, **kwargs)

    def warning(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **kwargs
    ):
        self.log("warning", message, event_code=event_code, reason=reason,
                 reason_code=reason_code, **kwargs)

    def error(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **kwargs
    ):
        self.log("error", message, event_code=event_code, reason=reason,
                 reason_code=reason_code, **kwargs)

    def exception(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **kwargs
    ):
        """Log at error level with the active exception's traceback attached."""
        self.log("exception", message, event_code=event_code, reason=reason,
                 reason_code=reason_code, **kwargs)
