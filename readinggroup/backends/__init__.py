"""
Storage backends for members and topics.

``get_store()`` builds the backend named by ``READINGGROUP_STORE_BACKEND`` the
first time it is called and hands out the same instance afterwards. When the
configured backend is the database and ``READINGGROUP_STORE_FALLBACK`` is on,
an unreachable database at that moment makes the process use the in-memory
backend instead, for the rest of its life.
"""

import functools

from django.conf import settings
from django.utils.module_loading import import_string

from readinggroup.exceptions import StorageUnavailable
from readinggroup.logging import ReadingGroupLogger

from .base import TopicStore
from .memory import MemoryTopicStore

__all__ = ["TopicStore", "MemoryTopicStore", "get_store", "reset_store"]

structured_logger = ReadingGroupLogger.get_logger(__name__)


def build_store() -> TopicStore:
    backend_path = settings.READINGGROUP_STORE_BACKEND
    store = import_string(backend_path)()

    ping = getattr(store, "ping", None)
    if ping is not None and settings.READINGGROUP_STORE_FALLBACK:
        try:
            ping()
        except StorageUnavailable as err:
            structured_logger.warning(
                "Configured storage backend is unreachable; using in-memory storage.",
                event_code="store_fallback_to_memory",
                reason=str(err.details or err),
                reason_code="storage_unavailable",
                backend=backend_path,
            )
            return MemoryTopicStore()

    structured_logger.info(
        "Storage backend initialized.",
        event_code="store_initialized",
        backend=backend_path,
    )
    return store


@functools.lru_cache(maxsize=None)
def get_store() -> TopicStore:
    return build_store()


def reset_store() -> None:
    """Forget the cached store so the next ``get_store()`` builds a new one."""
    get_store.cache_clear()
