import logging
from collections.abc import Generator
from contextlib import contextmanager
from secrets import token_hex

from django.core.cache import cache

from readinggroup.exceptions import CacheLockedError

logger = logging.getLogger(__name__)

DEFAULT_LOCK_DURATION = 60 * 10  # 10 minutes

#: Held while the vote state is being reconciled, by a worker or a command
RECONCILE_LOCK = "readinggroup:lock:reconcile-vote-state"


@contextmanager
def cache_lock(
    lock_id: str,
    owner: str,
    lock_duration: int = DEFAULT_LOCK_DURATION,
) -> Generator[bool, None, None]:
    """
    Try to take a lock shared by every process using the default cache.

    ``cache.add`` only writes an absent key, so one caller at a time gets
    ``True``. The stored value is the owner plus a random token; on exit the
    key is deleted only while it still holds that value, which leaves alone a
    lock that expired and was taken by someone else in the meantime.

    Yields:
        bool: Whether the lock was acquired.
    """
    token = f"{owner}:{token_hex(8)}"
    acquired = cache.add(lock_id, token, lock_duration)
    if not acquired:
        logger.debug("Lock %s is held by %s", lock_id, cache.get(lock_id))
    try:
        yield acquired
    finally:
        if acquired and cache.get(lock_id) == token:
            cache.delete(lock_id)


@contextmanager
def exclusive_lock(
    lock_id: str,
    owner: str,
    lock_duration: int = DEFAULT_LOCK_DURATION,
) -> Generator[None, None, None]:
    """
    Like ``cache_lock`` but fail instead of reporting a held lock.

    Raises:
        CacheLockedError: If the lock is held elsewhere.
    """
    with cache_lock(lock_id, owner, lock_duration) as acquired:
        if not acquired:
            raise CacheLockedError(f"Lock {lock_id} is held", details=lock_id)
        yield
