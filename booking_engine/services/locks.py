# booking_engine/services/locks.py
"""
Per-item mutex for booking creation.

All create attempts for one bookable item run the capacity/staff checks
and the commit while holding this lock, so they are linearised.

- Redis configured: redis-py Lock on `lock:booking:item:{id}` (works across
  processes and hosts).
- Otherwise: in-process threading.Lock per item.

Failing to get the lock within the blocking timeout is a transient
condition -> PersistenceConflict.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from redis import Redis
from redis.exceptions import LockError

from ..errors import PersistenceConflict
from ..redis_client import get_redis_client
from .slots.config import BookingConfig, get_booking_config

logger = logging.getLogger(__name__)

KEY_PREFIX = "lock:booking:item"

_local_locks: dict[int, threading.Lock] = {}
_local_locks_guard = threading.Lock()


def _local_lock(bookable_item_id: int) -> threading.Lock:
    with _local_locks_guard:
        lock = _local_locks.get(bookable_item_id)
        if lock is None:
            lock = threading.Lock()
            _local_locks[bookable_item_id] = lock
        return lock


@contextmanager
def item_lock(
    bookable_item_id: int,
    config: BookingConfig | None = None,
    redis: Optional[Redis] = None,
) -> Iterator[None]:
    """Hold the booking-creation lock for one bookable item."""
    config = config or get_booking_config()
    redis = redis if redis is not None else get_redis_client()

    if redis is not None:
        with _redis_lock(redis, bookable_item_id, config):
            yield
        return

    lock = _local_lock(bookable_item_id)
    if not lock.acquire(timeout=config.lock_blocking_timeout_seconds):
        logger.warning(f"Timed out waiting for booking lock item={bookable_item_id}")
        raise PersistenceConflict("Bookable item is busy, please retry")
    try:
        yield
    finally:
        lock.release()


@contextmanager
def _redis_lock(redis: Redis, bookable_item_id: int, config: BookingConfig) -> Iterator[None]:
    lock = redis.lock(
        f"{KEY_PREFIX}:{bookable_item_id}",
        timeout=config.lock_timeout_seconds,
        blocking_timeout=config.lock_blocking_timeout_seconds,
    )
    if not lock.acquire():
        logger.warning(f"Timed out waiting for redis booking lock item={bookable_item_id}")
        raise PersistenceConflict("Bookable item is busy, please retry")
    try:
        yield
    finally:
        try:
            lock.release()
        except LockError:
            # Lock expired while held; the version check in commit_booking
            # still rejects a stale write.
            logger.warning(f"Redis booking lock expired before release item={bookable_item_id}")
