import logging
from collections.abc import Iterator
from contextlib import contextmanager

import redis

from campusconnect.core.config import Settings
from campusconnect.core.errors import ServiceBusyError

logger = logging.getLogger(__name__)


def event_lock_key(event_id: int) -> str:
    return f"event_lock:{event_id}"


@contextmanager
def event_lock(redis_client: redis.Redis, event_id: int, settings: Settings) -> Iterator[None]:
    """
    Hold the per-event lock that serializes capacity-affecting writes.

    Only one request at a time can check and claim a seat for a given event,
    across every API process sharing the same Redis.
    """
    lock = redis_client.lock(
        event_lock_key(event_id),
        timeout=settings.lock_timeout_seconds,
        blocking_timeout=settings.lock_blocking_timeout_seconds,
    )
    try:
        acquired = lock.acquire(blocking=True)
    except redis.exceptions.RedisError:
        logger.exception("Redis unavailable while locking event %s", event_id)
        raise ServiceBusyError("Could not acquire lock, please try again.")
    if not acquired:
        logger.warning("Timed out waiting for lock on event %s", event_id)
        raise ServiceBusyError("Could not acquire lock, please try again.")

    try:
        yield
    finally:
        try:
            lock.release()
        except redis.exceptions.LockError:
            # the work already finished; the lock expired under it
            logger.warning("Lock on event %s expired before release", event_id)
        except redis.exceptions.RedisError:
            logger.warning("Could not release lock on event %s; it expires on its own", event_id, exc_info=True)
