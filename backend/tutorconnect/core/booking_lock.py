# backend/tutorconnect/core/booking_lock.py
"""
Per-tutor mutual exclusion for the booking check-and-insert.

With ``REDIS_URL`` configured the lock is a Redis ``SET NX EX`` key shared by
every worker process; otherwise it is a process-local ``threading.Lock``
keyed by tutor. Either way acquisition is bounded, and a lock that cannot be
obtained raises a retryable ServiceException instead of letting the caller
proceed unlocked.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Dict, Iterator, Optional
import uuid

from redis import Redis
from redis.exceptions import RedisError

from .config import settings
from .exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_POLL_INTERVAL_S = 0.05

# Deletes the key only if it still holds our token, so an expired lock that
# another holder re-acquired is never released by us.
_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()

_LOCAL_LOCKS: Dict[str, threading.Lock] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()


def _lock_key(tutor_profile_id: str) -> str:
    return f"tutorconnect:lock:tutor:{tutor_profile_id}:bookings"


def _get_sync_redis() -> Redis:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is None:
            _SYNC_REDIS = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=settings.booking_lock_timeout_seconds,
                socket_connect_timeout=settings.booking_lock_timeout_seconds,
            )
        return _SYNC_REDIS


def _lock_unavailable(tutor_profile_id: str, backend: str, reason: str) -> ServiceException:
    return ServiceException(
        "Another booking for this tutor is in progress. Please retry.",
        code="BOOKING_LOCK_TIMEOUT",
        details={"tutor_profile_id": tutor_profile_id, "backend": backend, "reason": reason},
        retryable=True,
    )


@contextmanager
def _redis_lock(tutor_profile_id: str, timeout_s: float, ttl_s: int) -> Iterator[None]:
    key = _lock_key(tutor_profile_id)
    token = uuid.uuid4().hex
    started = time.monotonic()
    deadline = started + timeout_s

    try:
        client = _get_sync_redis()
        while not client.set(key, token, nx=True, ex=ttl_s):
            if time.monotonic() >= deadline:
                prometheus_metrics.record_booking_lock("redis", "acquire", "timeout")
                raise _lock_unavailable(tutor_profile_id, "redis", "timeout")
            time.sleep(_POLL_INTERVAL_S)
    except RedisError as exc:
        prometheus_metrics.record_booking_lock("redis", "acquire", "error")
        logger.warning(
            "booking_lock_redis_acquire_failed",
            extra={
                "tutor_profile_id": tutor_profile_id,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        raise _lock_unavailable(tutor_profile_id, "redis", "unavailable") from exc

    prometheus_metrics.record_booking_lock("redis", "acquire", "success")
    prometheus_metrics.observe_booking_lock_wait("redis", time.monotonic() - started)
    try:
        yield
    finally:
        try:
            released = client.eval(_RELEASE_SCRIPT, 1, key, token)
            prometheus_metrics.record_booking_lock(
                "redis", "release", "success" if released else "expired"
            )
        except RedisError as exc:
            # the key still expires after ttl_s
            prometheus_metrics.record_booking_lock("redis", "release", "error")
            logger.warning(
                "booking_lock_redis_release_failed",
                extra={"tutor_profile_id": tutor_profile_id, "error": str(exc)},
            )


def _local_lock_for(tutor_profile_id: str) -> threading.Lock:
    with _LOCAL_LOCKS_GUARD:
        lock = _LOCAL_LOCKS.get(tutor_profile_id)
        if lock is None:
            lock = threading.Lock()
            _LOCAL_LOCKS[tutor_profile_id] = lock
        return lock


@contextmanager
def _local_lock(tutor_profile_id: str, timeout_s: float) -> Iterator[None]:
    lock = _local_lock_for(tutor_profile_id)
    started = time.monotonic()
    if not lock.acquire(timeout=timeout_s):
        prometheus_metrics.record_booking_lock("local", "acquire", "timeout")
        raise _lock_unavailable(tutor_profile_id, "local", "timeout")
    prometheus_metrics.record_booking_lock("local", "acquire", "success")
    prometheus_metrics.observe_booking_lock_wait("local", time.monotonic() - started)
    try:
        yield
    finally:
        lock.release()


@contextmanager
def tutor_booking_lock(
    tutor_profile_id: str,
    timeout_s: Optional[float] = None,
    ttl_s: Optional[int] = None,
) -> Iterator[None]:
    """
    Hold the booking lock for ``tutor_profile_id`` for the duration of the block.

    Raises:
        ServiceException: (retryable) when the lock cannot be acquired in time
    """
    wait = settings.booking_lock_timeout_seconds if timeout_s is None else timeout_s
    if settings.redis_url:
        ttl = settings.booking_lock_ttl_seconds if ttl_s is None else ttl_s
        with _redis_lock(tutor_profile_id, wait, ttl):
            yield
    else:
        with _local_lock(tutor_profile_id, wait):
            yield
