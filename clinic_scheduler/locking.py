"""
Per-slot mutual exclusion for booking writes.

Hybrid in-process + Redis locking:
1. An in-memory ``threading.Lock`` per slot key serializes worker threads
2. When REDIS_URL is configured, a Redis lock on the same key serializes
   separate worker processes

Both are bounded by SLOT_LOCK_TIMEOUT_SECONDS. The partial unique index on
appointments stays the final guard, so a Redis outage degrades to
database-only protection instead of blocking bookings.
"""

import logging
from contextlib import ExitStack, contextmanager
from threading import Lock
from typing import Iterator, Optional

import redis

from .config import REDIS_URL, SLOT_LOCK_TIMEOUT_SECONDS
from .domain.scheduling.errors import SlotTaken

logger = logging.getLogger(__name__)

# Redis connection (None when REDIS_URL is not configured)
redis_client: Optional[redis.Redis] = None
_redis_checked = False

LOCK_KEY_PREFIX = "slot_lock"


def get_redis_client() -> Optional[redis.Redis]:
    """
    Get or create the Redis client used for cross-process slot locks.
    Returns None when REDIS_URL is unset.
    """
    global redis_client, _redis_checked

    if redis_client is None and not _redis_checked:
        _redis_checked = True
        if not REDIS_URL:
            logger.info("REDIS_URL not set - slot locks are process-local")
            return None

        # Mask password in URL for logging
        if "@" in REDIS_URL:
            url_parts = REDIS_URL.split("@")
            protocol = url_parts[0].split(":")[0]
            masked_url = f"{protocol}:****@{url_parts[1]}"
        else:
            masked_url = "****"
        logger.info(f"📡 Using Redis URL connection for slot locks: {masked_url}")

        try:
            client = redis.from_url(
                REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=10,
                retry_on_timeout=True,
                health_check_interval=30,
                max_connections=20,
            )
            client.ping()
            redis_client = client
            logger.info("Redis connected successfully via URL")
        except redis.RedisError as e:
            logger.error(f"❌ Failed to connect to Redis via URL: {str(e)}")
            logger.error("⚠️ Slot locks fall back to process-local locking plus database constraints")
            raise

    return redis_client


def slot_lock_key(provider_id: str, on_date, slot_index: int) -> str:
    return f"{LOCK_KEY_PREFIX}:{provider_id}:{on_date.isoformat()}:{slot_index}"


class SlotLocks:
    """Registry of keyed locks. Entries are dropped once no holder or waiter remains."""

    def __init__(self, timeout: float = SLOT_LOCK_TIMEOUT_SECONDS, use_redis: bool = True):
        self.timeout = timeout
        self.use_redis = use_redis
        # Format: {key: [Lock, refcount]}
        self._locks: dict[str, list] = {}
        self._registry_lock = Lock()

    def _checkout(self, key: str) -> Lock:
        with self._registry_lock:
            entry = self._locks.setdefault(key, [Lock(), 0])
            entry[1] += 1
            return entry[0]

    def _release_entry(self, key: str) -> None:
        with self._registry_lock:
            entry = self._locks.get(key)
            if entry is None:
                return
            entry[1] -= 1
            if entry[1] <= 0:
                del self._locks[key]

    @contextmanager
    def _hold_local(self, key: str) -> Iterator[None]:
        lock = self._checkout(key)
        try:
            if not lock.acquire(timeout=self.timeout):
                logger.warning(f"⏳ Timed out waiting for slot lock {key}")
                raise SlotTaken("This slot is being booked by another request", lock_key=key)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._release_entry(key)

    @contextmanager
    def _hold_redis(self, key: str) -> Iterator[None]:
        client = None
        if self.use_redis:
            try:
                client = get_redis_client()
            except redis.RedisError:
                client = None

        if client is None:
            yield
            return

        lock = client.lock(key, timeout=max(self.timeout * 2, 1), blocking_timeout=self.timeout)
        try:
            acquired = lock.acquire()
        except redis.RedisError as e:
            logger.warning(f"⚠️ Redis slot lock unavailable for {key}, using database guard only: {e}")
            yield
            return

        if not acquired:
            logger.warning(f"⏳ Timed out waiting for Redis slot lock {key}")
            raise SlotTaken("This slot is being booked by another request", lock_key=key)
        try:
            yield
        finally:
            try:
                lock.release()
            except redis.RedisError as e:
                # Lock expires on its own after `timeout`
                logger.warning(f"⚠️ Failed to release Redis slot lock {key}: {e}")

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Hold every key for the duration of the block, acquired in sorted order"""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self._hold_local(key))
                stack.enter_context(self._hold_redis(key))
            yield


# Shared by every request handled in this process
slot_locks = SlotLocks()
