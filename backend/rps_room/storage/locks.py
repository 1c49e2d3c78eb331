"""Per-room locks serializing every game transition.

LocalLockManager guards rooms within one process. RedisLockManager hands out
Redis SET NX EX locks so several instances can share one store.
Both return objects usable with ``async with``.
"""

import asyncio
import logging
import time
import uuid
import weakref
from typing import Optional

logger = logging.getLogger(__name__)

# Auto-release if the holder crashes
_DEFAULT_LOCK_TTL_SECONDS = 30
_RETRY_INTERVAL_SECONDS = 0.05
_DEFAULT_ACQUIRE_TIMEOUT_SECONDS = 10

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisLock:
    """Redis-based distributed lock compatible with `async with`.

    Each instance carries a unique token so only the holder can release.

    Usage:
        lock = RedisLock(redis_client, "rps:lock:room:Ab3xZ")
        async with lock:
            # critical section
    """

    def __init__(
        self,
        redis_client,
        key: str,
        ttl: int = _DEFAULT_LOCK_TTL_SECONDS,
        acquire_timeout: float = _DEFAULT_ACQUIRE_TIMEOUT_SECONDS,
    ):
        self._client = redis_client
        self._key = key
        self._ttl = ttl
        self._acquire_timeout = acquire_timeout
        self._token: Optional[str] = None

    @property
    def key(self) -> str:
        return self._key

    async def acquire(self) -> bool:
        """Try to acquire within the timeout. Returns False on timeout."""
        token = str(uuid.uuid4())
        deadline = time.monotonic() + self._acquire_timeout

        while time.monotonic() < deadline:
            if self._client.set(self._key, token, nx=True, ex=self._ttl):
                self._token = token
                return True
            await asyncio.sleep(_RETRY_INTERVAL_SECONDS)

        logger.warning(
            "Failed to acquire lock %s within %ss", self._key, self._acquire_timeout
        )
        return False

    def release(self) -> None:
        """Atomically check-and-delete so a stale holder cannot free a newer lock."""
        if self._token is None:
            return
        try:
            self._client.eval(_RELEASE_SCRIPT, 1, self._key, self._token)
        except Exception as e:
            logger.warning("Failed to release lock %s: %s", self._key, e)
        finally:
            self._token = None

    async def __aenter__(self):
        if not await self.acquire():
            raise TimeoutError(
                f"Could not acquire lock {self._key} within {self._acquire_timeout}s"
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


class RedisLockManager:
    """Creates RedisLock instances with a consistent key prefix."""

    def __init__(
        self,
        redis_client,
        key_prefix: str = "rps:",
        ttl: int = _DEFAULT_LOCK_TTL_SECONDS,
        acquire_timeout: float = _DEFAULT_ACQUIRE_TIMEOUT_SECONDS,
    ):
        self._client = redis_client
        self._lock_prefix = f"{key_prefix}lock:room:"
        self._ttl = ttl
        self._acquire_timeout = acquire_timeout

    def get_lock(self, room_id: str) -> RedisLock:
        return RedisLock(
            self._client,
            f"{self._lock_prefix}{room_id}",
            ttl=self._ttl,
            acquire_timeout=self._acquire_timeout,
        )


class _TimedLock:
    """asyncio.Lock wrapper that raises TimeoutError like RedisLock."""

    def __init__(self, lock: asyncio.Lock, key: str, acquire_timeout: float):
        self._lock = lock
        self._key = key
        self._acquire_timeout = acquire_timeout

    @property
    def key(self) -> str:
        return self._key

    def locked(self) -> bool:
        return self._lock.locked()

    async def __aenter__(self):
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout=self._acquire_timeout)
        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Could not acquire lock {self._key} within {self._acquire_timeout}s"
            ) from e
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._lock.release()
        return False


class LocalLockManager:
    """One asyncio.Lock per room for single-process deployments.

    A room's lock is dropped once no caller holds a reference to it.
    """

    def __init__(self, acquire_timeout: float = _DEFAULT_ACQUIRE_TIMEOUT_SECONDS):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._acquire_timeout = acquire_timeout

    def get_lock(self, room_id: str) -> _TimedLock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        return _TimedLock(lock, room_id, self._acquire_timeout)
