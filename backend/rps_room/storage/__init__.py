"""Shared store abstraction layer.

Configuration:
    STORE_BACKEND=memory (default) | redis
    REDIS_URL=redis://localhost:6379/0 (required when backend=redis)
"""

import logging

from rps_room.core.config import Settings
from rps_room.storage.backend import SharedStore
from rps_room.storage.locks import LocalLockManager, RedisLockManager
from rps_room.storage.memory import InMemoryStore

logger = logging.getLogger(__name__)

__all__ = [
    "SharedStore",
    "InMemoryStore",
    "LocalLockManager",
    "RedisLockManager",
    "create_store",
    "create_lock_manager",
]


def create_store(settings: Settings) -> SharedStore:
    """Create the store selected by STORE_BACKEND, falling back to memory."""
    backend_type = settings.STORE_BACKEND

    if backend_type == "redis":
        redis_url = settings.REDIS_URL.strip()
        if not redis_url:
            logger.warning("STORE_BACKEND=redis but REDIS_URL not set, falling back to memory")
            return InMemoryStore()
        try:
            from rps_room.storage.redis_backend import RedisStore
            store = RedisStore(redis_url, key_prefix=settings.REDIS_KEY_PREFIX)
            if store.ping():
                logger.info("Store backend: Redis (%s)", redis_url.split("@")[-1])
                return store
            logger.warning("Redis ping failed, falling back to memory store")
            return InMemoryStore()
        except Exception as e:
            logger.warning("Failed to initialize Redis store: %s, falling back to memory", e)
            return InMemoryStore()

    if backend_type != "memory":
        logger.warning("Unknown STORE_BACKEND=%s, using memory", backend_type)

    return InMemoryStore()


def create_lock_manager(store: SharedStore, settings: Settings):
    """Redis locks when the store is Redis-backed, process-local locks otherwise."""
    from rps_room.storage.redis_backend import RedisStore

    if isinstance(store, RedisStore):
        return RedisLockManager(
            store.client,
            key_prefix=settings.REDIS_KEY_PREFIX,
            ttl=settings.LOCK_TTL_SECOND,
            acquire_timeout=settings.LOCK_ACQUIRE_TIMEOUT_SECOND,
        )
    return LocalLockManager(acquire_timeout=settings.LOCK_ACQUIRE_TIMEOUT_SECOND)
