"""Shared key-value store registry.

Uses the in-memory store by default; set ``KV_BACKEND=redis`` (with
``REDIS_URL``) to share counters and claims across worker processes.
"""

from notifications.settings import get_settings
from notifications.store.memory import InMemoryStore
from notifications.store.port import KeyValueStore

_store_instance: KeyValueStore | None = None


def get_store() -> KeyValueStore:
    """Return the configured store (singleton)."""
    global _store_instance
    if _store_instance is None:
        settings = get_settings()
        if settings.kv_backend == "redis":
            from notifications.store.redis_store import RedisStore

            _store_instance = RedisStore(url=settings.redis_url)
        else:
            _store_instance = InMemoryStore()
    return _store_instance


def set_store(store: KeyValueStore) -> None:
    """Install a specific store instance (tests inject clocks or failures this way)."""
    global _store_instance
    _store_instance = store


def reset_store():
    """Reset the store singleton (useful for testing)."""
    global _store_instance
    _store_instance = None
