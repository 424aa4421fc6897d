"""In-memory key-value store: process-local, used in tests and development."""

import threading
import time
from collections.abc import Callable

from notifications.store.port import KeyValueStore


class InMemoryStore(KeyValueStore):
    """Dict-backed store with per-key expiry guarded by a single lock."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()

    def _live(self, key):
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return value

    def _expiry(self, ttl_seconds):
        return self._clock() + ttl_seconds if ttl_seconds else None

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        with self._lock:
            if self._live(key) is not None:
                return False
            self._data[key] = (str(value), self._expiry(ttl_seconds))
            return True

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._live(key)

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        with self._lock:
            self._data[key] = (str(value), self._expiry(ttl_seconds))

    def incr(self, key: str, ttl_seconds: int) -> int:
        with self._lock:
            current = self._live(key)
            if current is None:
                self._data[key] = ("1", self._expiry(ttl_seconds))
                return 1
            value = int(current) + 1
            self._data[key] = (str(value), self._data[key][1])
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def delete_if_equals(self, key: str, value: str) -> bool:
        with self._lock:
            if self._live(key) == str(value):
                del self._data[key]
                return True
            return False

    def ping(self) -> bool:
        return True

    def reset(self):
        """Drop every key (useful between tests)."""
        with self._lock:
            self._data.clear()
