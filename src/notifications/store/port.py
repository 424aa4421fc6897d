"""Key-value store port: atomic primitives shared by dedup and rate limiting."""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Abstract interface for the shared low-latency store.

    Every mutating method is a single atomic operation on the backend.
    Implementations raise ``StoreUnavailable`` when the backend cannot be
    reached; callers decide whether to fail open.
    """

    @abstractmethod
    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Store ``value`` only if ``key`` does not exist. Returns True when stored."""
        ...

    @abstractmethod
    def get(self, key: str) -> str | None: ...

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None: ...

    @abstractmethod
    def incr(self, key: str, ttl_seconds: int) -> int:
        """Increment a counter, setting its expiry when the counter is created.

        Returns:
            The post-increment value.
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def delete_if_equals(self, key: str, value: str) -> bool:
        """Delete ``key`` only while it still holds ``value``."""
        ...

    @abstractmethod
    def ping(self) -> bool: ...
