"""Idempotency & content dedup guard.

Claims are a single ``set_if_absent`` against the shared store, so two
concurrent requests carrying the same key can never both observe "not
present". Store failures fail open unless the caller asks for strict
idempotency.
"""

import hashlib
from dataclasses import dataclass

import structlog
from notifications.errors import StoreUnavailable
from notifications.store.port import KeyValueStore

logger = structlog.get_logger(__name__)

IDEMPOTENCY_PREFIX = "notification:idempotency:"
CONTENT_PREFIX = "notification:content:"

DEFAULT_IDEMPOTENCY_TTL = 3600
DEFAULT_CONTENT_WINDOW = 300


@dataclass(frozen=True)
class ClaimResult:
    already_exists: bool
    existing_notification_id: str | None = None


def idempotency_key(key: str) -> str:
    return f"{IDEMPOTENCY_PREFIX}{key}"


def content_key(user_id: str, content: str) -> str:
    """Store key for normalized (trimmed, lower-cased) content sent to a user."""
    digest = hashlib.sha256(content.strip().lower().encode("utf-8")).hexdigest()[:16]
    return f"{CONTENT_PREFIX}{user_id}:{digest}"


class IdempotencyGuard:
    def __init__(self, store: KeyValueStore, ttl_seconds: int = DEFAULT_IDEMPOTENCY_TTL):
        self.store = store
        self.ttl_seconds = ttl_seconds

    def claim(self, key: str, notification_id: str, ttl_seconds: int | None = None, strict: bool = False) -> ClaimResult:
        """Atomically bind ``key`` to ``notification_id`` unless another id owns it.

        Raises:
            StoreUnavailable: only when ``strict`` is set and the store is down.
        """
        ttl = ttl_seconds or self.ttl_seconds
        try:
            if self.store.set_if_absent(idempotency_key(key), notification_id, ttl):
                return ClaimResult(already_exists=False)
            existing = self.store.get(idempotency_key(key))
        except StoreUnavailable:
            if strict:
                raise
            logger.warning("Idempotency store unavailable, failing open", idempotency_key=key)
            return ClaimResult(already_exists=False)

        if existing is None:
            # Owner expired between the two calls; retry the claim once.
            return self.claim(key, notification_id, ttl, strict)

        logger.info("Idempotency key replayed", idempotency_key=key, notification_id=existing)
        return ClaimResult(already_exists=True, existing_notification_id=existing)

    def store_key(self, key: str, notification_id: str, ttl_seconds: int | None = None) -> None:
        """Overwrite the mapping for ``key`` (refreshes the TTL)."""
        try:
            self.store.set(idempotency_key(key), notification_id, ttl_seconds or self.ttl_seconds)
        except StoreUnavailable:
            logger.warning("Idempotency store unavailable, key not stored", idempotency_key=key)

    def release(self, key: str, notification_id: str) -> None:
        """Give up a claim, but only while ``notification_id`` still owns it."""
        try:
            self.store.delete_if_equals(idempotency_key(key), notification_id)
        except StoreUnavailable:
            logger.warning("Idempotency store unavailable, claim not released", idempotency_key=key)

    def is_duplicate_content(self, user_id: str, content: str, window_seconds: int = DEFAULT_CONTENT_WINDOW) -> bool:
        """Claim the content slot for ``user_id``; True if it was already claimed in the window."""
        try:
            claimed = self.store.set_if_absent(content_key(user_id, content), "1", window_seconds)
        except StoreUnavailable:
            logger.warning("Dedup store unavailable, failing open", user_id=user_id)
            return False
        return not claimed

    def release_content(self, user_id: str, content: str) -> None:
        try:
            self.store.delete(content_key(user_id, content))
        except StoreUnavailable:
            logger.warning("Dedup store unavailable, content slot not released", user_id=user_id)
