"""Rate limiter: four nested fixed windows over atomic counters.

Windows are checked burst → minute → hour → day and the first violation
short-circuits. Every check is one atomic increment whose expiry is set to
the window length when the counter is created.

Keys:
    rate_limit:{window}:{key}:{channel}:{bucket}
    rate_limit:burst:{key}:{channel}          (burst is not bucketed)
"""

import time
from collections.abc import Callable

import structlog
from notifications.errors import RateLimitExceeded, StoreUnavailable
from notifications.ratelimit.rules import RuleStore, Scope
from notifications.store.port import KeyValueStore

logger = structlog.get_logger(__name__)

# (window name, length in seconds, rule attribute)
_WINDOWS = (
    ("burst", 60, "burst_limit"),
    ("minute", 60, "max_per_minute"),
    ("hour", 3600, "max_per_hour"),
    ("day", 86400, "max_per_day"),
)


class RateLimiter:
    def __init__(self, store: KeyValueStore, rules: RuleStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.rules = rules
        self._clock = clock

    def _key(self, window, seconds, key, channel, now):
        if window == "burst":
            return f"rate_limit:burst:{key}:{channel}"
        return f"rate_limit:{window}:{key}:{channel}:{int(now // seconds)}"

    def acquire(self, key: str, channel: str, scope: str = Scope.USER.value) -> None:
        """Consume one unit of budget.

        Raises:
            RateLimitExceeded: when any window is over its ceiling.
        """
        rule = self.rules.get_rule(channel, scope)
        if rule is None:
            return

        now = self._clock()
        try:
            for window, seconds, attr in _WINDOWS:
                limit = getattr(rule, attr)
                if limit is None:
                    continue
                count = self.store.incr(self._key(window, seconds, key, channel, now), seconds)
                if count > limit:
                    logger.info(
                        "Rate limit exceeded",
                        key=key,
                        channel=channel,
                        window=window,
                        count=count,
                        limit=limit,
                    )
                    raise RateLimitExceeded(key, channel, window)
        except StoreUnavailable:
            logger.warning("Rate limit store unavailable, failing open", key=key, channel=channel)

    def allow(self, key: str, channel: str, scope: str = Scope.USER.value) -> bool:
        try:
            self.acquire(key, channel, scope)
        except RateLimitExceeded:
            return False
        return True

    def get_status(self, key: str, channel: str, scope: str = Scope.USER.value) -> dict:
        """Usage per window without consuming budget."""
        rule = self.rules.get_rule(channel, scope)
        now = self._clock()
        status = {}
        for window, seconds, attr in _WINDOWS:
            limit = getattr(rule, attr) if rule else None
            try:
                used = int(self.store.get(self._key(window, seconds, key, channel, now)) or 0)
            except StoreUnavailable:
                used = 0
            status[window] = {
                "limit": limit,
                "used": used,
                "remaining": max(0, limit - used) if limit is not None else None,
            }
        return status

    def reset(self, key: str, channel: str) -> None:
        """Clear the current windows for ``key`` on ``channel``."""
        now = self._clock()
        for window, seconds, _ in _WINDOWS:
            try:
                self.store.delete(self._key(window, seconds, key, channel, now))
            except StoreUnavailable:
                logger.warning("Rate limit store unavailable, reset skipped", key=key, channel=channel)
                return
