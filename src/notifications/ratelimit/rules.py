"""Rate-limit rules and the RuleStore that owns them.

A rule caps one channel at one scope. Lookup falls back from the requested
scope to GLOBAL; a channel with neither is unrestricted.
"""

import threading
from dataclasses import dataclass
from enum import Enum

from notifications.notification.notification import NotificationChannel


class Scope(Enum):
    GLOBAL = "GLOBAL"
    TENANT = "TENANT"
    USER = "USER"


@dataclass(frozen=True)
class RateLimitRule:
    channel: str
    scope: str
    max_per_minute: int | None = None
    max_per_hour: int | None = None
    max_per_day: int | None = None
    burst_limit: int | None = None


DEFAULT_RULES = (
    RateLimitRule(NotificationChannel.EMAIL.value, Scope.USER.value, 5, 50, 200, 10),
    RateLimitRule(NotificationChannel.SMS.value, Scope.USER.value, 2, 10, 50, 3),
    RateLimitRule(NotificationChannel.PUSH.value, Scope.USER.value, 10, 100, 500, 20),
    RateLimitRule(NotificationChannel.IN_APP.value, Scope.USER.value, 20, 200, 1000, 50),
    RateLimitRule(NotificationChannel.WEBHOOK.value, Scope.USER.value, 30, 300, 2000, 60),
)


class RuleStore:
    """Explicitly owned rule table, handed to the limiter at construction.

    Changes go through ``set_rule``/``remove_rule``/``reload``; there is no
    module-level rule cache.
    """

    def __init__(self, rules=DEFAULT_RULES):
        self._lock = threading.Lock()
        self._rules: dict[tuple[str, str], RateLimitRule] = {}
        self.reload(rules)

    def get_rule(self, channel: str, scope: str) -> RateLimitRule | None:
        with self._lock:
            return self._rules.get((channel, scope)) or self._rules.get((channel, Scope.GLOBAL.value))

    def set_rule(self, rule: RateLimitRule) -> None:
        with self._lock:
            self._rules[(rule.channel, rule.scope)] = rule

    def remove_rule(self, channel: str, scope: str) -> None:
        with self._lock:
            self._rules.pop((channel, scope), None)

    def reload(self, rules) -> None:
        """Replace every rule at once."""
        with self._lock:
            self._rules = {(r.channel, r.scope): r for r in rules}

    def all_rules(self) -> list[RateLimitRule]:
        with self._lock:
            return list(self._rules.values())
