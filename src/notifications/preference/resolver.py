"""Preference resolver: which channels a user accepts for a notification.

Lookup order: type-specific preference → the user's "ALL" preference →
system default (the type's recommended channels, else IN_APP + EMAIL).
Quiet hours suppress everything except URGENT notifications.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from notifications.notification.notification import (
    PRIORITY_RANK,
    NotificationChannel,
    NotificationPriority,
)
from notifications.preference.preference import (
    ALL_TYPES,
    NotificationPreference,
    PreferenceFrequency,
    parse_hhmm,
)
from notifications.templates import get_default_template
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)

SYSTEM_DEFAULT_CHANNELS = (NotificationChannel.IN_APP.value, NotificationChannel.EMAIL.value)


@dataclass(frozen=True)
class QuietHours:
    start: str
    end: str
    timezone: str = "UTC"


@dataclass(frozen=True)
class ResolvedPreference:
    channels: tuple[str, ...]
    is_enabled: bool = True
    quiet_hours: QuietHours | None = None
    frequency: str = PreferenceFrequency.IMMEDIATE.value
    min_priority: str | None = None
    locale: str = "en"
    source: str = "default"  # "type" | "all" | "default"


@dataclass(frozen=True)
class ChannelDecision:
    allowed: tuple[str, ...]
    suppressed_reason: str | None = None
    locale: str = "en"


def system_default_channels(notification_type: str) -> list[str]:
    template = get_default_template(notification_type)
    if template is not None:
        return list(template.default_channels)
    return list(SYSTEM_DEFAULT_CHANNELS)


def filter_channels(requested, resolved: ResolvedPreference) -> list[str]:
    """Requested channels the preference allows, in request order."""
    if not resolved.is_enabled:
        return []
    allowed = set(resolved.channels)
    return [c for c in requested if c in allowed]


def _zone(name):
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone on preference, using UTC", timezone=name)
        return UTC


def is_in_quiet_hours(now: datetime, start: str, end: str, tz: str = "UTC") -> bool:
    """True when ``now`` (in the user's timezone) falls in ``[start, end]``.

    Both bounds are inclusive at minute precision. Overnight windows
    (start > end) wrap around midnight.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    local = now.astimezone(_zone(tz))
    minutes = local.hour * 60 + local.minute
    start_minutes = parse_hhmm(start, "start")
    end_minutes = parse_hhmm(end, "end")

    if start_minutes <= end_minutes:
        return start_minutes <= minutes <= end_minutes
    return minutes >= start_minutes or minutes <= end_minutes


class PreferenceResolver:
    def resolve(self, user_id: str, notification_type: str) -> ResolvedPreference:
        repo = current_domain.repository_for(NotificationPreference)
        prefs = {p.notification_type: p for p in repo._dao.query.filter(user_id=user_id).all().items}

        for key, source in ((notification_type, "type"), (ALL_TYPES, "all")):
            pref = prefs.get(key)
            if pref is None:
                continue
            quiet = QuietHours(pref.quiet_hours_start, pref.quiet_hours_end, pref.timezone or "UTC") if pref.has_quiet_hours else None
            # Quiet hours and locale set on "ALL" apply to type-specific preferences too
            if quiet is None and source == "type" and ALL_TYPES in prefs and prefs[ALL_TYPES].has_quiet_hours:
                base = prefs[ALL_TYPES]
                quiet = QuietHours(base.quiet_hours_start, base.quiet_hours_end, base.timezone or "UTC")
            return ResolvedPreference(
                channels=tuple(pref.channel_list()),
                is_enabled=pref.is_enabled,
                quiet_hours=quiet,
                frequency=pref.frequency,
                min_priority=pref.min_priority,
                locale=pref.locale or "en",
                source=source,
            )

        return ResolvedPreference(channels=tuple(system_default_channels(notification_type)))

    def filter(self, requested, resolved: ResolvedPreference) -> list[str]:
        return filter_channels(requested, resolved)

    def allowed_channels(self, user_id, notification_type, requested, priority, now=None) -> ChannelDecision:
        """Apply enablement, channel filter, min-priority and quiet hours for one user."""
        resolved = self.resolve(user_id, notification_type)
        urgent = priority == NotificationPriority.URGENT.value

        allowed = filter_channels(requested, resolved)
        if not allowed:
            reason = "disabled" if not resolved.is_enabled else "channels_not_allowed"
            return ChannelDecision((), reason, resolved.locale)

        if (
            not urgent
            and resolved.min_priority
            and PRIORITY_RANK.get(priority, 0) < PRIORITY_RANK.get(resolved.min_priority, 0)
        ):
            return ChannelDecision((), "below_min_priority", resolved.locale)

        if not urgent and resolved.quiet_hours is not None:
            quiet = resolved.quiet_hours
            if is_in_quiet_hours(now or datetime.now(UTC), quiet.start, quiet.end, quiet.timezone):
                return ChannelDecision((), "quiet_hours", resolved.locale)

        return ChannelDecision(tuple(allowed), None, resolved.locale)
