"""NotificationPreference aggregate — which channels a user accepts, and when.

A preference applies to one notification type or to every type ("ALL").
Lookups go type-specific → "ALL" → system default; see
``notifications.preference.resolver``.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from notifications.domain import notifications
from notifications.notification.notification import (
    NotificationChannel,
    NotificationPriority,
)
from notifications.preference.events import (
    PreferenceCreated,
    PreferenceUpdated,
    QuietHoursCleared,
    QuietHoursSet,
)
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, String, Text

ALL_TYPES = "ALL"


class PreferenceFrequency(Enum):
    IMMEDIATE = "IMMEDIATE"
    HOURLY = "HOURLY"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    NEVER = "NEVER"


def parse_hhmm(value, label="time"):
    """Minutes since midnight for an "HH:MM" string."""
    parts = value.split(":") if isinstance(value, str) else []
    if len(parts) != 2:
        raise ValidationError({f"quiet_hours_{label}": [f"Invalid time format: {value}. Use HH:MM"]})
    try:
        hour, minute = int(parts[0]), int(parts[1])
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError
    except ValueError:
        raise ValidationError({f"quiet_hours_{label}": [f"Invalid time format: {value}. Use HH:MM"]}) from None
    return hour * 60 + minute


def _validate_channels(channels):
    valid = {c.value for c in NotificationChannel}
    unknown = [c for c in channels if c not in valid]
    if unknown:
        raise ValidationError({"channels": [f"Unknown channel(s): {', '.join(unknown)}"]})


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@notifications.aggregate
class NotificationPreference:
    """A user's channel preferences for one notification type (or all of them)."""

    user_id: String(required=True, max_length=100)
    notification_type: String(max_length=100, default=ALL_TYPES)

    channels: Text(required=True)  # JSON list of NotificationChannel values
    is_enabled: Boolean(default=True)
    frequency: String(choices=PreferenceFrequency, default=PreferenceFrequency.IMMEDIATE.value)
    min_priority: String(choices=NotificationPriority)
    locale: String(max_length=10, default="en")

    # Quiet hours (DND), local to ``timezone``
    quiet_hours_start: String(max_length=5)  # "22:00" format
    quiet_hours_end: String(max_length=5)  # "08:00" format
    timezone: String(max_length=64, default="UTC")

    created_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        user_id,
        channels,
        notification_type=ALL_TYPES,
        is_enabled=True,
        frequency=PreferenceFrequency.IMMEDIATE.value,
        min_priority=None,
        locale="en",
    ):
        _validate_channels(channels)
        now = datetime.now(UTC)

        preference = cls(
            user_id=user_id,
            notification_type=notification_type,
            channels=json.dumps(list(channels)),
            is_enabled=is_enabled,
            frequency=frequency,
            min_priority=min_priority,
            locale=locale,
            created_at=now,
            updated_at=now,
        )

        preference.raise_(
            PreferenceCreated(
                preference_id=str(preference.id),
                user_id=user_id,
                notification_type=notification_type,
                channels=preference.channels,
                is_enabled=is_enabled,
                created_at=now,
            )
        )

        return preference

    # -------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------
    def update(self, channels=None, is_enabled=None, frequency=None, min_priority=None, locale=None):
        """Update any subset of the preference. Pass None to keep unchanged."""
        if all(v is None for v in (channels, is_enabled, frequency, min_priority, locale)):
            raise ValidationError({"preference": ["At least one field must be provided"]})

        if channels is not None:
            _validate_channels(channels)
            self.channels = json.dumps(list(channels))
        if is_enabled is not None:
            self.is_enabled = is_enabled
        if frequency is not None:
            self.frequency = frequency
        if min_priority is not None:
            self.min_priority = min_priority
        if locale is not None:
            self.locale = locale

        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            PreferenceUpdated(
                preference_id=str(self.id),
                user_id=self.user_id,
                notification_type=self.notification_type,
                channels=self.channels,
                is_enabled=self.is_enabled,
                frequency=self.frequency,
                min_priority=self.min_priority,
                updated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Quiet hours
    # -------------------------------------------------------------------
    def set_quiet_hours(self, start, end, timezone="UTC"):
        """Set do-not-disturb window. Both start and end required."""
        if not start or not end:
            raise ValidationError({"quiet_hours": ["Both start and end times are required"]})

        parse_hhmm(start, "start")
        parse_hhmm(end, "end")
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationError({"timezone": [f"Unknown timezone: {timezone}"]}) from None

        now = datetime.now(UTC)
        self.quiet_hours_start = start
        self.quiet_hours_end = end
        self.timezone = timezone
        self.updated_at = now

        self.raise_(
            QuietHoursSet(
                preference_id=str(self.id),
                user_id=self.user_id,
                start=start,
                end=end,
                timezone=timezone,
                updated_at=now,
            )
        )

    def clear_quiet_hours(self):
        """Remove the quiet hours window."""
        now = datetime.now(UTC)
        self.quiet_hours_start = None
        self.quiet_hours_end = None
        self.updated_at = now

        self.raise_(
            QuietHoursCleared(
                preference_id=str(self.id),
                user_id=self.user_id,
                cleared_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Query helpers
    # -------------------------------------------------------------------
    def channel_list(self) -> list[str]:
        return json.loads(self.channels) if self.channels else []

    @property
    def has_quiet_hours(self) -> bool:
        return bool(self.quiet_hours_start and self.quiet_hours_end)
