"""Shared BDD fixtures and step definitions for the Notifications domain."""

import pytest
from notifications.channel.port import DeliveryResult
from notifications.notification.events import (
    NotificationCancelled,
    NotificationFailed,
    NotificationProcessingStarted,
    NotificationQueued,
    NotificationRetried,
    NotificationSent,
)
from notifications.notification.notification import NotificationRecord
from notifications.preference.subscription import ChannelSubscription
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

_NOTIFICATION_EVENT_CLASSES = {
    "NotificationQueued": NotificationQueued,
    "NotificationProcessingStarted": NotificationProcessingStarted,
    "NotificationSent": NotificationSent,
    "NotificationFailed": NotificationFailed,
    "NotificationCancelled": NotificationCancelled,
    "NotificationRetried": NotificationRetried,
}


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


def _record(channels=("EMAIL",)):
    record = NotificationRecord.create(
        notification_type="ORDER_CONFIRMATION",
        recipients=[{"email": "buyer@example.com", "phone": "+15550001"}],
        channels=list(channels),
        template_variables={"orderNumber": "ORD-BDD"},
    )
    record.enqueue()
    record._events.clear()
    return record


# ---------------------------------------------------------------------------
# Given steps — notification records
# ---------------------------------------------------------------------------
@given("a queued notification", target_fixture="notification")
def queued_notification():
    return _record()


@given(
    parsers.cfparse('a queued notification for channels "{channels}"'),
    target_fixture="notification",
)
def queued_notification_for(channels):
    return _record([c.strip() for c in channels.split(",")])


@given("a processing notification", target_fixture="notification")
def processing_notification():
    record = _record()
    record.start_processing()
    record._events.clear()
    return record


@given("a failed notification", target_fixture="notification")
def failed_notification():
    record = _record()
    record.start_processing()
    record.complete([DeliveryResult.failed("EMAIL", "Email delivery failed", retryable=True)])
    record._events.clear()
    return record


# ---------------------------------------------------------------------------
# Given steps — recipients
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a buyer "{user_id}" reachable by email at "{address}"'),
    target_fixture="user_id",
)
def buyer_with_email(user_id, address):
    current_domain.repository_for(ChannelSubscription).add(ChannelSubscription.create(user_id, "EMAIL", address))
    return user_id


# ---------------------------------------------------------------------------
# Then steps — notification status & events
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the notification status is "{status}"'))
def notification_status_is(notification, status):
    assert notification.status == status


@then(parsers.cfparse("a {event_type} event is raised"))
def notification_event_raised(notification, event_type):
    event_cls = _NOTIFICATION_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in notification._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in notification._events]}"


@then("the action fails with a validation error")
def action_fails(error):
    assert isinstance(error["exc"], ValidationError)
