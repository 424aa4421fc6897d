"""Webhook delivery engine: signed fan-out of marketplace events.

``deliver`` writes one WebhookDeliveryAttempt per matching subscription and
runs each on the dispatch scheduler. A failed try either schedules the
next one (``next_retry_at``) or dead-letters the attempt; ``retry_due`` picks
up attempts whose retry time has come. A per-attempt lease keeps retries of
the same attempt strictly sequential.
"""

import time
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import structlog
from notifications.errors import StoreUnavailable
from notifications.notification.notification import as_utc
from notifications.scheduler import SchedulerClosed
from notifications.webhook.attempt import WebhookAttemptStatus, WebhookDeliveryAttempt
from notifications.webhook.signing import build_headers, serialize
from notifications.webhook.subscription import WebhookSubscription
from notifications.webhook.transport import get_transport
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)

TEST_EVENT_TYPE = "webhook.test"
LEASE_SECONDS = 120
HEALTH_LEASE_SECONDS = 10
HEALTH_WRITE_ATTEMPTS = 20


def _save(aggregate):
    with UnitOfWork():
        current_domain.repository_for(type(aggregate)).add(aggregate)


def build_payload(event_type, data, event_id=None, timestamp=None) -> dict:
    return {
        "id": event_id or str(uuid4()),
        "type": event_type,
        "timestamp": (timestamp or datetime.now(UTC)).isoformat(),
        "data": data,
    }


class WebhookEngine:
    def __init__(self, scheduler, store, settings, transport=None):
        self.scheduler = scheduler
        self.store = store
        self.settings = settings
        self._transport = transport

    @property
    def transport(self):
        return self._transport or get_transport()

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------
    def subscriptions_for(self, event_type, tenant_id=None) -> list:
        repo = current_domain.repository_for(WebhookSubscription)
        active = repo._dao.query.filter(is_active=True).all().items
        return [
            s
            for s in active
            if s.listens_to(event_type) and (tenant_id is None or s.tenant_id in (None, tenant_id))
        ]

    def deliver(self, event_type, event_data, tenant_id=None, event_id=None) -> list:
        """Create one attempt per matching subscription; return their futures."""
        subscriptions = self.subscriptions_for(event_type, tenant_id)
        if not subscriptions:
            return []

        payload = build_payload(event_type, event_data, event_id)
        already_sent = self._subscriptions_with_attempt(payload["id"]) if event_id else set()
        futures = []
        for subscription in subscriptions:
            if str(subscription.id) in already_sent:
                continue
            attempt = WebhookDeliveryAttempt.create(subscription.id, payload["id"], event_type, payload)
            _save(attempt)
            future = self._submit(attempt.id)
            if future is not None:
                futures.append(future)

        logger.info(
            "Webhook event fanned out",
            event_type=event_type,
            event_id=payload["id"],
            subscriptions=len(subscriptions),
        )
        return futures

    def _subscriptions_with_attempt(self, event_id) -> set:
        """Subscriptions that already hold an attempt for a redelivered event."""
        repo = current_domain.repository_for(WebhookDeliveryAttempt)
        return {str(a.subscription_id) for a in repo._dao.query.filter(event_id=str(event_id)).all().items}

    def _submit(self, attempt_id, now=None):
        try:
            return self.scheduler.submit(self.execute, str(attempt_id), now=now)
        except SchedulerClosed:
            logger.warning("Scheduler closed; webhook attempt left for retry scan", attempt_id=str(attempt_id))
            return None

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def _lease(self, attempt_id) -> bool:
        try:
            return self.store.set_if_absent(f"webhook:lock:{attempt_id}", "1", LEASE_SECONDS)
        except StoreUnavailable:
            logger.warning("Lease store unavailable, executing without lease", attempt_id=attempt_id)
            return True

    def _unlease(self, attempt_id):
        try:
            self.store.delete(f"webhook:lock:{attempt_id}")
        except StoreUnavailable:
            logger.warning("Lease store unavailable, lease left to expire", attempt_id=attempt_id)

    def execute(self, attempt_id, now=None) -> str | None:
        """Make one HTTP try for an attempt; return its resulting status."""
        if not self._lease(attempt_id):
            logger.info("Webhook attempt already in flight", attempt_id=attempt_id)
            return None

        try:
            attempt = current_domain.repository_for(WebhookDeliveryAttempt).get(attempt_id)
            if attempt.is_terminal:
                return attempt.status

            now = now or datetime.now(UTC)
            if attempt.next_retry_at is not None and as_utc(attempt.next_retry_at) > now:
                logger.info(
                    "Webhook attempt not due yet", attempt_id=attempt_id, next_retry_at=str(attempt.next_retry_at)
                )
                return attempt.status

            try:
                subscription = current_domain.repository_for(WebhookSubscription).get(attempt.subscription_id)
            except ObjectNotFoundError:
                attempt.abandon("Subscription no longer exists", now)
                _save(attempt)
                return attempt.status

            if not subscription.is_active:
                attempt.abandon("Subscription is inactive", now)
                _save(attempt)
                return attempt.status

            payload = attempt.payload_dict()
            body = serialize(payload)
            headers = build_headers(body, subscription.secret, payload["timestamp"], attempt.event_type)
            response = self.transport.post(subscription.url, body, headers, subscription.timeout_seconds)

            if response.ok:
                attempt.succeed(response.status_code, response.body, now)
            else:
                attempt.fail(
                    subscription,
                    response.status_code,
                    response.body,
                    response.error,
                    now,
                    self.settings.webhook_base_delay_seconds,
                )
                logger.warning(
                    "Webhook delivery failed",
                    attempt_id=attempt_id,
                    url=subscription.url,
                    status_code=response.status_code,
                    attempts=attempt.attempts,
                    next_retry_at=str(attempt.next_retry_at) if attempt.next_retry_at else None,
                )

            _save(attempt)
            self._record_health(subscription.id, response.ok, now)
            return attempt.status
        finally:
            self._unlease(attempt_id)

    def _record_health(self, subscription_id, ok, at):
        """Update subscription health after a try.

        Concurrent attempts for one subscription contend on the same row, so
        the update runs under a short per-subscription lease and reloads on a
        version conflict. A health write that cannot land is logged; it never
        fails the delivery.
        """
        lease_key = f"webhook:health:{subscription_id}"
        token = str(uuid4())
        leased = self._wait_for_lease(lease_key, token)
        try:
            repo = current_domain.repository_for(WebhookSubscription)
            for _ in range(HEALTH_WRITE_ATTEMPTS):
                try:
                    subscription = repo.get(subscription_id)
                except ObjectNotFoundError:
                    return
                if ok:
                    subscription.record_success(at)
                else:
                    subscription.record_failure(at)
                try:
                    _save(subscription)
                    return
                except ExpectedVersionError:
                    continue
            logger.warning("Subscription health not recorded", subscription_id=str(subscription_id), success=ok)
        finally:
            if leased:
                self._release_lease(lease_key, token)

    def _wait_for_lease(self, key, token) -> bool:
        deadline = time.monotonic() + HEALTH_LEASE_SECONDS
        while time.monotonic() < deadline:
            try:
                if self.store.set_if_absent(key, token, HEALTH_LEASE_SECONDS):
                    return True
            except StoreUnavailable:
                return False
            time.sleep(0.005)
        return False

    def _release_lease(self, key, token):
        try:
            self.store.delete_if_equals(key, token)
        except StoreUnavailable:
            logger.warning("Lease store unavailable, lease left to expire", key=key)

    def retry_due(self, now=None) -> int:
        """Dispatch attempts whose retry time has passed; return how many."""
        now = now or datetime.now(UTC)
        stale_before = now - timedelta(seconds=self.settings.stale_queued_seconds)
        repo = current_domain.repository_for(WebhookDeliveryAttempt)
        pending = repo._dao.query.filter(status=WebhookAttemptStatus.PENDING.value).order_by("created_at").all().items

        due = []
        for attempt in pending:
            if attempt.next_retry_at is not None:
                ready = as_utc(attempt.next_retry_at) <= now
            else:
                # Never tried and older than the stale threshold: lost on a restart
                ready = attempt.attempts == 0 and attempt.created_at and as_utc(attempt.created_at) < stale_before
            if ready:
                due.append(attempt)
            if len(due) >= self.settings.webhook_retry_batch_size:
                break

        for attempt in due:
            self._submit(attempt.id, now)

        if due:
            logger.info("Webhook retries dispatched", count=len(due))
        return len(due)

    def test_webhook(self, subscription_id) -> dict:
        """Send a signed ``webhook.test`` event without recording an attempt."""
        subscription = current_domain.repository_for(WebhookSubscription).get(subscription_id)
        payload = build_payload(
            TEST_EVENT_TYPE,
            {"subscription_id": str(subscription.id), "message": "This is a test webhook"},
        )
        body = serialize(payload)
        headers = build_headers(body, subscription.secret, payload["timestamp"], TEST_EVENT_TYPE)
        response = self.transport.post(subscription.url, body, headers, subscription.timeout_seconds)
        return {
            "success": response.ok,
            "status_code": response.status_code,
            "response_time_ms": response.elapsed_ms,
            "error": None if response.ok else (response.error or f"HTTP {response.status_code}"),
        }

