"""Notification orchestrator: owns the NotificationRecord lifecycle.

``send_notification`` claims the idempotency key, persists the record and
hands it to the dispatch scheduler. ``process`` runs on a worker: it fans
the record out over recipients × allowed channels, records one
DeliveryAttempt per real send and folds the results into the record's
final status. The scanners (``process_scheduled``, ``retry_failed``,
``cleanup``) are driven periodically by the server.

Only this module changes a NotificationRecord's status.
"""

import threading
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import structlog
from notifications.channel.port import DeliveryResult
from notifications.errors import RateLimitExceeded, StoreUnavailable
from notifications.notification.batch import NotificationBatch
from notifications.notification.delivery import DeliveryAttempt
from notifications.notification.notification import (
    DispatchLane,
    NotificationRecord,
    NotificationStatus,
    as_utc,
)
from notifications.notification.request import NotificationRequest, Recipient, RequestContext
from notifications.preference.subscription import contact_addresses
from notifications.ratelimit.rules import Scope
from notifications.scheduler import SchedulerClosed
from notifications.templates.renderer import render
from notifications.templates.resolver import get_template
from protean.core.unit_of_work import UnitOfWork
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)

LEASE_SECONDS = 900


def lease_key(notification_id) -> str:
    return f"notification:lock:{notification_id}"


def _save(aggregate):
    with UnitOfWork():
        current_domain.repository_for(type(aggregate)).add(aggregate)


def _chunks(items, size):
    for start in range(0, len(items), size):
        yield items[start : start + size]


class NotificationOrchestrator:
    def __init__(self, guard, limiter, preferences, router, scheduler, store, settings):
        self.guard = guard
        self.limiter = limiter
        self.preferences = preferences
        self.router = router
        self.scheduler = scheduler
        self.store = store
        self.settings = settings
        self._batch_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------
    def send_notification(self, request: NotificationRequest) -> str:
        """Accept a request and return its notification id.

        A replayed idempotency key returns the id of the original record
        without creating a new one.
        """
        notification_id = str(uuid4())
        key = request.idempotency_key

        if key:
            claim = self.guard.claim(
                key,
                notification_id,
                self.settings.idempotency_ttl_seconds,
                strict=request.strict_idempotency,
            )
            if claim.already_exists:
                return claim.existing_notification_id

        try:
            record = self._persist(request, notification_id)
        except Exception:
            if key:
                self.guard.release(key, notification_id)
            raise

        if record.status == NotificationStatus.QUEUED.value:
            self._submit(record)

        logger.info(
            "Notification accepted",
            notification_id=notification_id,
            notification_type=request.type,
            status=record.status,
            recipients=len(request.recipients),
            channels=list(request.channels),
        )
        return notification_id

    def _persist(self, request, notification_id, lane=DispatchLane.IMMEDIATE.value, batch_id=None, now=None):
        now = now or datetime.now(UTC)
        record = NotificationRecord.create(
            notification_type=request.type,
            recipients=[r.to_dict() for r in request.recipients],
            channels=list(request.channels),
            priority=request.priority,
            category=request.category,
            template_variables=dict(request.template_variables),
            tenant_id=request.context.tenant_id,
            user_id=request.context.user_id,
            correlation_id=request.context.correlation_id,
            source=request.context.source,
            idempotency_key=request.idempotency_key,
            scheduled_at=request.scheduled_at,
            expires_at=request.expires_at,
            lane=lane,
            batch_id=batch_id,
            id=notification_id,
        )
        if request.scheduled_at and as_utc(request.scheduled_at) > now:
            record.schedule()
        else:
            record.enqueue(lane=lane, queued_at=now)
        _save(record)
        return record

    def _submit(self, record, delay=0.0):
        try:
            return self.scheduler.submit(self.process, str(record.id), lane=record.lane, delay=delay)
        except SchedulerClosed:
            logger.warning("Scheduler closed; record left queued for recovery", notification_id=str(record.id))
            return None

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------
    def send_bulk_notifications(
        self,
        notification_type,
        recipients,
        channels,
        template_variables=None,
        priority="MEDIUM",
        category="TRANSACTIONAL",
        context: RequestContext | None = None,
        scheduled_at=None,
        expires_at=None,
    ) -> str:
        """Split ``recipients`` into chunks on the bulk lane; return the batch id.

        Chunk *i* is released ``i × bulk_stagger_seconds`` after the first.
        """
        context = context or RequestContext()
        recipients = [r if isinstance(r, Recipient) else Recipient.from_dict(r) for r in recipients]
        chunks = list(_chunks(recipients, self.settings.bulk_batch_size))

        # Validate once up front so a bad request never leaves a half-created batch
        NotificationRequest(
            type=notification_type,
            recipients=chunks[0] if chunks else (),
            channels=channels,
            priority=priority,
            category=category,
            template_variables=template_variables or {},
            context=context,
            scheduled_at=scheduled_at,
            expires_at=expires_at,
        )

        batch = NotificationBatch.create(
            notification_type=notification_type,
            total_count=len(recipients),
            chunk_count=len(chunks),
            tenant_id=context.tenant_id,
        )
        _save(batch)

        for index, chunk in enumerate(chunks):
            request = NotificationRequest(
                type=notification_type,
                recipients=chunk,
                channels=channels,
                priority=priority,
                category=category,
                template_variables=template_variables or {},
                context=context,
                scheduled_at=scheduled_at,
                expires_at=expires_at,
            )
            record = self._persist(request, str(uuid4()), lane=DispatchLane.BULK.value, batch_id=str(batch.id))
            if record.status == NotificationStatus.QUEUED.value:
                self._submit(record, delay=index * self.settings.bulk_stagger_seconds)

        logger.info(
            "Bulk notification accepted",
            batch_id=str(batch.id),
            notification_type=notification_type,
            recipients=len(recipients),
            chunks=len(chunks),
        )
        return str(batch.id)

    def _record_batch_progress(self, record):
        """Report the chunk's outcome across all cycles, so a retried chunk replaces its earlier result."""
        if not record.batch_id:
            return
        latest = list(self._latest_attempts(record.id).values())
        succeeded = sum(1 for a in latest if a.success)
        with self._batch_lock:
            batch = current_domain.repository_for(NotificationBatch).get(record.batch_id)
            batch.record_chunk(record.id, succeeded, len(latest) - succeeded)
            _save(batch)

    def cancel_batch(self, batch_id, reason="Batch cancelled") -> int:
        """Cancel a batch and every chunk that has not started; return the count cancelled."""
        batch = current_domain.repository_for(NotificationBatch).get(batch_id)
        batch.cancel()
        _save(batch)

        cancelled = 0
        repo = current_domain.repository_for(NotificationRecord)
        for record in repo._dao.query.filter(batch_id=str(batch_id)).all().items:
            if record.status in (NotificationStatus.QUEUED.value, NotificationStatus.SCHEDULED.value):
                record.cancel(reason)
                _save(record)
                cancelled += 1
        return cancelled

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------
    def _acquire_lease(self, notification_id) -> bool:
        try:
            return self.store.set_if_absent(lease_key(notification_id), "1", LEASE_SECONDS)
        except StoreUnavailable:
            logger.warning("Lease store unavailable, processing without lease", notification_id=notification_id)
            return True

    def _release_lease(self, notification_id):
        try:
            self.store.delete(lease_key(notification_id))
        except StoreUnavailable:
            logger.warning("Lease store unavailable, lease left to expire", notification_id=notification_id)

    def process(self, notification_id, now=None) -> list[DeliveryResult]:
        """Deliver a QUEUED record and return the per-pair results."""
        if not self._acquire_lease(notification_id):
            logger.info("Notification already being processed", notification_id=notification_id)
            return []

        try:
            repo = current_domain.repository_for(NotificationRecord)
            record = repo.get(notification_id)

            if record.status != NotificationStatus.QUEUED.value:
                logger.info("Skipping notification not in QUEUED state", notification_id=notification_id, status=record.status)
                return []

            now = now or datetime.now(UTC)
            if record.is_expired(now):
                record.cancel("Notification expired before processing")
                _save(record)
                return []

            record.start_processing(now)
            _save(record)

            try:
                results, skipped = self._fan_out(record, now)
            except Exception as exc:
                logger.error("Fan-out aborted", notification_id=notification_id, error=str(exc))
                record.complete([], 0, error=f"Processing error: {exc}")
                _save(record)
                raise

            record.complete(results, skipped)
            _save(record)
            self._record_batch_progress(record)

            logger.info(
                "Notification processed",
                notification_id=notification_id,
                status=record.status,
                succeeded=record.succeeded_count,
                failed=record.failed_count,
                skipped=skipped,
            )
            return results
        finally:
            self._release_lease(notification_id)

    def _complete_recipient(self, recipient: Recipient) -> Recipient:
        if not recipient.user_id:
            return recipient
        return recipient.with_contacts(**contact_addresses(recipient.user_id))

    def _latest_attempts(self, notification_id) -> dict:
        """Most recent attempt per (recipient_key, channel) pair."""
        latest = {}
        for attempt in self._attempts_for(notification_id):
            pair = (attempt.recipient_key, attempt.channel)
            if pair not in latest or attempt.attempts > latest[pair].attempts:
                latest[pair] = attempt
        return latest

    def _settled_pairs(self, record) -> set:
        """(recipient_key, channel) pairs that a retry cycle must not send again."""
        return {
            pair
            for pair, attempt in self._latest_attempts(record.id).items()
            if attempt.success or not attempt.retryable or attempt.attempts >= self.settings.max_channel_attempts
        }

    def _fan_out(self, record, now):
        results = []
        skipped = 0
        channels = record.channels_to_attempt()
        settled = self._settled_pairs(record) if record.retry_count else set()

        for data in record.recipient_dicts():
            recipient = self._complete_recipient(Recipient.from_dict(data))
            locale = self.settings.default_locale

            if recipient.user_id:
                decision = self.preferences.allowed_channels(
                    recipient.user_id, record.notification_type, channels, record.priority, now
                )
                allowed = list(decision.allowed)
                locale = decision.locale or locale
                if decision.suppressed_reason:
                    logger.info(
                        "Channels suppressed by preference",
                        notification_id=str(record.id),
                        user_id=recipient.user_id,
                        reason=decision.suppressed_reason,
                    )
            else:
                allowed = list(channels)

            skipped += len(channels) - len(allowed)

            for channel in allowed:
                if (recipient.key, channel) in settled:
                    skipped += 1
                    continue
                result = self._deliver_one(record, recipient, channel, locale)
                if result is None:
                    skipped += 1
                else:
                    results.append(result)

        return results, skipped

    def _deliver_one(self, record, recipient, channel, locale):
        """Send one recipient/channel pair; None when the pair is skipped."""
        template = get_template(record.notification_type, channel, locale, record.tenant_id)
        if template is None:
            result = DeliveryResult.failed(
                channel, f"No template for {record.notification_type} on {channel}", recipient_key=recipient.key
            )
            self._record_attempt(record, recipient, result)
            return result

        content = render(template, record.variables())

        dedup_slot = None
        if not record.idempotency_key:
            dedup_slot = f"{recipient.key}:{channel}"
            if self.guard.is_duplicate_content(dedup_slot, content.content, self.settings.content_dedup_window_seconds):
                logger.info("Duplicate content suppressed", notification_id=str(record.id), channel=channel)
                return None

        try:
            self.limiter.acquire(recipient.key, channel, Scope.USER.value)
        except RateLimitExceeded as exc:
            logger.info("Rate limited", notification_id=str(record.id), channel=channel, window=exc.window)
            if dedup_slot:
                self.guard.release_content(dedup_slot, content.content)
            return None

        result = self.router.deliver(channel, recipient, content, record)
        if not result.success and dedup_slot:
            self.guard.release_content(dedup_slot, content.content)

        self._record_attempt(record, recipient, result)
        return result

    def _attempts_for(self, notification_id):
        repo = current_domain.repository_for(DeliveryAttempt)
        return repo._dao.query.filter(notification_id=str(notification_id)).all().items

    def _record_attempt(self, record, recipient, result):
        previous = [
            a.attempts
            for a in self._attempts_for(record.id)
            if a.channel == result.channel and a.recipient_key == recipient.key
        ]
        attempt = DeliveryAttempt.record(record, recipient, result, attempts=max(previous, default=0) + 1)
        _save(attempt)

    # ------------------------------------------------------------------
    # Scanners
    # ------------------------------------------------------------------
    def retry_failed(self, now=None) -> int:
        """Re-queue FAILED records that still have retryable channels; return how many."""
        now = now or datetime.now(UTC)
        cutoff = now - timedelta(hours=self.settings.retry_window_hours)
        repo = current_domain.repository_for(NotificationRecord)
        failed = repo._dao.query.filter(status=NotificationStatus.FAILED.value).all().items

        retried = 0
        for record in failed:
            if record.created_at and as_utc(record.created_at) < cutoff:
                continue

            retryable = {
                a.channel
                for a in self._latest_attempts(record.id).values()
                if not a.success and a.retryable and a.attempts < self.settings.max_channel_attempts
            }
            if not retryable:
                continue

            channels = [c for c in record.channel_list() if c in retryable]
            record.retry(channels, retried_at=now)
            _save(record)
            self._submit(record)
            retried += 1

        if retried:
            logger.info("Failed notifications re-queued", count=retried)
        return retried

    def process_scheduled(self, now=None) -> dict:
        """Release due SCHEDULED records, expire stale ones and recover stuck QUEUED ones."""
        now = now or datetime.now(UTC)
        repo = current_domain.repository_for(NotificationRecord)
        summary = {"queued": 0, "expired": 0, "recovered": 0}

        for record in repo._dao.query.filter(status=NotificationStatus.SCHEDULED.value).all().items:
            if record.is_expired(now):
                record.expire(now)
                _save(record)
                summary["expired"] += 1
            elif record.is_due(now):
                record.enqueue(queued_at=now)
                _save(record)
                self._submit(record)
                summary["queued"] += 1

        stale_before = now - timedelta(seconds=self.settings.stale_queued_seconds)
        for record in repo._dao.query.filter(status=NotificationStatus.QUEUED.value).all().items:
            if record.queued_at and as_utc(record.queued_at) < stale_before:
                self._submit(record)
                summary["recovered"] += 1

        if any(summary.values()):
            logger.info("Scheduled scan finished", **summary)
        return summary

    def cleanup(self, now=None) -> int:
        """Delete terminal records older than the retention period."""
        now = now or datetime.now(UTC)
        cutoff = now - timedelta(days=self.settings.record_retention_days)
        repo = current_domain.repository_for(NotificationRecord)
        terminal = (
            NotificationStatus.SENT.value,
            NotificationStatus.CANCELLED.value,
            NotificationStatus.EXPIRED.value,
        )

        removed = 0
        for record in repo._dao.query.filter(status__in=terminal).all().items:
            if record.created_at and as_utc(record.created_at) < cutoff:
                repo._dao.delete(record)
                removed += 1

        if removed:
            logger.info("Expired notification records removed", count=removed)
        return removed

    def cancel(self, notification_id, reason="Cancelled by request"):
        record = current_domain.repository_for(NotificationRecord).get(notification_id)
        record.cancel(reason)
        _save(record)
        return record
