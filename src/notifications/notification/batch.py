"""NotificationBatch aggregate: progress of a bulk send split into chunks."""

import json
from datetime import UTC, datetime
from enum import Enum

from notifications.domain import notifications
from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String, Text


class BatchStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


@notifications.event(part_of="NotificationBatch")
class BatchCreated:
    __version__ = "v1"

    batch_id: String(required=True)
    notification_type: String(required=True)
    total_count: Integer(required=True)
    chunk_count: Integer(required=True)
    created_at: DateTime(required=True)


@notifications.event(part_of="NotificationBatch")
class BatchCompleted:
    __version__ = "v1"

    batch_id: String(required=True)
    status: String(required=True)
    succeeded_count: Integer(required=True)
    failed_count: Integer(required=True)
    completed_at: DateTime(required=True)


@notifications.aggregate
class NotificationBatch:
    notification_type: String(required=True, max_length=100)
    tenant_id: String(max_length=100)
    total_count: Integer(default=0)  # recipients
    chunk_count: Integer(default=0)
    processed_count: Integer(default=0)  # chunks finished
    succeeded_count: Integer(default=0)  # deliveries
    failed_count: Integer(default=0)
    status: String(choices=BatchStatus, default=BatchStatus.PENDING.value)
    chunk_outcomes: Text()  # JSON {record_id: [succeeded, failed]}
    created_at: DateTime()
    completed_at: DateTime()

    @classmethod
    def create(cls, notification_type, total_count, chunk_count, tenant_id=None):
        now = datetime.now(UTC)
        batch = cls(
            notification_type=notification_type,
            tenant_id=tenant_id,
            total_count=total_count,
            chunk_count=chunk_count,
            status=BatchStatus.PENDING.value,
            created_at=now,
        )
        batch.raise_(
            BatchCreated(
                batch_id=str(batch.id),
                notification_type=notification_type,
                total_count=total_count,
                chunk_count=chunk_count,
                created_at=now,
            )
        )
        return batch

    @property
    def is_finished(self) -> bool:
        return self.status in (BatchStatus.COMPLETED.value, BatchStatus.FAILED.value)

    def outcomes(self) -> dict:
        return json.loads(self.chunk_outcomes) if self.chunk_outcomes else {}

    def record_chunk(self, record_id, succeeded, failed):
        """Fold a chunk's latest outcome into the batch totals.

        A chunk reported again after a retry replaces its earlier outcome
        instead of counting twice, even once the batch has finished. Chunks
        already in flight when the batch is cancelled still count toward the
        totals; the batch stays CANCELLED.
        """
        record_id = str(record_id)
        outcomes = self.outcomes()
        previous = outcomes.get(record_id)

        if previous is None:
            if self.is_finished:
                raise ValidationError({"status": [f"Batch is already {self.status}"]})
            self.processed_count += 1
            self.succeeded_count += succeeded
            self.failed_count += failed
        else:
            self.succeeded_count += succeeded - previous[0]
            self.failed_count += failed - previous[1]

        outcomes[record_id] = [succeeded, failed]
        self.chunk_outcomes = json.dumps(outcomes)

        if self.status == BatchStatus.CANCELLED.value:
            return
        if self.is_finished:
            if self._final_status() != self.status:
                self._finish()
            return

        self.status = BatchStatus.PROCESSING.value
        if self.processed_count >= self.chunk_count:
            self._finish()

    def _final_status(self) -> str:
        return BatchStatus.COMPLETED.value if self.succeeded_count else BatchStatus.FAILED.value

    def _finish(self):
        now = datetime.now(UTC)
        self.status = self._final_status()
        self.completed_at = now
        self.raise_(
            BatchCompleted(
                batch_id=str(self.id),
                status=self.status,
                succeeded_count=self.succeeded_count,
                failed_count=self.failed_count,
                completed_at=now,
            )
        )

    def cancel(self):
        if self.is_finished:
            raise ValidationError({"status": [f"Batch is already {self.status}"]})
        self.status = BatchStatus.CANCELLED.value
        self.completed_at = datetime.now(UTC)
