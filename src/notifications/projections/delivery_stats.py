"""DeliveryStats: daily delivery counts per tenant, channel and notification type.

Fed by DeliveryRecorded. ``get_metrics`` and ``get_channel_performance``
aggregate the rows for dashboards and the metrics endpoints.
"""

from dataclasses import dataclass
from datetime import date

from notifications.domain import notifications
from notifications.notification.delivery import DeliveryAttempt
from notifications.notification.events import DeliveryRecorded
from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Integer, String
from protean.utils.globals import current_domain

NO_TENANT = "-"


@notifications.projection
class DeliveryStats:
    stat_key: String(identifier=True, required=True)  # "YYYY-MM-DD:tenant:channel:type"
    date: String(required=True, max_length=10)
    tenant_id: String(required=True, max_length=100)
    channel: String(required=True, max_length=20)
    notification_type: String(required=True, max_length=100)
    sent: Integer(default=0)
    failed: Integer(default=0)
    updated_at: DateTime()


@notifications.projector(projector_for=DeliveryStats, aggregates=[DeliveryAttempt])
class DeliveryStatsProjector:
    @on(DeliveryRecorded)
    def on_delivery_recorded(self, event: DeliveryRecorded):
        repo = current_domain.repository_for(DeliveryStats)

        date_str = event.recorded_at.strftime("%Y-%m-%d")
        tenant = event.tenant_id or NO_TENANT
        stat_key = f"{date_str}:{tenant}:{event.channel}:{event.notification_type}"

        try:
            stat = repo.get(stat_key)
        except ObjectNotFoundError:
            stat = DeliveryStats(
                stat_key=stat_key,
                date=date_str,
                tenant_id=tenant,
                channel=event.channel,
                notification_type=event.notification_type,
                sent=0,
                failed=0,
            )

        if event.success:
            stat.sent += 1
        else:
            stat.failed += 1
        stat.updated_at = event.recorded_at
        repo.add(stat)


@dataclass
class MetricsFilter:
    date_from: date | None = None
    date_to: date | None = None
    tenant_id: str | None = None
    channel: str | None = None
    notification_type: str | None = None


def _rows(filters: MetricsFilter):
    query = {}
    if filters.tenant_id:
        query["tenant_id"] = filters.tenant_id
    if filters.channel:
        query["channel"] = filters.channel
    if filters.notification_type:
        query["notification_type"] = filters.notification_type

    repo = current_domain.repository_for(DeliveryStats)
    rows = repo._dao.query.filter(**query).all().items if query else repo._dao.query.all().items

    # ISO dates compare correctly as strings
    if filters.date_from:
        rows = [r for r in rows if r.date >= filters.date_from.isoformat()]
    if filters.date_to:
        rows = [r for r in rows if r.date <= filters.date_to.isoformat()]
    return rows


def _summary(sent, failed):
    total = sent + failed
    return {
        "sent": sent,
        "failed": failed,
        "total": total,
        "success_rate": round(sent / total, 4) if total else 0.0,
        "error_rate": round(failed / total, 4) if total else 0.0,
    }


def get_metrics(filters: MetricsFilter | None = None) -> dict:
    rows = _rows(filters or MetricsFilter())
    return _summary(sum(r.sent for r in rows), sum(r.failed for r in rows))


def get_channel_performance(filters: MetricsFilter | None = None) -> list[dict]:
    totals: dict[str, list[int]] = {}
    for row in _rows(filters or MetricsFilter()):
        sent_failed = totals.setdefault(row.channel, [0, 0])
        sent_failed[0] += row.sent
        sent_failed[1] += row.failed
    return [{"channel": channel, **_summary(sent, failed)} for channel, (sent, failed) in sorted(totals.items())]
