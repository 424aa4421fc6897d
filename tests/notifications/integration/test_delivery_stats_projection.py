"""Integration tests for the DeliveryStats projection and the metrics queries."""

from datetime import UTC, date, datetime, timedelta

from notifications.notification.request import NotificationRequest, Recipient, RequestContext
from notifications.projections.delivery_stats import (
    DeliveryStats,
    MetricsFilter,
    get_channel_performance,
    get_metrics,
)
from protean import current_domain


def _send(orchestrator, channels=("EMAIL",), tenant_id="seller-1", order="ORD-1", **recipient):
    recipient = recipient or {"email": "buyer@example.com", "phone": "+15550001"}
    return orchestrator.send_notification(
        NotificationRequest(
            type="ORDER_CONFIRMATION",
            recipients=[Recipient(**recipient)],
            channels=list(channels),
            template_variables={"orderNumber": order},
            context=RequestContext(tenant_id=tenant_id),
        )
    )


def _today():
    return datetime.now(UTC).date()


class TestDeliveryStatsProjection:
    def test_successful_delivery_is_counted(self, orchestrator):
        _send(orchestrator)

        stat = current_domain.repository_for(DeliveryStats).get(f"{_today().isoformat()}:seller-1:EMAIL:ORDER_CONFIRMATION")
        assert stat.sent == 1
        assert stat.failed == 0

    def test_failed_delivery_is_counted(self, orchestrator, sms):
        sms.configure(should_succeed=False)
        _send(orchestrator, channels=("SMS",))

        stat = current_domain.repository_for(DeliveryStats).get(f"{_today().isoformat()}:seller-1:SMS:ORDER_CONFIRMATION")
        assert stat.failed == 1

    def test_rows_accumulate(self, orchestrator):
        _send(orchestrator, order="ORD-1")
        _send(orchestrator, order="ORD-2")

        stat = current_domain.repository_for(DeliveryStats).get(f"{_today().isoformat()}:seller-1:EMAIL:ORDER_CONFIRMATION")
        assert stat.sent == 2

    def test_missing_tenant_uses_placeholder(self, orchestrator):
        _send(orchestrator, tenant_id=None)

        rows = current_domain.repository_for(DeliveryStats)._dao.query.all().items
        assert rows[0].tenant_id == "-"


class TestMetrics:
    def test_overall_rates(self, orchestrator, sms):
        sms.configure(should_succeed=False)
        _send(orchestrator, channels=("EMAIL", "SMS"), order="ORD-1")
        _send(orchestrator, channels=("EMAIL",), order="ORD-2")

        metrics = get_metrics()
        assert metrics == {"sent": 2, "failed": 1, "total": 3, "success_rate": 0.6667, "error_rate": 0.3333}

    def test_empty_metrics(self):
        assert get_metrics() == {"sent": 0, "failed": 0, "total": 0, "success_rate": 0.0, "error_rate": 0.0}

    def test_filter_by_tenant_and_channel(self, orchestrator):
        _send(orchestrator, tenant_id="seller-1", order="ORD-1")
        _send(orchestrator, tenant_id="seller-2", order="ORD-2")
        _send(orchestrator, channels=("SMS",), tenant_id="seller-2", order="ORD-3")

        assert get_metrics(MetricsFilter(tenant_id="seller-2"))["total"] == 2
        assert get_metrics(MetricsFilter(tenant_id="seller-2", channel="SMS"))["total"] == 1

    def test_filter_by_date_range(self, orchestrator):
        _send(orchestrator)

        assert get_metrics(MetricsFilter(date_from=_today(), date_to=_today()))["total"] == 1
        assert get_metrics(MetricsFilter(date_from=_today() + timedelta(days=1)))["total"] == 0
        assert get_metrics(MetricsFilter(date_to=date(2000, 1, 1)))["total"] == 0

    def test_channel_performance(self, orchestrator, sms):
        sms.configure(should_succeed=False)
        _send(orchestrator, channels=("EMAIL", "SMS"))

        rows = get_channel_performance()
        assert [r["channel"] for r in rows] == ["EMAIL", "SMS"]
        assert rows[0]["success_rate"] == 1.0
        assert rows[1]["error_rate"] == 1.0
