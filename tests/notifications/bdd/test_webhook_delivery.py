"""BDD tests for webhook fan-out, retries and dead-lettering."""

from datetime import UTC, datetime, timedelta

from notifications.webhook.attempt import WebhookDeliveryAttempt
from notifications.webhook.signing import verify_signature
from notifications.webhook.subscription import WebhookSubscription
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/webhook_delivery.feature")


def _subscribe(event_type, max_retries=3):
    subscription = WebhookSubscription.create(
        user_id="seller-1",
        url="https://seller.example.com/hooks",
        events=[event_type],
        max_retries=max_retries,
    )
    current_domain.repository_for(WebhookSubscription).add(subscription)
    return subscription


@given(parsers.cfparse('a seller endpoint subscribed to "{event_type}"'), target_fixture="subscription")
def seller_endpoint(event_type):
    return _subscribe(event_type)


@given(
    parsers.cfparse('a seller endpoint subscribed to "{event_type}" with {retries:d} retries'),
    target_fixture="subscription",
)
def seller_endpoint_with_retries(event_type, retries):
    return _subscribe(event_type, max_retries=retries)


@given(parsers.cfparse("the endpoint answers {status:d} once"))
def endpoint_answers_once(transport, status):
    transport.respond_with(status)


@given("the endpoint is down")
def endpoint_down(transport):
    transport.default_status = 502


@when(parsers.cfparse('an "{event_type}" event is published'))
def publish_event(webhook_engine, event_type):
    webhook_engine.deliver(event_type, {"orderId": "order-77"}, event_id="evt-77")


@when("the webhook retry scan runs")
def run_retry_scan(webhook_engine):
    webhook_engine.retry_due(now=datetime.now(UTC) + timedelta(hours=1))


@then(parsers.cfparse("the endpoint receives {count:d} request"))
@then(parsers.cfparse("the endpoint receives {count:d} requests"))
def endpoint_receives(transport, count):
    assert len(transport.requests) == count


@then("the request carries a valid signature")
def valid_signature(transport, subscription):
    request = transport.requests[0]
    assert verify_signature(request["body"], request["headers"]["X-Webhook-Signature"], subscription.secret)


@then(parsers.cfparse('the delivery is recorded as "{status}"'))
def delivery_status(status):
    attempts = current_domain.repository_for(WebhookDeliveryAttempt)._dao.query.all().items
    assert [a.status for a in attempts] == [status]
