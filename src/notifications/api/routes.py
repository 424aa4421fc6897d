"""FastAPI routes for the Notifications domain.

Thin adapters that translate HTTP requests into domain commands and
orchestrator calls. No business logic, just schema→command→response
translation.
"""

import json
from datetime import date

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from notifications.api.schemas import (
    BatchIdResponse,
    BatchResponse,
    BulkNotificationRequest,
    CancelNotificationRequest,
    ChannelPerformanceResponse,
    CreateTemplateRequest,
    CreateWebhookRequest,
    DeliveryAttemptResponse,
    InAppNotificationResponse,
    InboxResponse,
    MetricsResponse,
    NotificationIdResponse,
    NotificationResponse,
    PreferenceResponse,
    SendNotificationRequest,
    SetPreferenceRequest,
    SetQuietHoursRequest,
    StatusResponse,
    SubscribeRequest,
    TemplateIdResponse,
    UnreadCountResponse,
    UpdateWebhookRequest,
    WebhookListResponse,
    WebhookResponse,
    WebhookTestResponse,
)
from notifications.errors import StoreUnavailable
from notifications.inbox.inbox import (
    DeleteInAppNotification,
    MarkAllAsRead,
    MarkAsRead,
    get_unread_count,
    get_user_notifications,
)
from notifications.notification.batch import NotificationBatch
from notifications.notification.commands import CancelNotification
from notifications.notification.delivery import DeliveryAttempt
from notifications.notification.notification import NotificationRecord
from notifications.notification.request import NotificationRequest, Recipient, RequestContext
from notifications.preference.management import (
    ClearQuietHours,
    DeletePreference,
    SetPreference,
    SetQuietHours,
    find_preference,
)
from notifications.preference.resolver import PreferenceResolver
from notifications.preference.subscription import SubscribeToChannel, UnsubscribeFromChannel
from notifications.projections.delivery_stats import MetricsFilter, get_channel_performance, get_metrics
from notifications.services import get_orchestrator, get_router, get_scheduler, get_webhook_engine
from notifications.store import get_store
from notifications.templates.management import ArchiveTemplate, PublishTemplate
from notifications.webhook.management import (
    CreateWebhookSubscription,
    DeleteWebhookSubscription,
    UpdateWebhookSubscription,
    list_subscriptions,
)
from notifications.webhook.subscription import WebhookSubscription
from protean.integrations.fastapi import register_exception_handlers
from protean.utils.globals import current_domain

router = APIRouter(prefix="/notifications", tags=["notifications"])


def register_error_handlers(app: FastAPI):
    """Map domain errors to HTTP: 400 validation, 404 missing, 503 store down."""
    register_exception_handlers(app)

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable(request: Request, exc: StoreUnavailable):
        return JSONResponse(status_code=503, content={"error": str(exc)})


def _iso(value):
    return value.isoformat() if value else None


def _recipients(models):
    return [Recipient(**m.model_dump()) for m in models]


def _context(model):
    return RequestContext(**model.model_dump())


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------
@router.post("/send", status_code=201, response_model=NotificationIdResponse)
async def send_notification(body: SendNotificationRequest) -> NotificationIdResponse:
    """Accept a notification; replays of an idempotency key return the original id."""
    request = NotificationRequest(
        type=body.type,
        recipients=_recipients(body.recipients),
        channels=body.channels,
        priority=body.priority,
        category=body.category,
        template_variables=body.template_variables,
        context=_context(body.context),
        scheduled_at=body.scheduled_at,
        expires_at=body.expires_at,
        idempotency_key=body.idempotency_key,
        strict_idempotency=body.strict_idempotency,
    )
    return NotificationIdResponse(notification_id=get_orchestrator().send_notification(request))


@router.post("/bulk", status_code=201, response_model=BatchIdResponse)
async def send_bulk(body: BulkNotificationRequest) -> BatchIdResponse:
    batch_id = get_orchestrator().send_bulk_notifications(
        notification_type=body.type,
        recipients=_recipients(body.recipients),
        channels=body.channels,
        template_variables=body.template_variables,
        priority=body.priority,
        category=body.category,
        context=_context(body.context),
        scheduled_at=body.scheduled_at,
        expires_at=body.expires_at,
    )
    return BatchIdResponse(batch_id=batch_id)


@router.get("/bulk/{batch_id}", response_model=BatchResponse)
async def get_batch(batch_id: str) -> BatchResponse:
    batch = current_domain.repository_for(NotificationBatch).get(batch_id)
    return BatchResponse(
        batch_id=str(batch.id),
        notification_type=batch.notification_type,
        status=batch.status,
        total_count=batch.total_count,
        chunk_count=batch.chunk_count,
        processed_count=batch.processed_count,
        succeeded_count=batch.succeeded_count,
        failed_count=batch.failed_count,
    )


@router.put("/bulk/{batch_id}/cancel", response_model=StatusResponse)
async def cancel_batch(batch_id: str) -> StatusResponse:
    get_orchestrator().cancel_batch(batch_id)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Operations and metrics
# ---------------------------------------------------------------------------
@router.get("/health")
async def health() -> dict:
    channels = {name: h.to_dict() for name, h in get_router().health().items()}
    store_ok = get_store().ping()
    healthy = store_ok and all(c["status"] == "healthy" for c in channels.values())
    scheduler = get_scheduler()
    return {
        "status": "ok" if healthy else "degraded",
        "store": store_ok,
        "channels": channels,
        "scheduler": {"mode": scheduler.mode, "pending_delayed": scheduler.pending_delayed()},
    }


def _metrics_filter(date_from, date_to, tenant_id, channel=None, notification_type=None):
    return MetricsFilter(
        date_from=date_from,
        date_to=date_to,
        tenant_id=tenant_id,
        channel=channel,
        notification_type=notification_type,
    )


@router.get("/metrics", response_model=MetricsResponse)
async def metrics(
    date_from: date | None = None,
    date_to: date | None = None,
    tenant_id: str | None = None,
    channel: str | None = None,
    notification_type: str | None = None,
) -> MetricsResponse:
    filters = _metrics_filter(date_from, date_to, tenant_id, channel, notification_type)
    return MetricsResponse(**get_metrics(filters))


@router.get("/metrics/channels", response_model=list[ChannelPerformanceResponse])
async def channel_performance(
    date_from: date | None = None,
    date_to: date | None = None,
    tenant_id: str | None = None,
) -> list[ChannelPerformanceResponse]:
    rows = get_channel_performance(_metrics_filter(date_from, date_to, tenant_id))
    return [ChannelPerformanceResponse(**row) for row in rows]


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------
@router.post("/templates", status_code=201, response_model=TemplateIdResponse)
async def publish_template(body: CreateTemplateRequest) -> TemplateIdResponse:
    result = current_domain.process(PublishTemplate(**body.model_dump()), asynchronous=False)
    return TemplateIdResponse(**result)


@router.delete("/templates/{template_id}", response_model=StatusResponse)
async def archive_template(template_id: str) -> StatusResponse:
    current_domain.process(ArchiveTemplate(template_id=template_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------
@router.get("/preferences/{user_id}/{notification_type}", response_model=PreferenceResponse)
async def get_preference(user_id: str, notification_type: str) -> PreferenceResponse:
    """Effective preference after type → ALL → system default fallback."""
    resolved = PreferenceResolver().resolve(user_id, notification_type)
    stored = find_preference(user_id, notification_type)
    return PreferenceResponse(
        user_id=user_id,
        notification_type=notification_type,
        channels=list(resolved.channels),
        is_enabled=resolved.is_enabled,
        frequency=resolved.frequency,
        min_priority=resolved.min_priority,
        locale=resolved.locale,
        quiet_hours_start=resolved.quiet_hours.start if resolved.quiet_hours else None,
        quiet_hours_end=resolved.quiet_hours.end if resolved.quiet_hours else None,
        timezone=resolved.quiet_hours.timezone if resolved.quiet_hours else (stored.timezone if stored else "UTC"),
        source=resolved.source,
    )


@router.put("/preferences/{user_id}/{notification_type}", response_model=StatusResponse)
async def set_preference(user_id: str, notification_type: str, body: SetPreferenceRequest) -> StatusResponse:
    command = SetPreference(
        user_id=user_id,
        notification_type=notification_type,
        channels=json.dumps(body.channels) if body.channels is not None else None,
        is_enabled=body.is_enabled,
        frequency=body.frequency,
        min_priority=body.min_priority,
        locale=body.locale,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@router.put("/preferences/{user_id}/{notification_type}/quiet-hours", response_model=StatusResponse)
async def set_quiet_hours(user_id: str, notification_type: str, body: SetQuietHoursRequest) -> StatusResponse:
    """Set a user's do-not-disturb window."""
    command = SetQuietHours(
        user_id=user_id,
        notification_type=notification_type,
        start=body.start,
        end=body.end,
        timezone=body.timezone,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@router.delete("/preferences/{user_id}/{notification_type}/quiet-hours", response_model=StatusResponse)
async def clear_quiet_hours(user_id: str, notification_type: str) -> StatusResponse:
    current_domain.process(ClearQuietHours(user_id=user_id, notification_type=notification_type), asynchronous=False)
    return StatusResponse()


@router.delete("/preferences/{user_id}/{notification_type}", response_model=StatusResponse)
async def delete_preference(user_id: str, notification_type: str) -> StatusResponse:
    current_domain.process(DeletePreference(user_id=user_id, notification_type=notification_type), asynchronous=False)
    return StatusResponse()


@router.put("/subscriptions/{user_id}/{channel}", response_model=StatusResponse)
async def subscribe(user_id: str, channel: str, body: SubscribeRequest) -> StatusResponse:
    command = SubscribeToChannel(user_id=user_id, channel=channel, address=body.address)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@router.delete("/subscriptions/{user_id}/{channel}", response_model=StatusResponse)
async def unsubscribe(user_id: str, channel: str) -> StatusResponse:
    current_domain.process(UnsubscribeFromChannel(user_id=user_id, channel=channel), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------
def _webhook_response(subscription, include_secret=False) -> WebhookResponse:
    return WebhookResponse(
        id=str(subscription.id),
        user_id=subscription.user_id,
        url=subscription.url,
        events=subscription.event_list(),
        is_active=subscription.is_active,
        max_retries=subscription.max_retries,
        retry_backoff=subscription.retry_backoff,
        consecutive_failures=subscription.consecutive_failures,
        secret=subscription.secret if include_secret else None,
    )


@router.post("/webhooks", status_code=201, response_model=WebhookResponse)
async def create_webhook(body: CreateWebhookRequest) -> WebhookResponse:
    """Create a subscription; the signing secret is only ever returned here."""
    payload = body.model_dump()
    payload["events"] = json.dumps(payload["events"])
    subscription_id = current_domain.process(CreateWebhookSubscription(**payload), asynchronous=False)
    subscription = current_domain.repository_for(WebhookSubscription).get(subscription_id)
    return _webhook_response(subscription, include_secret=True)


@router.get("/webhooks/users/{user_id}", response_model=WebhookListResponse)
async def list_webhooks(user_id: str) -> WebhookListResponse:
    return WebhookListResponse(webhooks=[_webhook_response(s) for s in list_subscriptions(user_id)])


@router.put("/webhooks/{subscription_id}", response_model=StatusResponse)
async def update_webhook(subscription_id: str, body: UpdateWebhookRequest) -> StatusResponse:
    payload = body.model_dump()
    if payload["events"] is not None:
        payload["events"] = json.dumps(payload["events"])
    current_domain.process(UpdateWebhookSubscription(subscription_id=subscription_id, **payload), asynchronous=False)
    return StatusResponse()


@router.delete("/webhooks/{subscription_id}", response_model=StatusResponse)
async def delete_webhook(subscription_id: str, user_id: str = Query(...)) -> StatusResponse:
    current_domain.process(
        DeleteWebhookSubscription(subscription_id=subscription_id, user_id=user_id), asynchronous=False
    )
    return StatusResponse()


@router.post("/webhooks/{subscription_id}/test", response_model=WebhookTestResponse)
async def test_webhook(subscription_id: str) -> WebhookTestResponse:
    return WebhookTestResponse(**get_webhook_engine().test_webhook(subscription_id))


# ---------------------------------------------------------------------------
# In-app inbox
# ---------------------------------------------------------------------------
@router.get("/users/{user_id}", response_model=InboxResponse)
async def get_inbox(
    user_id: str,
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> InboxResponse:
    items = get_user_notifications(user_id, unread_only=unread_only, limit=limit, offset=offset)
    return InboxResponse(
        notifications=[
            InAppNotificationResponse(
                id=str(i.id),
                notification_id=str(i.notification_id) if i.notification_id else None,
                notification_type=i.notification_type,
                title=i.title,
                content=i.content,
                is_read=i.is_read,
                created_at=_iso(i.created_at),
            )
            for i in items
        ],
        unread_count=get_unread_count(user_id),
    )


@router.get("/users/{user_id}/unread-count", response_model=UnreadCountResponse)
async def unread_count(user_id: str) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=get_unread_count(user_id))


@router.put("/users/{user_id}/inbox/{in_app_id}/read", response_model=StatusResponse)
async def mark_as_read(user_id: str, in_app_id: str) -> StatusResponse:
    current_domain.process(MarkAsRead(in_app_id=in_app_id, user_id=user_id), asynchronous=False)
    return StatusResponse()


@router.put("/users/{user_id}/read-all", response_model=UnreadCountResponse)
async def mark_all_as_read(user_id: str) -> UnreadCountResponse:
    current_domain.process(MarkAllAsRead(user_id=user_id), asynchronous=False)
    return UnreadCountResponse(unread_count=get_unread_count(user_id))


@router.delete("/users/{user_id}/inbox/{in_app_id}", response_model=StatusResponse)
async def delete_in_app(user_id: str, in_app_id: str) -> StatusResponse:
    current_domain.process(DeleteInAppNotification(in_app_id=in_app_id, user_id=user_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Notification records (parameterised paths last so fixed paths win)
# ---------------------------------------------------------------------------
@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(notification_id: str) -> NotificationResponse:
    record = current_domain.repository_for(NotificationRecord).get(notification_id)
    return NotificationResponse(
        notification_id=str(record.id),
        notification_type=record.notification_type,
        status=record.status,
        priority=record.priority,
        channels=record.channel_list(),
        recipient_count=len(record.recipient_dicts()),
        lane=record.lane,
        batch_id=str(record.batch_id) if record.batch_id else None,
        retry_count=record.retry_count,
        succeeded_count=record.succeeded_count,
        failed_count=record.failed_count,
        skipped_count=record.skipped_count,
        failure_reason=record.failure_reason,
        scheduled_at=_iso(record.scheduled_at),
        created_at=_iso(record.created_at),
        completed_at=_iso(record.completed_at),
    )


@router.get("/{notification_id}/attempts", response_model=list[DeliveryAttemptResponse])
async def get_attempts(notification_id: str) -> list[DeliveryAttemptResponse]:
    """Per-channel breakdown: every delivery attempt recorded for the notification."""
    current_domain.repository_for(NotificationRecord).get(notification_id)
    repo = current_domain.repository_for(DeliveryAttempt)
    attempts = repo._dao.query.filter(notification_id=notification_id).order_by("created_at").all().items
    return [
        DeliveryAttemptResponse(
            attempt_id=str(a.id),
            channel=a.channel,
            recipient_key=a.recipient_key,
            status=a.status,
            message_id=a.message_id,
            error=a.error,
            retryable=a.retryable,
            attempts=a.attempts,
            delivered_at=_iso(a.delivered_at),
        )
        for a in attempts
    ]


@router.put("/{notification_id}/cancel", response_model=StatusResponse)
async def cancel_notification(notification_id: str, body: CancelNotificationRequest) -> StatusResponse:
    """Cancel a notification that has not started processing."""
    command = CancelNotification(notification_id=notification_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()
