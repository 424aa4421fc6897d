"""Pydantic request/response models for the Notifications API.

API schemas are separate from Protean commands (anti-corruption pattern).
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------
class RecipientModel(BaseModel):
    user_id: str | None = None
    email: str | None = None
    phone: str | None = None
    device_token: str | None = None
    webhook_url: str | None = None


class ContextModel(BaseModel):
    tenant_id: str | None = None
    user_id: str | None = None
    correlation_id: str | None = None
    source: str | None = None


class SendNotificationRequest(BaseModel):
    type: str = Field(..., examples=["ORDER_CONFIRMATION"])
    recipients: list[RecipientModel] = Field(..., min_length=1)
    channels: list[str] = Field(..., min_length=1, examples=[["EMAIL", "IN_APP"]])
    priority: str = "MEDIUM"
    category: str = "TRANSACTIONAL"
    template_variables: dict = {}
    context: ContextModel = ContextModel()
    scheduled_at: datetime | None = None
    expires_at: datetime | None = None
    idempotency_key: str | None = Field(None, max_length=255)
    strict_idempotency: bool = False


class BulkNotificationRequest(BaseModel):
    type: str
    recipients: list[RecipientModel] = Field(..., min_length=1)
    channels: list[str] = Field(..., min_length=1)
    priority: str = "MEDIUM"
    category: str = "MARKETING"
    template_variables: dict = {}
    context: ContextModel = ContextModel()
    scheduled_at: datetime | None = None
    expires_at: datetime | None = None


class CancelNotificationRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class SetPreferenceRequest(BaseModel):
    channels: list[str] | None = None
    is_enabled: bool | None = None
    frequency: str | None = None
    min_priority: str | None = None
    locale: str | None = None


class SetQuietHoursRequest(BaseModel):
    start: str = Field(..., pattern=r"^\d{2}:\d{2}$", examples=["22:00"])
    end: str = Field(..., pattern=r"^\d{2}:\d{2}$", examples=["08:00"])
    timezone: str = "UTC"


class SubscribeRequest(BaseModel):
    address: str = Field(..., min_length=1, max_length=500)


class CreateWebhookRequest(BaseModel):
    user_id: str
    tenant_id: str | None = None
    url: str = Field(..., examples=["https://seller.example.com/hooks"])
    events: list[str] = Field(..., min_length=1, examples=[["order.created"]])
    secret: str | None = None
    timeout_seconds: int = Field(30, ge=1, le=120)
    max_retries: int = Field(3, ge=1, le=10)
    retry_backoff: str = "EXPONENTIAL"
    retry_multiplier: float = Field(2.0, ge=1.0)
    max_retry_delay_seconds: int = Field(300, ge=1)


class UpdateWebhookRequest(BaseModel):
    user_id: str
    url: str | None = None
    events: list[str] | None = None
    is_active: bool | None = None
    timeout_seconds: int | None = Field(None, ge=1, le=120)
    max_retries: int | None = Field(None, ge=1, le=10)
    retry_backoff: str | None = None
    retry_multiplier: float | None = Field(None, ge=1.0)
    max_retry_delay_seconds: int | None = Field(None, ge=1)


class CreateTemplateRequest(BaseModel):
    name: str
    notification_type: str
    channel: str
    locale: str = "en"
    tenant_id: str | None = None
    subject: str | None = None
    title: str | None = None
    content: str = Field(..., min_length=1)
    html_content: str | None = None


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class NotificationIdResponse(BaseModel):
    notification_id: str


class BatchIdResponse(BaseModel):
    batch_id: str


class NotificationResponse(BaseModel):
    notification_id: str
    notification_type: str
    status: str
    priority: str
    channels: list[str]
    recipient_count: int
    lane: str
    batch_id: str | None = None
    retry_count: int = 0
    succeeded_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    failure_reason: str | None = None
    scheduled_at: str | None = None
    created_at: str | None = None
    completed_at: str | None = None


class DeliveryAttemptResponse(BaseModel):
    attempt_id: str
    channel: str
    recipient_key: str
    status: str
    message_id: str | None = None
    error: str | None = None
    retryable: bool
    attempts: int
    delivered_at: str | None = None


class BatchResponse(BaseModel):
    batch_id: str
    notification_type: str
    status: str
    total_count: int
    chunk_count: int
    processed_count: int
    succeeded_count: int
    failed_count: int


class InAppNotificationResponse(BaseModel):
    id: str
    notification_id: str | None = None
    notification_type: str
    title: str | None = None
    content: str
    is_read: bool
    created_at: str | None = None


class InboxResponse(BaseModel):
    notifications: list[InAppNotificationResponse]
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class PreferenceResponse(BaseModel):
    user_id: str
    notification_type: str
    channels: list[str]
    is_enabled: bool
    frequency: str
    min_priority: str | None = None
    locale: str
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    timezone: str
    source: str


class WebhookResponse(BaseModel):
    id: str
    user_id: str
    url: str
    events: list[str]
    is_active: bool
    max_retries: int
    retry_backoff: str
    consecutive_failures: int
    secret: str | None = None


class WebhookListResponse(BaseModel):
    webhooks: list[WebhookResponse]


class WebhookTestResponse(BaseModel):
    success: bool
    status_code: int | None = None
    response_time_ms: int
    error: str | None = None


class MetricsResponse(BaseModel):
    sent: int
    failed: int
    total: int
    success_rate: float
    error_rate: float


class ChannelPerformanceResponse(MetricsResponse):
    channel: str


class TemplateIdResponse(BaseModel):
    template_id: str
    version: int
