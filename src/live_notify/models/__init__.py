"""Data models for inbound webhooks, provider stream info, and per-server state."""

from live_notify.models.eventsub import (
    EventSubEnvelope,
    EventType,
    InboundWebhook,
    MessageType,
    StreamEvent,
    SubscriptionInfo,
    WebhookHeaders,
)
from live_notify.models.guild import DeliveredNotification, ServerNotifyConfig
from live_notify.models.stream import StreamInfo

__all__ = [
    "DeliveredNotification",
    "EventSubEnvelope",
    "EventType",
    "InboundWebhook",
    "MessageType",
    "ServerNotifyConfig",
    "StreamEvent",
    "StreamInfo",
    "SubscriptionInfo",
    "WebhookHeaders",
]
