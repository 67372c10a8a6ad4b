"""Outbound messaging: gateway contract, Discord and Slack gateways, card composition."""

from live_notify.messaging.cards import (
    NotificationCard,
    build_announcement_text,
    build_stream_card,
)
from live_notify.messaging.client import close_gateway, get_messaging_gateway, reset_gateway
from live_notify.messaging.gateway import MessagingGateway

__all__ = [
    "MessagingGateway",
    "NotificationCard",
    "build_announcement_text",
    "build_stream_card",
    "close_gateway",
    "get_messaging_gateway",
    "reset_gateway",
]
