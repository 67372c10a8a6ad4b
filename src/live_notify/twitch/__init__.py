"""Twitch ingress: EventSub webhook verification, dispatch, and Helix API client."""

from live_notify.twitch.client import (
    TwitchClient,
    close_client,
    get_twitch_client,
    reset_client,
)
from live_notify.twitch.handlers import EventDispatcher, get_dispatcher, reset_dispatcher
from live_notify.twitch.router import router
from live_notify.twitch.verification import WebhookVerifier, compute_signature, parse_webhook

__all__ = [
    "EventDispatcher",
    "TwitchClient",
    "WebhookVerifier",
    "close_client",
    "compute_signature",
    "get_dispatcher",
    "get_twitch_client",
    "parse_webhook",
    "reset_client",
    "reset_dispatcher",
    "router",
]
