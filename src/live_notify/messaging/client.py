"""Messaging gateway singleton chosen by the ``messaging_backend`` setting."""

from live_notify.config import get_settings
from live_notify.messaging.discord import DiscordGateway
from live_notify.messaging.gateway import MessagingGateway
from live_notify.messaging.slack import SlackGateway

_gateway: MessagingGateway | None = None


async def get_messaging_gateway() -> MessagingGateway:
    """Return a cached gateway for the configured backend.

    Raises ValueError for an unknown backend name.
    """
    global _gateway
    if _gateway is None:
        settings = get_settings()
        backend = settings.messaging_backend.lower()
        if backend == "discord":
            _gateway = DiscordGateway(
                settings.discord_bot_token,
                api_url=settings.discord_api_url,
                end_marker=settings.end_marker,
                timeout=settings.http_timeout_seconds,
            )
        elif backend == "slack":
            _gateway = SlackGateway(settings.slack_bot_token, end_marker=settings.end_marker)
        else:
            raise ValueError(f"Unknown messaging backend: {settings.messaging_backend}")
    return _gateway


def reset_gateway() -> None:
    """Reset the cached gateway. Used for testing."""
    global _gateway
    _gateway = None


async def close_gateway() -> None:
    """Release the cached gateway's connections and drop it."""
    global _gateway
    if _gateway is not None:
        await _gateway.aclose()
        _gateway = None
