"""Slack gateway built on the async Slack Web API client.

Message ids are Slack message timestamps (``ts``). Markers are emoji names
without colons.
"""

import logging
from typing import Any

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from live_notify.errors import UpstreamFailure
from live_notify.messaging.cards import NotificationCard

logger = logging.getLogger(__name__)

# Reaction errors that mean the marker cannot or need not be applied
_BENIGN_REACTION_ERRORS = ("already_reacted", "message_not_found", "no_item_specified")


def to_mrkdwn(text: str) -> str:
    """Convert ``**bold**`` markdown to Slack's ``*bold*``."""
    return text.replace("**", "*")


def render_blocks(card: NotificationCard) -> list[dict[str, Any]]:
    """Render a card as Block Kit blocks."""
    section: dict[str, Any] = {
        "type": "section",
        "text": {
            "type": "mrkdwn",
            "text": f"*<{card.url}|{card.title}>*\n{card.broadcaster_name}",
        },
    }
    fields = []
    if card.game_name:
        fields.append({"type": "mrkdwn", "text": f"*Game*\n{card.game_name}"})
    if card.tags:
        fields.append({"type": "mrkdwn", "text": f"*Tags*\n{', '.join(card.tags)}"})
    if fields:
        section["fields"] = fields

    blocks: list[dict[str, Any]] = [section]
    if card.thumbnail_url:
        blocks.append(
            {"type": "image", "image_url": card.thumbnail_url, "alt_text": card.title}
        )
    return blocks


class SlackGateway:
    """MessagingGateway backed by the Slack Web API."""

    def __init__(
        self,
        bot_token: str = "",
        *,
        end_marker: str = "checkered_flag",
        client: AsyncWebClient | None = None,
    ) -> None:
        self._client = client or AsyncWebClient(token=bot_token)
        self.end_marker = end_marker.strip(":")

    async def _post_message(self, channel_id: str, **kwargs: Any) -> str:
        try:
            response = await self._client.chat_postMessage(channel=channel_id, **kwargs)
        except SlackApiError as exc:
            error_code = exc.response.get("error", "") if exc.response else ""
            raise UpstreamFailure(f"Slack API error: {error_code}") from exc
        return response["ts"]

    async def send_plain(self, channel_id: str, text: str) -> str:
        return await self._post_message(channel_id, text=to_mrkdwn(text))

    async def send_rich(self, channel_id: str, text: str, card: NotificationCard) -> str:
        return await self._post_message(
            channel_id, text=to_mrkdwn(text), blocks=render_blocks(card)
        )

    async def add_marker(self, channel_id: str, message_id: str, marker: str) -> bool:
        """Add an emoji reaction. Benign Slack errors return False instead of raising."""
        try:
            await self._client.reactions_add(
                channel=channel_id,
                name=marker.strip(":"),
                timestamp=message_id,
            )
        except SlackApiError as exc:
            error_code = exc.response.get("error", "") if exc.response else ""
            if error_code in _BENIGN_REACTION_ERRORS:
                logger.warning(
                    "Reaction '%s' not added (%s): %s", marker, error_code, message_id
                )
                return False
            raise UpstreamFailure(f"Slack API error: {error_code}") from exc
        return True

    async def aclose(self) -> None:
        # The client opens a session per request unless one was supplied
        session = self._client.session
        if session is not None and not session.closed:
            await session.close()
