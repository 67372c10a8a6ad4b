"""Discord REST gateway.

Posts messages and reactions through the bot HTTP API. Transient failures
are retried; anything else surfaces as UpstreamFailure.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from live_notify.errors import UpstreamFailure
from live_notify.http import retry_transient
from live_notify.messaging.cards import NotificationCard

logger = logging.getLogger(__name__)

# Discord JSON error codes treated as "nothing to annotate"
_UNKNOWN_CHANNEL = 10003
_UNKNOWN_MESSAGE = 10008


def render_embed(card: NotificationCard) -> dict[str, Any]:
    """Render a card as a Discord embed object."""
    embed: dict[str, Any] = {
        "title": card.title,
        "url": card.url,
        "color": card.color,
        "author": {"name": card.broadcaster_name, "url": card.url},
    }
    fields = []
    if card.game_name:
        fields.append({"name": "Game", "value": card.game_name, "inline": True})
    if card.tags:
        fields.append({"name": "Tags", "value": ", ".join(card.tags), "inline": True})
    if fields:
        embed["fields"] = fields
    if card.thumbnail_url:
        embed["image"] = {"url": card.thumbnail_url}
    if card.started_at:
        embed["timestamp"] = card.started_at
    return embed


class DiscordGateway:
    """MessagingGateway backed by the Discord bot API."""

    def __init__(
        self,
        bot_token: str,
        *,
        api_url: str = "https://discord.com/api/v10",
        end_marker: str = "\U0001f51a",
        http: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._headers = {"Authorization": f"Bot {bot_token}"}
        self._http = http or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self.end_marker = end_marker

    @retry_transient
    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        response = await self._http.request(
            method, f"{self._api_url}{path}", headers=self._headers, **kwargs
        )
        response.raise_for_status()
        return response

    async def _post_message(self, channel_id: str, payload: dict[str, Any]) -> str:
        try:
            response = await self._request(
                "POST", f"/channels/{channel_id}/messages", json=payload
            )
        except httpx.HTTPStatusError as exc:
            raise UpstreamFailure(
                f"Discord API error {exc.response.status_code}: {exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"Discord API request failed: {exc}") from exc
        return response.json()["id"]

    async def send_plain(self, channel_id: str, text: str) -> str:
        return await self._post_message(channel_id, {"content": text})

    async def send_rich(self, channel_id: str, text: str, card: NotificationCard) -> str:
        return await self._post_message(
            channel_id, {"content": text, "embeds": [render_embed(card)]}
        )

    async def add_marker(self, channel_id: str, message_id: str, marker: str) -> bool:
        """Add a reaction. Returns False if the message or channel no longer exists."""
        path = (
            f"/channels/{channel_id}/messages/{message_id}"
            f"/reactions/{quote(marker, safe='')}/@me"
        )
        try:
            await self._request("PUT", path)
        except httpx.HTTPStatusError as exc:
            code = _error_code(exc.response)
            if code in (_UNKNOWN_CHANNEL, _UNKNOWN_MESSAGE):
                logger.warning(
                    "Reaction '%s' not added (code %s): %s", marker, code, message_id
                )
                return False
            raise UpstreamFailure(
                f"Discord API error {exc.response.status_code}: {exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"Discord API request failed: {exc}") from exc
        return True

    async def aclose(self) -> None:
        await self._http.aclose()


def _error_code(response: httpx.Response) -> int | None:
    try:
        return response.json().get("code")
    except ValueError:
        return None
