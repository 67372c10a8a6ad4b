"""Async client for the Twitch Helix API.

Covers the provider calls the service needs: stream lookup for the
dispatcher, user lookup and EventSub subscription creation for the
registration command. A cached instance is created lazily from settings.
"""

import asyncio
import logging
import time
from collections.abc import Callable

import httpx

from live_notify.config import get_settings
from live_notify.errors import UpstreamFailure
from live_notify.http import retry_transient
from live_notify.models.eventsub import EventType
from live_notify.models.stream import StreamInfo, render_thumbnail
from live_notify.twitch.token import AppAccessToken

logger = logging.getLogger(__name__)


class TwitchClient:
    """Helix API client authenticated with an app access token."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        api_url: str = "https://api.twitch.tv/helix",
        auth_url: str = "https://id.twitch.tv/oauth2/token",
        callback_url: str = "",
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
        timeout: float = 10.0,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._api_url = api_url.rstrip("/")
        self._auth_url = auth_url
        self._callback_url = callback_url
        self._http = http or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self.token = AppAccessToken(self._fetch_token, clock=clock)

    async def _fetch_token(self) -> tuple[str, float]:
        try:
            response = await self._http.post(
                self._auth_url,
                params={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "grant_type": "client_credentials",
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"Failed to get access token: {exc}") from exc
        data = response.json()
        return data["access_token"], float(data.get("expires_in", 0))

    @retry_transient
    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        token = await self.token.get()
        response = await self._http.request(
            method,
            f"{self._api_url}{path}",
            headers={"Client-ID": self._client_id, "Authorization": f"Bearer {token}"},
            **kwargs,
        )
        if response.status_code == 401:
            # Revoked or expired early; the next call fetches a fresh token
            self.token.invalidate()
        response.raise_for_status()
        return response

    async def get_stream_info(self, broadcaster_id: str) -> StreamInfo | None:
        """Return the broadcaster's current live session, or None when offline.

        Raises UpstreamFailure if the API call fails.
        """
        try:
            response = await self._request("GET", "/streams", params={"user_id": broadcaster_id})
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"Failed to get stream info: {exc}") from exc

        data = response.json().get("data") or []
        if not data:
            return None
        stream = StreamInfo.model_validate(data[0])
        stream.thumbnail_url = render_thumbnail(stream.thumbnail_url)
        return stream

    async def get_user_id(self, login: str) -> str | None:
        """Resolve a login name to a broadcaster id. None if no such user."""
        try:
            response = await self._request("GET", "/users", params={"login": login})
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"Failed to get user data: {exc}") from exc

        data = response.json().get("data") or []
        if not data:
            return None
        return data[0]["id"]

    async def create_event_subscription(
        self, broadcaster_id: str, event_type: EventType, secret: str
    ) -> bool:
        """Create one EventSub webhook subscription.

        An already-existing subscription (HTTP 409) counts as success.
        """
        body = {
            "type": event_type.value,
            "version": "1",
            "condition": {"broadcaster_user_id": broadcaster_id},
            "transport": {
                "method": "webhook",
                "callback": self._callback_url,
                "secret": secret,
            },
        }
        try:
            await self._request("POST", "/eventsub/subscriptions", json=body)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 409:
                logger.info(
                    "Subscription %s already exists for broadcaster %s",
                    event_type.value,
                    broadcaster_id,
                )
                return True
            logger.error(
                "Failed to subscribe to %s for broadcaster %s: %s",
                event_type.value,
                broadcaster_id,
                exc.response.text,
            )
            return False
        except httpx.HTTPError:
            logger.error(
                "Failed to subscribe to %s for broadcaster %s",
                event_type.value,
                broadcaster_id,
                exc_info=True,
            )
            return False

        logger.info("Subscribed to %s events for broadcaster %s", event_type.value, broadcaster_id)
        return True

    async def subscribe_to_stream_events(self, broadcaster_id: str, secret: str) -> bool:
        """Subscribe to both stream.online and stream.offline. True if both succeed."""
        results = await asyncio.gather(
            *(
                self.create_event_subscription(broadcaster_id, event_type, secret)
                for event_type in (EventType.STREAM_ONLINE, EventType.STREAM_OFFLINE)
            )
        )
        return all(results)

    async def aclose(self) -> None:
        await self._http.aclose()


_client: TwitchClient | None = None


async def get_twitch_client() -> TwitchClient:
    """Return a cached Twitch client built from settings."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = TwitchClient(
            settings.twitch_client_id,
            settings.twitch_client_secret,
            api_url=settings.twitch_api_url,
            auth_url=settings.twitch_auth_url,
            callback_url=settings.twitch_callback_url,
            timeout=settings.http_timeout_seconds,
        )
    return _client


def reset_client() -> None:
    """Reset the cached client instance. Used for testing."""
    global _client
    _client = None


async def close_client() -> None:
    """Close the cached client's HTTP connections and drop it."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
