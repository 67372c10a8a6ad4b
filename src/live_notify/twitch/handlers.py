"""EventSub event dispatch: dedup, fan-out, and end-of-stream correlation.

Per webhook: verify, then take exactly one of the started / ended / revoked
paths. Fan-out to subscribing servers runs concurrently with each server's
failure isolated and logged; the handler waits for every branch before
acknowledging. The cross-post for the target broadcaster is launched as a
detached task and never awaited by the webhook.
"""

import asyncio
import logging
from enum import Enum

from live_notify.config import get_settings
from live_notify.errors import (
    AuthenticationFailure,
    StorageFailure,
    UpstreamFailure,
    ValidationFailure,
)
from live_notify.messaging.cards import build_announcement_text, build_stream_card
from live_notify.messaging.client import get_messaging_gateway
from live_notify.messaging.gateway import MessagingGateway
from live_notify.models.eventsub import EventType, InboundWebhook, MessageType, StreamEvent
from live_notify.models.guild import DeliveredNotification
from live_notify.models.stream import StreamInfo
from live_notify.registry import (
    ActiveStreamTracker,
    CrossPostLedger,
    DeliveredNotificationLedger,
    SecretStore,
    ServerConfigStore,
    SubscriptionRegistry,
)
from live_notify.social.crosspost import CrossPoster
from live_notify.social.x import XClient
from live_notify.storage.client import get_kv
from live_notify.twitch.client import TwitchClient, get_twitch_client
from live_notify.twitch.verification import WebhookVerifier

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """Result of one per-server branch."""

    DELIVERED = "delivered"
    SKIPPED = "skipped"
    FAILED = "failed"


def _summarize(message: str, outcomes: list[Outcome]) -> dict:
    return {
        "message": message,
        **{outcome.value: outcomes.count(outcome) for outcome in Outcome},
    }


class EventDispatcher:
    """Orchestrates verification, dedup, fan-out and correlation bookkeeping."""

    def __init__(
        self,
        *,
        verifier: WebhookVerifier,
        twitch: TwitchClient,
        gateway: MessagingGateway,
        subscriptions: SubscriptionRegistry,
        server_configs: ServerConfigStore,
        active_streams: ActiveStreamTracker,
        notifications: DeliveredNotificationLedger,
        crossposter: CrossPoster | None = None,
    ) -> None:
        self._verifier = verifier
        self._twitch = twitch
        self._gateway = gateway
        self._subscriptions = subscriptions
        self._server_configs = server_configs
        self._active_streams = active_streams
        self._notifications = notifications
        self._crossposter = crossposter
        self._background: set[asyncio.Task] = set()

    async def dispatch(self, webhook: InboundWebhook) -> dict:
        """Authenticate a notification/revocation webhook and run its path.

        Raises:
            AuthenticationFailure: signature invalid or no secret for the broadcaster.
            ValidationFailure: notification without an event payload.
            StorageFailure: the dedup gate could not be established.
        """
        if not await self._verifier.verify_webhook(webhook):
            raise AuthenticationFailure("Invalid EventSub signature")

        subscription = webhook.envelope.subscription
        if webhook.headers.message_type == MessageType.REVOCATION:
            return self.handle_revocation(webhook)

        event = webhook.envelope.event
        if event is None:
            raise ValidationFailure("Notification is missing its event payload")

        if subscription.type == EventType.STREAM_ONLINE.value:
            return await self.handle_stream_online(event)
        if subscription.type == EventType.STREAM_OFFLINE.value:
            return await self.handle_stream_offline(event)

        logger.info("Ignoring unhandled event type %s", subscription.type)
        return {"message": "Event type not handled"}

    def handle_revocation(self, webhook: InboundWebhook) -> dict:
        subscription = webhook.envelope.subscription
        logger.warning(
            "Subscription %s (%s) revoked for broadcaster %s: %s",
            subscription.id,
            subscription.type,
            webhook.broadcaster_id,
            subscription.status,
        )
        return {"message": "Revocation acknowledged"}

    async def _resolve_stream(self, event: StreamEvent) -> StreamInfo | None:
        """Look up the live session, falling back to the event payload."""
        try:
            stream = await self._twitch.get_stream_info(event.broadcaster_user_id)
        except UpstreamFailure:
            logger.warning(
                "Stream lookup failed for broadcaster %s, using event payload",
                event.broadcaster_user_id,
                exc_info=True,
            )
            stream = None
        if stream is not None:
            return stream
        if not event.id:
            return None
        return StreamInfo(
            id=event.id,
            user_id=event.broadcaster_user_id,
            user_login=event.broadcaster_user_login,
            user_name=event.broadcaster_user_name,
            started_at=event.started_at,
        )

    async def handle_stream_online(self, event: StreamEvent) -> dict:
        broadcaster_id = event.broadcaster_user_id
        stream = await self._resolve_stream(event)
        if stream is None:
            logger.info("No active session for broadcaster %s", broadcaster_id)
            return {"message": "No active session"}

        try:
            created = await self._active_streams.mark_if_absent(broadcaster_id, stream.id)
        except Exception as exc:
            # Without the mark a retry could announce twice; let the provider retry instead
            raise StorageFailure(
                f"Could not record active stream {stream.id} for broadcaster {broadcaster_id}"
            ) from exc
        if not created:
            logger.info("Session %s of broadcaster %s already announced", stream.id, broadcaster_id)
            return {"message": "Stream already announced"}

        if self._crossposter is not None and self._crossposter.applies_to(broadcaster_id):
            self._spawn(self._crossposter.run(stream))

        servers = await self._subscriptions.get_servers(broadcaster_id)
        if not servers:
            logger.info("No servers subscribed to broadcaster %s", broadcaster_id)
            return {"message": "No subscribers"}

        outcomes = await asyncio.gather(
            *(self._deliver(broadcaster_id, server_id, stream) for server_id in servers)
        )
        logger.info(
            "Announced session %s of broadcaster %s to %d/%d server(s)",
            stream.id,
            broadcaster_id,
            outcomes.count(Outcome.DELIVERED),
            len(servers),
        )
        return _summarize("Notifications processed", outcomes)

    async def _deliver(self, broadcaster_id: str, server_id: str, stream: StreamInfo) -> Outcome:
        try:
            config = await self._server_configs.get(server_id)
            if config is None:
                logger.info("No notification channel configured for server %s", server_id)
                return Outcome.SKIPPED
            if not config.matches(stream.title):
                logger.info("Stream title does not match rules for server %s", server_id)
                return Outcome.SKIPPED

            message_id = await self._gateway.send_rich(
                config.channel_id, build_announcement_text(stream), build_stream_card(stream)
            )
        except Exception:
            logger.error(
                "Notification to server %s failed for broadcaster %s",
                server_id,
                broadcaster_id,
                exc_info=True,
            )
            return Outcome.FAILED

        try:
            await self._notifications.save(
                DeliveredNotification(
                    broadcaster_id=broadcaster_id,
                    server_id=server_id,
                    channel_id=config.channel_id,
                    message_id=message_id,
                )
            )
        except Exception:
            # The message is already out; it just won't get an end marker
            logger.error(
                "Could not record message %s for server %s", message_id, server_id, exc_info=True
            )
        return Outcome.DELIVERED

    async def handle_stream_offline(self, event: StreamEvent) -> dict:
        broadcaster_id = event.broadcaster_user_id
        await self._clear_active(broadcaster_id)

        servers = await self._subscriptions.get_servers(broadcaster_id)
        if not servers:
            return {"message": "No subscribers"}

        outcomes = await asyncio.gather(
            *(self._retract(broadcaster_id, server_id) for server_id in servers)
        )
        return _summarize("End of stream processed", outcomes)

    async def _clear_active(self, broadcaster_id: str) -> None:
        try:
            stream = await self._twitch.get_stream_info(broadcaster_id)
        except UpstreamFailure:
            logger.warning("Stream lookup failed for broadcaster %s", broadcaster_id, exc_info=True)
            stream = None

        try:
            if stream is not None:
                await self._active_streams.clear(broadcaster_id, stream.id)
            else:
                cleared = await self._active_streams.clear_broadcaster(broadcaster_id)
                logger.info("Cleared %d active mark(s) for broadcaster %s", cleared, broadcaster_id)
        except Exception:
            logger.error(
                "Could not clear active stream for broadcaster %s", broadcaster_id, exc_info=True
            )

    async def _retract(self, broadcaster_id: str, server_id: str) -> Outcome:
        try:
            notification = await self._notifications.get(broadcaster_id, server_id)
            if notification is None:
                return Outcome.SKIPPED
            await self._gateway.add_marker(
                notification.channel_id, notification.message_id, self._gateway.end_marker
            )
            await self._notifications.delete(broadcaster_id, server_id)
        except Exception:
            logger.error(
                "End-of-stream handling failed for server %s, broadcaster %s",
                server_id,
                broadcaster_id,
                exc_info=True,
            )
            return Outcome.FAILED
        return Outcome.DELIVERED

    def _spawn(self, coro) -> None:
        """Run a coroutine detached from the webhook, keeping a reference until it ends."""
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_background(self) -> None:
        """Wait for detached tasks. Used at shutdown and in tests."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def aclose(self) -> None:
        """Close clients owned by the dispatcher. Shared clients are closed by their owners."""
        if self._crossposter is not None:
            await self._crossposter.aclose()


_dispatcher: EventDispatcher | None = None


async def build_crossposter() -> CrossPoster | None:
    """Return a cross-poster, or None when X credentials are not configured."""
    settings = get_settings()
    if not settings.x_enabled:
        return None
    client = XClient(
        settings.x_consumer_key,
        settings.x_consumer_secret,
        settings.x_access_token,
        settings.x_access_secret,
        timeout=settings.http_timeout_seconds,
    )
    ledger = CrossPostLedger(await get_kv(), ttl_seconds=settings.x_post_ttl_seconds)
    return CrossPoster(client, ledger, settings.x_target_broadcaster_id, settings.x_post_prefix)


async def get_dispatcher() -> EventDispatcher:
    """Return the cached dispatcher wired from the process-wide singletons."""
    global _dispatcher
    if _dispatcher is None:
        kv = await get_kv()
        _dispatcher = EventDispatcher(
            verifier=WebhookVerifier(SecretStore(kv)),
            twitch=await get_twitch_client(),
            gateway=await get_messaging_gateway(),
            subscriptions=SubscriptionRegistry(kv),
            server_configs=ServerConfigStore(kv),
            active_streams=ActiveStreamTracker(kv),
            notifications=DeliveredNotificationLedger(kv),
            crossposter=await build_crossposter(),
        )
    return _dispatcher


def reset_dispatcher() -> None:
    """Reset the cached dispatcher. Used for testing."""
    global _dispatcher
    _dispatcher = None


async def drain_dispatcher() -> None:
    """Wait for the cached dispatcher's detached tasks, close it and drop it."""
    global _dispatcher
    if _dispatcher is not None:
        await _dispatcher.wait_background()
        await _dispatcher.aclose()
        _dispatcher = None
