"""Shared test fixtures."""

from unittest.mock import AsyncMock

import pytest
from factories import BROADCASTER_ID, TEST_SECRET, make_stream

from live_notify.messaging.client import reset_gateway
from live_notify.registry import (
    ActiveStreamTracker,
    DeliveredNotificationLedger,
    SecretStore,
    ServerConfigStore,
    SubscriptionRegistry,
)
from live_notify.storage.client import reset_kv
from live_notify.storage.kv import MemoryKV
from live_notify.twitch.client import reset_client
from live_notify.twitch.handlers import EventDispatcher, reset_dispatcher
from live_notify.twitch.verification import WebhookVerifier


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Ensure clean singleton state for every test."""
    reset_kv()
    reset_dispatcher()
    reset_gateway()
    reset_client()
    yield
    reset_kv()
    reset_dispatcher()
    reset_gateway()
    reset_client()


@pytest.fixture
def kv() -> MemoryKV:
    return MemoryKV()


@pytest.fixture
def gateway() -> AsyncMock:
    """An outbound messaging gateway that hands out sequential message ids."""
    mock = AsyncMock()
    mock.end_marker = "\U0001f51a"
    counter = iter(range(1, 1000))
    mock.send_rich.side_effect = lambda *args, **kwargs: f"msg-{next(counter)}"
    mock.add_marker.return_value = True
    return mock


@pytest.fixture
def twitch() -> AsyncMock:
    """A provider client whose stream lookup returns the default live session."""
    mock = AsyncMock()
    mock.get_stream_info.return_value = make_stream()
    return mock


@pytest.fixture
async def dispatcher(kv: MemoryKV, gateway: AsyncMock, twitch: AsyncMock) -> EventDispatcher:
    """A dispatcher over an in-memory store with a registered test broadcaster."""
    await SecretStore(kv).set(BROADCASTER_ID, TEST_SECRET)
    return EventDispatcher(
        verifier=WebhookVerifier(SecretStore(kv)),
        twitch=twitch,
        gateway=gateway,
        subscriptions=SubscriptionRegistry(kv),
        server_configs=ServerConfigStore(kv),
        active_streams=ActiveStreamTracker(kv),
        notifications=DeliveredNotificationLedger(kv),
    )
