"""Tests for backend selection and shutdown of the messaging gateway singleton."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from live_notify.messaging.client import close_gateway, get_messaging_gateway
from live_notify.messaging.discord import DiscordGateway
from live_notify.messaging.slack import SlackGateway


@pytest.fixture()
def mock_settings():
    with patch("live_notify.messaging.client.get_settings") as m:
        m.return_value.discord_bot_token = "token"
        m.return_value.discord_api_url = "https://discord.test/api"
        m.return_value.slack_bot_token = "xoxb-test"
        m.return_value.http_timeout_seconds = 5.0
        yield m.return_value


async def test_discord_backend(mock_settings):
    mock_settings.messaging_backend = "discord"
    mock_settings.end_marker = "\U0001f51a"

    gateway = await get_messaging_gateway()

    assert isinstance(gateway, DiscordGateway)
    assert gateway.end_marker == "\U0001f51a"
    assert await get_messaging_gateway() is gateway


async def test_slack_backend(mock_settings):
    mock_settings.messaging_backend = "Slack"
    mock_settings.end_marker = ":checkered_flag:"

    gateway = await get_messaging_gateway()

    assert isinstance(gateway, SlackGateway)
    assert gateway.end_marker == "checkered_flag"


async def test_unknown_backend(mock_settings):
    mock_settings.messaging_backend = "irc"
    with pytest.raises(ValueError, match="irc"):
        await get_messaging_gateway()


async def test_close_gateway_releases_http_client(mock_settings):
    mock_settings.messaging_backend = "discord"
    mock_settings.end_marker = "\U0001f51a"
    gateway = await get_messaging_gateway()

    await close_gateway()

    assert gateway._http.is_closed
    assert await get_messaging_gateway() is not gateway


async def test_close_gateway_without_gateway_is_noop():
    await close_gateway()


async def test_slack_aclose_closes_open_session():
    client = AsyncMock()
    client.session = MagicMock(closed=False)
    client.session.close = AsyncMock()

    await SlackGateway(client=client).aclose()

    client.session.close.assert_awaited_once()


async def test_slack_aclose_without_session():
    client = AsyncMock()
    client.session = None
    await SlackGateway(client=client).aclose()
