"""Tests for app wiring: lifespan, routers, and the error handler."""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from live_notify.app import app


def test_lifespan_loads_settings_and_closes_clients_on_shutdown():
    with (
        patch("live_notify.app.get_settings") as mock_settings,
        patch("live_notify.app.configure_logging") as mock_logging,
        patch("live_notify.app.drain_dispatcher", new_callable=AsyncMock) as mock_drain,
        patch("live_notify.app.close_gateway", new_callable=AsyncMock) as mock_close_gateway,
        patch("live_notify.app.close_client", new_callable=AsyncMock) as mock_close_client,
    ):
        mock_settings.return_value.log_level = "DEBUG"
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            assert app.state.settings is mock_settings.return_value
            mock_drain.assert_not_called()

    mock_logging.assert_called_once_with("DEBUG")
    mock_drain.assert_awaited_once()
    mock_close_gateway.assert_awaited_once()
    mock_close_client.assert_awaited_once()


def test_routers_are_mounted():
    client = TestClient(app)

    assert client.post("/twitch/webhooks", content=b"{}").status_code == 400
    assert client.get("/admin/kv").status_code == 403
    assert client.get("/admin/subscriptions").status_code == 403
    assert client.get("/no-such-route").status_code == 404


def test_taxonomy_errors_render_as_json():
    """A ValidationFailure raised while parsing a webhook becomes a 400 JSON body."""
    response = TestClient(app).post("/twitch/webhooks", content=b"{}")

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request"
    assert "details" in body
