"""Tests for the process-wide storage engine singleton."""

import asyncio
import time
from unittest.mock import patch

import httpx

from live_notify.app import app
from live_notify.storage.client import get_kv
from live_notify.storage.kv import MemoryKV
from live_notify.storage.sqlite import SQLiteKV

ADMIN = {"X-Admin-Secret": "admin-secret"}


async def test_memory_engine_by_default():
    with patch("live_notify.storage.client.get_settings") as mock_settings:
        mock_settings.return_value.kv_path = ""
        assert isinstance(await get_kv(), MemoryKV)


async def test_sqlite_engine_when_path_configured(tmp_path):
    with patch("live_notify.storage.client.get_settings") as mock_settings:
        mock_settings.return_value.kv_path = str(tmp_path / "kv.db")
        assert isinstance(await get_kv(), SQLiteKV)


async def test_concurrent_first_use_builds_one_engine():
    with patch("live_notify.storage.client.get_settings") as mock_settings:
        mock_settings.return_value.kv_path = ""
        engines = await asyncio.gather(*(get_kv() for _ in range(4)))
    assert len({id(engine) for engine in engines}) == 1


async def test_concurrent_first_requests_share_one_engine():
    """Requests resolving the engine dependency at the same time see one store."""
    built = []

    class SlowMemoryKV(MemoryKV):
        def __init__(self) -> None:
            time.sleep(0.05)
            super().__init__()
            built.append(self)

    transport = httpx.ASGITransport(app=app)
    with (
        patch("live_notify.storage.client.get_settings") as storage_settings,
        patch("live_notify.storage.client.MemoryKV", SlowMemoryKV),
        patch("live_notify.admin.router.get_settings") as admin_settings,
    ):
        storage_settings.return_value.kv_path = ""
        admin_settings.return_value.admin_secret = "admin-secret"
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            responses = await asyncio.gather(
                *(client.get("/admin/kv", headers=ADMIN) for _ in range(4))
            )

    assert [response.status_code for response in responses] == [200] * 4
    assert len(built) == 1
