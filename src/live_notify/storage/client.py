"""Process-wide storage engine singleton.

Follows the lazy-init pattern used by the outbound clients: the engine is
chosen from settings on first use and cached for the life of the process.
"""

from live_notify.config import get_settings
from live_notify.storage.kv import KVStore, MemoryKV
from live_notify.storage.sqlite import SQLiteKV

_kv: KVStore | None = None


async def get_kv() -> KVStore:
    """Return the cached storage engine.

    Uses SQLite when ``kv_path`` is configured, otherwise an in-memory engine.
    """
    global _kv
    if _kv is None:
        settings = get_settings()
        _kv = SQLiteKV(settings.kv_path) if settings.kv_path else MemoryKV()
    return _kv


def reset_kv() -> None:
    """Reset the cached engine. Used for testing."""
    global _kv
    _kv = None
