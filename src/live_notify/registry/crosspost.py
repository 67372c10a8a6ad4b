"""Cross-post dedup ledger: time-bounded per-session marks.

Marks expire on their own after the TTL and are never deleted explicitly,
except to release a claim whose post failed.
"""

from live_notify.storage.kv import KVStore

KEY_PREFIX = "x_posted_history"

DEFAULT_TTL_SECONDS = 6 * 60 * 60


class CrossPostLedger:
    def __init__(self, kv: KVStore, ttl_seconds: float = DEFAULT_TTL_SECONDS) -> None:
        self._kv = kv
        self._ttl_seconds = ttl_seconds

    async def is_posted(self, session_id: str) -> bool:
        entry = await self._kv.get((KEY_PREFIX, session_id))
        return bool(entry.value)

    async def claim(self, session_id: str) -> bool:
        """Record the session as posted. Returns False if it already was."""
        return await self._kv.set_if_absent(
            (KEY_PREFIX, session_id), True, expire_in=self._ttl_seconds
        )

    async def release(self, session_id: str) -> None:
        await self._kv.delete((KEY_PREFIX, session_id))
