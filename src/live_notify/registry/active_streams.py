"""Active-stream tracker: the dedup gate for announced sessions.

A mark keyed by (broadcaster, session) exists from the first accepted
"started" event until the matching "ended" event. It has no expiry.
"""

from live_notify.errors import StorageFailure
from live_notify.storage.kv import KVStore

KEY_PREFIX = "active_streams"

_MAX_ATTEMPTS = 8


class ActiveStreamTracker:
    def __init__(self, kv: KVStore) -> None:
        self._kv = kv

    async def is_active(self, broadcaster_id: str, session_id: str) -> bool:
        entry = await self._kv.get((KEY_PREFIX, broadcaster_id, session_id))
        return bool(entry.value)

    async def mark_if_absent(self, broadcaster_id: str, session_id: str) -> bool:
        """Set the mark unless it already exists.

        Returns True only for the single caller that created the mark.
        """
        return await self._kv.set_if_absent((KEY_PREFIX, broadcaster_id, session_id), True)

    async def clear(self, broadcaster_id: str, session_id: str) -> None:
        await self._kv.delete((KEY_PREFIX, broadcaster_id, session_id))

    async def clear_broadcaster(self, broadcaster_id: str) -> int:
        """Clear every mark for a broadcaster in one transaction.

        Used when the ended session's id is no longer known. Returns the
        number of marks removed. Raises StorageFailure if concurrent writes
        keep invalidating the scan.
        """
        for _ in range(_MAX_ATTEMPTS):
            entries = await self._kv.list((KEY_PREFIX, broadcaster_id))
            if not entries:
                return 0
            op = self._kv.atomic().check(*entries)
            for entry in entries:
                op = op.delete(entry.key)
            if await op.commit():
                return len(entries)
        raise StorageFailure(f"Could not clear active marks for broadcaster {broadcaster_id}")
