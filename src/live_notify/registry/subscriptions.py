"""Subscription registry: broadcaster -> set of subscribing chat servers.

Membership changes are optimistic read-modify-write transactions guarded by
the entry's versionstamp, retried when a concurrent registration wins.
"""

import logging

from live_notify.errors import StorageFailure
from live_notify.storage.kv import KVStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "subscriptions"

_MAX_ATTEMPTS = 8


class SubscriptionRegistry:
    def __init__(self, kv: KVStore) -> None:
        self._kv = kv

    async def get_servers(self, broadcaster_id: str) -> list[str]:
        """Return the subscribing server ids for a broadcaster (empty when none)."""
        entry = await self._kv.get((KEY_PREFIX, broadcaster_id))
        return list(entry.value or [])

    async def add(self, broadcaster_id: str, server_id: str) -> bool:
        """Add a server to the broadcaster's set. Idempotent.

        Returns True whether or not the server was already present.
        Raises StorageFailure if contention outlasts the retry budget.
        """
        key = (KEY_PREFIX, broadcaster_id)
        for _ in range(_MAX_ATTEMPTS):
            entry = await self._kv.get(key)
            servers = list(entry.value or [])
            if server_id in servers:
                return True
            servers.append(server_id)
            if await self._kv.atomic().check(entry).set(key, servers).commit():
                logger.info("Subscribed server %s to broadcaster %s", server_id, broadcaster_id)
                return True
        raise StorageFailure(f"Could not add server {server_id} to broadcaster {broadcaster_id}")

    async def remove(self, broadcaster_id: str, server_id: str) -> bool:
        """Remove a server from the broadcaster's set.

        Returns True if the server was removed, False if it was not subscribed.
        The key is deleted once the set becomes empty.
        """
        key = (KEY_PREFIX, broadcaster_id)
        for _ in range(_MAX_ATTEMPTS):
            entry = await self._kv.get(key)
            servers = list(entry.value or [])
            if server_id not in servers:
                return False
            servers.remove(server_id)
            op = self._kv.atomic().check(entry)
            op = op.set(key, servers) if servers else op.delete(key)
            if await op.commit():
                logger.info(
                    "Unsubscribed server %s from broadcaster %s", server_id, broadcaster_id
                )
                return True
        raise StorageFailure(
            f"Could not remove server {server_id} from broadcaster {broadcaster_id}"
        )

    async def list_all(self) -> dict[str, list[str]]:
        """Return every broadcaster's subscriber list."""
        entries = await self._kv.list((KEY_PREFIX,))
        return {entry.key[1]: list(entry.value or []) for entry in entries}
