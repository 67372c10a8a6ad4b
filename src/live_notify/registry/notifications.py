"""Delivered-notification ledger: (broadcaster, server) -> posted message.

One entry per pair. A second announced session for the same pair overwrites
the first entry, so only the newest message gets the end marker.
"""

import logging

from live_notify.models.guild import DeliveredNotification
from live_notify.storage.kv import KVStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "notification"


class DeliveredNotificationLedger:
    def __init__(self, kv: KVStore) -> None:
        self._kv = kv

    async def get(self, broadcaster_id: str, server_id: str) -> DeliveredNotification | None:
        entry = await self._kv.get((KEY_PREFIX, broadcaster_id, server_id))
        if entry.value is None:
            return None
        return DeliveredNotification.model_validate(entry.value)

    async def save(self, notification: DeliveredNotification) -> None:
        key = (KEY_PREFIX, notification.broadcaster_id, notification.server_id)
        previous = await self._kv.get(key)
        if previous.exists:
            logger.warning(
                "Overwriting delivered notification %s for broadcaster %s in server %s",
                previous.value.get("message_id"),
                notification.broadcaster_id,
                notification.server_id,
            )
        await self._kv.set(key, notification.model_dump())

    async def delete(self, broadcaster_id: str, server_id: str) -> None:
        await self._kv.delete((KEY_PREFIX, broadcaster_id, server_id))
