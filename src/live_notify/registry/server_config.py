"""Per-server delivery target and title rules."""

from live_notify.models.guild import ServerNotifyConfig
from live_notify.storage.kv import KVStore

KEY_PREFIX = "server_config"


class ServerConfigStore:
    def __init__(self, kv: KVStore) -> None:
        self._kv = kv

    async def get(self, server_id: str) -> ServerNotifyConfig | None:
        """Return the server's config, or None when no delivery target is configured."""
        entry = await self._kv.get((KEY_PREFIX, server_id))
        if entry.value is None:
            return None
        return ServerNotifyConfig.model_validate(entry.value)

    async def set(self, server_id: str, config: ServerNotifyConfig) -> None:
        """Overwrite the server's config. Prior rules are not preserved."""
        await self._kv.set((KEY_PREFIX, server_id), config.model_dump())
