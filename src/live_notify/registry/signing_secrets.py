"""Per-broadcaster webhook signing secrets."""

import secrets

from live_notify.storage.kv import KVStore

KEY_PREFIX = "signing_secret"


class SecretStore:
    """Credential store for EventSub signing secrets. Secrets are never rotated automatically."""

    def __init__(self, kv: KVStore) -> None:
        self._kv = kv

    async def get(self, broadcaster_id: str) -> str | None:
        entry = await self._kv.get((KEY_PREFIX, broadcaster_id))
        return entry.value

    async def set(self, broadcaster_id: str, secret: str) -> None:
        await self._kv.set((KEY_PREFIX, broadcaster_id), secret)

    async def ensure(self, broadcaster_id: str) -> tuple[str, bool]:
        """Return the broadcaster's secret, generating one if none exists.

        Returns:
            (secret, created) where ``created`` is True only for the caller that
            stored a new secret.
        """
        candidate = secrets.token_hex(32)
        if await self._kv.set_if_absent((KEY_PREFIX, broadcaster_id), candidate):
            return candidate, True
        return await self.get(broadcaster_id) or "", False

    async def delete(self, broadcaster_id: str) -> None:
        await self._kv.delete((KEY_PREFIX, broadcaster_id))
