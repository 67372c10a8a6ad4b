"""Administrative whole-store operations."""

from typing import Any

from live_notify.errors import StorageFailure
from live_notify.registry.signing_secrets import KEY_PREFIX as SECRET_PREFIX
from live_notify.storage.kv import KVStore

_MAX_ATTEMPTS = 8


async def dump_all(kv: KVStore) -> dict[str, list[dict[str, Any]]]:
    """Return every entry grouped by namespace (first key element).

    Signing secrets are redacted.
    """
    grouped: dict[str, list[dict[str, Any]]] = {}
    for entry in await kv.list(()):
        value = "***" if entry.key[0] == SECRET_PREFIX else entry.value
        grouped.setdefault(entry.key[0], []).append({"key": list(entry.key), "value": value})
    return grouped


async def clear_all(kv: KVStore) -> int:
    """Delete every entry in a single atomic transaction.

    Each read entry is checked by versionstamp, so a registration that lands
    between the scan and the commit fails the transaction and the scan is
    retried. Returns the number of entries deleted.
    """
    for _ in range(_MAX_ATTEMPTS):
        entries = await kv.list(())
        if not entries:
            return 0
        op = kv.atomic().check(*entries)
        for entry in entries:
            op = op.delete(entry.key)
        if await op.commit():
            return len(entries)
    raise StorageFailure("Could not clear the store: concurrent writes kept invalidating the scan")
