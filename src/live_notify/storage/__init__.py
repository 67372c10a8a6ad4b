"""Key-value storage engines shared by every ledger and registry."""

from live_notify.storage.client import get_kv, reset_kv
from live_notify.storage.kv import AtomicOperation, Key, KVEntry, KVStore, MemoryKV
from live_notify.storage.sqlite import SQLiteKV

__all__ = [
    "AtomicOperation",
    "KVEntry",
    "KVStore",
    "Key",
    "MemoryKV",
    "SQLiteKV",
    "get_kv",
    "reset_kv",
]
