"""SQLite-backed key-value engine.

Persists entries across restarts. Each commit runs inside a ``BEGIN
IMMEDIATE`` transaction so checks and writes are atomic even with several
processes sharing one database file. Blocking sqlite calls run in a worker
thread with a fresh connection per call.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import time
from collections.abc import Callable

from live_notify.storage.kv import BaseKV, Key, KVEntry, Mutation


def _encode_key(key: Key) -> str:
    return json.dumps(list(key), ensure_ascii=False)


def _prefix_pattern(prefix: Key) -> str:
    # '["a", "b"]' -> '["a", "b", ' matches strict children only
    return _encode_key(prefix)[:-1] + ", "


class SQLiteKV(BaseKV):
    """Thin SQLite wrapper that satisfies the KVStore contract."""

    def __init__(self, db_path: str, clock: Callable[[], float] = time.time) -> None:
        self._db_path = db_path
        self._clock = clock
        self.init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - kv: JSON-encoded key, JSON value, versionstamp, optional expiry
        - kv_meta: single-row monotonic versionstamp counter
        """
        conn = self._connect()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    versionstamp INTEGER NOT NULL,
                    expires_at REAL
                )
                """
            )
            conn.execute(
                "CREATE TABLE IF NOT EXISTS kv_meta (id INTEGER PRIMARY KEY, version INTEGER NOT NULL)"
            )
            conn.execute("INSERT OR IGNORE INTO kv_meta (id, version) VALUES (1, 0)")
        finally:
            conn.close()

    async def get(self, key: Key) -> KVEntry:
        return await asyncio.to_thread(self._get, tuple(key))

    async def list(self, prefix: Key = ()) -> list[KVEntry]:
        return await asyncio.to_thread(self._list, tuple(prefix))

    async def _commit(self, checks: list[KVEntry], mutations: list[Mutation]) -> bool:
        return await asyncio.to_thread(self._commit_sync, list(checks), list(mutations))

    def _get(self, key: Key) -> KVEntry:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT value, versionstamp FROM kv WHERE key = ? "
                "AND (expires_at IS NULL OR expires_at > ?)",
                (_encode_key(key), self._clock()),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return KVEntry(key)
        return KVEntry(key, json.loads(row["value"]), row["versionstamp"])

    def _list(self, prefix: Key) -> list[KVEntry]:
        conn = self._connect()
        try:
            if prefix:
                pattern = _prefix_pattern(prefix)
                rows = conn.execute(
                    "SELECT key, value, versionstamp FROM kv "
                    "WHERE substr(key, 1, ?) = ? AND (expires_at IS NULL OR expires_at > ?) "
                    "ORDER BY key",
                    (len(pattern), pattern, self._clock()),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT key, value, versionstamp FROM kv "
                    "WHERE expires_at IS NULL OR expires_at > ? ORDER BY key",
                    (self._clock(),),
                ).fetchall()
        finally:
            conn.close()
        return [
            KVEntry(tuple(json.loads(row["key"])), json.loads(row["value"]), row["versionstamp"])
            for row in rows
        ]

    def _commit_sync(self, checks: list[KVEntry], mutations: list[Mutation]) -> bool:
        now = self._clock()
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                # Drop expired rows first so checks see them as absent
                conn.execute(
                    "DELETE FROM kv WHERE expires_at IS NOT NULL AND expires_at <= ?", (now,)
                )
                for entry in checks:
                    row = conn.execute(
                        "SELECT versionstamp FROM kv WHERE key = ?", (_encode_key(entry.key),)
                    ).fetchone()
                    current = row["versionstamp"] if row else None
                    if current != entry.versionstamp:
                        conn.execute("ROLLBACK")
                        return False

                conn.execute("UPDATE kv_meta SET version = version + 1 WHERE id = 1")
                version = conn.execute("SELECT version FROM kv_meta WHERE id = 1").fetchone()[0]
                for op, key, value, expire_in in mutations:
                    encoded = _encode_key(key)
                    if op == "set":
                        conn.execute(
                            """
                            INSERT INTO kv (key, value, versionstamp, expires_at)
                            VALUES (?, ?, ?, ?)
                            ON CONFLICT(key) DO UPDATE SET
                                value = excluded.value,
                                versionstamp = excluded.versionstamp,
                                expires_at = excluded.expires_at
                            """,
                            (
                                encoded,
                                json.dumps(value, ensure_ascii=False),
                                version,
                                now + expire_in if expire_in is not None else None,
                            ),
                        )
                    else:
                        conn.execute("DELETE FROM kv WHERE key = ?", (encoded,))
                conn.execute("COMMIT")
                return True
            except BaseException:
                conn.execute("ROLLBACK")
                raise
        finally:
            conn.close()
