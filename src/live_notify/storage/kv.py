"""Key-value engine contract and the in-memory engine.

Keys are tuples of strings, ordered and prefix-scanned element-wise. Every
mutation goes through an atomic operation: a list of versionstamp checks plus
a list of sets/deletes that are applied together or not at all. A check
against an entry whose versionstamp is ``None`` asserts the key is absent,
which is how ``set_if_absent`` gets native compare-and-set semantics.
"""

from __future__ import annotations

import copy
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

Key = tuple[str, ...]

# (operation, key, value, expire_in seconds)
Mutation = tuple[str, Key, Any, float | None]


@dataclass(frozen=True)
class KVEntry:
    """A read result. ``value`` and ``versionstamp`` are None when the key is absent."""

    key: Key
    value: Any = None
    versionstamp: int | None = None

    @property
    def exists(self) -> bool:
        return self.versionstamp is not None


class KVStore(Protocol):
    """Operations every storage engine provides."""

    async def get(self, key: Key) -> KVEntry:
        ...

    async def set(self, key: Key, value: Any, *, expire_in: float | None = None) -> None:
        ...

    async def set_if_absent(
        self, key: Key, value: Any, *, expire_in: float | None = None
    ) -> bool:
        ...

    async def delete(self, key: Key) -> None:
        ...

    async def list(self, prefix: Key = ()) -> list[KVEntry]:
        ...

    def atomic(self) -> "AtomicOperation":
        ...


class AtomicOperation:
    """Builder for an all-or-nothing multi-key transaction."""

    def __init__(self, store: "BaseKV") -> None:
        self._store = store
        self._checks: list[KVEntry] = []
        self._mutations: list[Mutation] = []

    def check(self, *entries: KVEntry) -> "AtomicOperation":
        """Fail the commit unless each key still has the entry's versionstamp."""
        self._checks.extend(entries)
        return self

    def set(self, key: Key, value: Any, *, expire_in: float | None = None) -> "AtomicOperation":
        self._mutations.append(("set", key, value, expire_in))
        return self

    def delete(self, key: Key) -> "AtomicOperation":
        self._mutations.append(("delete", key, None, None))
        return self

    async def commit(self) -> bool:
        """Apply every mutation if every check holds. Returns False on a failed check."""
        return await self._store._commit(self._checks, self._mutations)


class BaseKV:
    """Single-key operations expressed as atomic operations.

    Engines implement ``get``, ``list`` and ``_commit``.
    """

    async def get(self, key: Key) -> KVEntry:
        raise NotImplementedError

    async def list(self, prefix: Key = ()) -> list[KVEntry]:
        raise NotImplementedError

    async def _commit(self, checks: list[KVEntry], mutations: list[Mutation]) -> bool:
        raise NotImplementedError

    def atomic(self) -> AtomicOperation:
        return AtomicOperation(self)

    async def set(self, key: Key, value: Any, *, expire_in: float | None = None) -> None:
        await self.atomic().set(key, value, expire_in=expire_in).commit()

    async def set_if_absent(
        self, key: Key, value: Any, *, expire_in: float | None = None
    ) -> bool:
        """Write ``value`` only when ``key`` is absent. Returns True if this call wrote it."""
        return await (
            self.atomic().check(KVEntry(key)).set(key, value, expire_in=expire_in).commit()
        )

    async def delete(self, key: Key) -> None:
        await self.atomic().delete(key).commit()


@dataclass
class _Record:
    value: Any
    versionstamp: int
    expires_at: float | None


class MemoryKV(BaseKV):
    """Process-local engine. State is lost on restart.

    ``_commit`` never awaits between checking and applying, so a commit is
    atomic with respect to every other task on the event loop.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._data: dict[Key, _Record] = {}
        self._version = 0
        self._clock = clock

    def _live(self, key: Key) -> _Record | None:
        record = self._data.get(key)
        if record is None:
            return None
        if record.expires_at is not None and record.expires_at <= self._clock():
            del self._data[key]
            return None
        return record

    async def get(self, key: Key) -> KVEntry:
        record = self._live(tuple(key))
        if record is None:
            return KVEntry(tuple(key))
        return KVEntry(tuple(key), copy.deepcopy(record.value), record.versionstamp)

    async def list(self, prefix: Key = ()) -> list[KVEntry]:
        prefix = tuple(prefix)
        entries = []
        for key in sorted(self._data):
            if len(key) <= len(prefix) or key[: len(prefix)] != prefix:
                continue
            record = self._live(key)
            if record is not None:
                entries.append(KVEntry(key, copy.deepcopy(record.value), record.versionstamp))
        return entries

    async def _commit(self, checks: list[KVEntry], mutations: list[Mutation]) -> bool:
        for entry in checks:
            record = self._live(tuple(entry.key))
            current = record.versionstamp if record else None
            if current != entry.versionstamp:
                return False

        self._version += 1
        now = self._clock()
        for op, key, value, expire_in in mutations:
            key = tuple(key)
            if op == "set":
                expires_at = now + expire_in if expire_in is not None else None
                self._data[key] = _Record(copy.deepcopy(value), self._version, expires_at)
            else:
                self._data.pop(key, None)
        return True
