"""Tests for the in-memory key-value engine."""

from live_notify.storage.kv import KVEntry, MemoryKV


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


async def test_get_missing_key_returns_empty_entry(kv: MemoryKV):
    entry = await kv.get(("a", "b"))
    assert entry.value is None
    assert entry.versionstamp is None
    assert not entry.exists


async def test_set_then_get(kv: MemoryKV):
    await kv.set(("a", "b"), {"x": 1})
    entry = await kv.get(("a", "b"))
    assert entry.value == {"x": 1}
    assert entry.exists


async def test_values_are_copied(kv: MemoryKV):
    """Mutating a read value does not change the stored one."""
    await kv.set(("k",), ["one"])
    entry = await kv.get(("k",))
    entry.value.append("two")
    assert (await kv.get(("k",))).value == ["one"]


async def test_set_if_absent_only_first_writer_wins(kv: MemoryKV):
    assert await kv.set_if_absent(("mark",), True) is True
    assert await kv.set_if_absent(("mark",), True) is False


async def test_delete(kv: MemoryKV):
    await kv.set(("k",), 1)
    await kv.delete(("k",))
    assert not (await kv.get(("k",))).exists


async def test_list_prefix_is_ordered_and_excludes_other_namespaces(kv: MemoryKV):
    await kv.set(("ns", "b"), 2)
    await kv.set(("ns", "a"), 1)
    await kv.set(("other", "a"), 3)
    await kv.set(("ns",), 0)  # The prefix key itself is not a child

    entries = await kv.list(("ns",))
    assert [e.key for e in entries] == [("ns", "a"), ("ns", "b")]


async def test_list_empty_prefix_returns_everything(kv: MemoryKV):
    await kv.set(("a", "1"), 1)
    await kv.set(("b", "1"), 2)
    assert len(await kv.list(())) == 2


async def test_atomic_commit_applies_all_mutations(kv: MemoryKV):
    await kv.set(("a",), 1)
    ok = await kv.atomic().set(("b",), 2).delete(("a",)).commit()
    assert ok is True
    assert not (await kv.get(("a",))).exists
    assert (await kv.get(("b",))).value == 2


async def test_atomic_check_fails_on_stale_versionstamp(kv: MemoryKV):
    await kv.set(("a",), 1)
    stale = await kv.get(("a",))
    await kv.set(("a",), 2)

    ok = await kv.atomic().check(stale).set(("a",), 3).set(("b",), 1).commit()

    assert ok is False
    assert (await kv.get(("a",))).value == 2
    assert not (await kv.get(("b",))).exists


async def test_atomic_check_absent_entry(kv: MemoryKV):
    """Checking an entry without a versionstamp asserts the key is absent."""
    assert await kv.atomic().check(KVEntry(("a",))).set(("a",), 1).commit() is True
    assert await kv.atomic().check(KVEntry(("a",))).set(("a",), 2).commit() is False


async def test_versionstamp_increases_on_every_write(kv: MemoryKV):
    await kv.set(("a",), 1)
    first = (await kv.get(("a",))).versionstamp
    await kv.set(("a",), 1)
    second = (await kv.get(("a",))).versionstamp
    assert second > first


async def test_expired_entries_are_invisible():
    clock = FakeClock()
    kv = MemoryKV(clock=clock)
    await kv.set(("x",), True, expire_in=60)

    clock.now += 59
    assert (await kv.get(("x",))).value is True

    clock.now += 1
    assert not (await kv.get(("x",))).exists
    assert await kv.list(()) == []


async def test_set_if_absent_succeeds_after_expiry():
    clock = FakeClock()
    kv = MemoryKV(clock=clock)
    assert await kv.set_if_absent(("x",), True, expire_in=10)
    clock.now += 11
    assert await kv.set_if_absent(("x",), True, expire_in=10)
