"""Tests for EventSub signature verification and request parsing."""

import hashlib
import hmac
from unittest.mock import AsyncMock

from factories import BROADCASTER_ID, TEST_SECRET

from live_notify.registry.signing_secrets import SecretStore
from live_notify.storage.kv import MemoryKV
from live_notify.twitch.verification import WebhookVerifier, compute_signature

BODY = b'{"a":1}'


def test_compute_signature_matches_hmac_over_id_timestamp_body():
    expected = "sha256=" + hmac.new(
        TEST_SECRET.encode(), b"m1" + b"t1" + BODY, hashlib.sha256
    ).hexdigest()
    assert compute_signature(TEST_SECRET, "m1", "t1", BODY) == expected


async def _verifier(kv: MemoryKV) -> WebhookVerifier:
    await SecretStore(kv).set(BROADCASTER_ID, TEST_SECRET)
    return WebhookVerifier(SecretStore(kv))


async def test_valid_signature_accepted(kv: MemoryKV):
    verifier = await _verifier(kv)
    signature = compute_signature(TEST_SECRET, "m1", "t1", BODY)
    assert await verifier.verify("m1", "t1", signature, BROADCASTER_ID, BODY) is True


async def test_flipped_body_byte_rejected(kv: MemoryKV):
    verifier = await _verifier(kv)
    signature = compute_signature(TEST_SECRET, "m1", "t1", BODY)
    tampered = b'{"a":2}'
    assert await verifier.verify("m1", "t1", signature, BROADCASTER_ID, tampered) is False


async def test_changed_timestamp_rejected(kv: MemoryKV):
    verifier = await _verifier(kv)
    signature = compute_signature(TEST_SECRET, "m1", "t1", BODY)
    assert await verifier.verify("m1", "t2", signature, BROADCASTER_ID, BODY) is False


async def test_unknown_broadcaster_fails_closed(kv: MemoryKV):
    verifier = await _verifier(kv)
    signature = compute_signature(TEST_SECRET, "m1", "t1", BODY)
    assert await verifier.verify("m1", "t1", signature, "B-unknown", BODY) is False


async def test_missing_signature_or_key_rejected(kv: MemoryKV):
    verifier = await _verifier(kv)
    signature = compute_signature(TEST_SECRET, "m1", "t1", BODY)
    assert await verifier.verify("m1", "t1", "", BROADCASTER_ID, BODY) is False
    assert await verifier.verify("m1", "t1", signature, None, BODY) is False


async def test_lookup_fault_maps_to_false():
    secrets = AsyncMock()
    secrets.get.side_effect = RuntimeError("store down")
    verifier = WebhookVerifier(secrets)
    assert await verifier.verify("m1", "t1", "sha256=00", BROADCASTER_ID, BODY) is False
