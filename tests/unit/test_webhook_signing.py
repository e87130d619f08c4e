from __future__ import annotations

import hashlib
import hmac

from room_access_orchestrator.transport.signing import (
    canonical_json,
    sign_payload,
    verify_signature,
)


def test_canonical_json_sorts_keys_and_drops_none() -> None:
    body = canonical_json({"roomName": "abc", "meetingId": None, "a": {"z": 1, "b": None}})
    assert body == b'{"a":{"z":1},"roomName":"abc"}'


def test_canonical_json_keeps_unicode() -> None:
    body = canonical_json({"userName": "Анна"})
    assert body.decode("utf-8") == '{"userName":"Анна"}'


def test_sign_payload_is_hmac_sha256_hex() -> None:
    body = b'{"roomName":"abc-defg","timestamp":1700000000}'
    expected = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
    assert sign_payload(body, "s3cret") == f"sha256={expected}"


def test_verify_signature_accepts_own_signature_only() -> None:
    body = canonical_json({"roomName": "abc-defg"})
    header = sign_payload(body, "s3cret")

    assert verify_signature(body, "s3cret", header) is True
    assert verify_signature(body, "other", header) is False
    assert verify_signature(body + b" ", "s3cret", header) is False
    assert verify_signature(body, "s3cret", None) is False
    assert verify_signature(body, "", header) is False
