"""
Подпись исходящих webhook'ов.

Канонический вид тела: JSON UTF-8, ключи отсортированы, без пробелов,
поля со значением None выкидываются. Подпись считается от тех же байт,
что уходят в сеть.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

SIGNATURE_HEADER = "X-Webhook-Signature"
LEGACY_SECRET_HEADER = "X-Webhook-Secret"
TIMESTAMP_HEADER = "X-Webhook-Timestamp"
_SIGNATURE_PREFIX = "sha256="


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(v) for v in value]
    return value


def canonical_json(payload: dict[str, Any]) -> bytes:
    return json.dumps(
        _drop_none(payload),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def sign_payload(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{_SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes, secret: str, header_value: str | None) -> bool:
    """
    Проверка подписи (для backend и тестов); сравнение за константное время.
    """
    if not secret or not header_value:
        return False
    return hmac.compare_digest(sign_payload(body, secret), header_value.strip().lower())
