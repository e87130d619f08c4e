from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from room_access_orchestrator.common.config import get_settings
from room_access_orchestrator.common.errors import UnauthorizedError
from room_access_orchestrator.common.security import require_auth

jwt = pytest.importorskip("jwt")


@pytest.fixture()
def auth_settings():
    s = get_settings()
    keys = [
        "app_env",
        "auth_mode",
        "api_keys",
        "service_api_keys",
        "allow_service_api_key_in_jwt_mode",
        "jwt_shared_secret",
        "jwt_algorithms",
        "jwt_audience",
        "jwt_issuer",
        "jwt_clock_skew_sec",
    ]
    snapshot = {k: getattr(s, k) for k in keys}
    try:
        yield s
    finally:
        for k, v in snapshot.items():
            setattr(s, k, v)


def _build_hs256_token(*, secret: str, sub: str = "prosody-1", aud: str = "room-gateway") -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": "https://issuer.local",
        "aud": aud,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=5)).timestamp()),
    }
    return str(jwt.encode(payload, secret, algorithm="HS256"))


def test_auth_none_mode_allows_request(auth_settings) -> None:
    auth_settings.app_env = "dev"
    auth_settings.auth_mode = "none"
    ctx = require_auth(authorization=None, x_api_key=None)
    assert ctx.auth_type == "none"


def test_auth_none_mode_rejected_in_prod(auth_settings) -> None:
    auth_settings.app_env = "prod"
    auth_settings.auth_mode = "none"
    with pytest.raises(UnauthorizedError):
        require_auth(authorization=None, x_api_key=None)


def test_auth_api_key_mode_rejects_invalid_key(auth_settings) -> None:
    auth_settings.auth_mode = "api_key"
    auth_settings.api_keys = "k1,k2"
    with pytest.raises(UnauthorizedError):
        require_auth(authorization=None, x_api_key="bad")


def test_auth_api_key_mode_accepts_valid_key(auth_settings) -> None:
    auth_settings.auth_mode = "api_key"
    auth_settings.api_keys = "k1,k2"
    ctx = require_auth(authorization=None, x_api_key="k2")
    assert ctx.auth_type == "user_api_key"
    assert ctx.subject == "host"


def test_auth_api_key_mode_marks_service_key(auth_settings) -> None:
    auth_settings.auth_mode = "api_key"
    auth_settings.api_keys = "k1"
    auth_settings.service_api_keys = "svc-1"
    ctx = require_auth(authorization=None, x_api_key="svc-1")
    assert ctx.auth_type == "service_api_key"


def test_auth_jwt_mode_validates_bearer_token(auth_settings) -> None:
    auth_settings.auth_mode = "jwt"
    auth_settings.jwt_shared_secret = "test-secret"
    auth_settings.jwt_algorithms = "HS256"
    auth_settings.jwt_issuer = "https://issuer.local"
    auth_settings.jwt_audience = "room-gateway"

    token = _build_hs256_token(secret="test-secret", sub="prosody-meet")
    ctx = require_auth(authorization=f"Bearer {token}", x_api_key=None)

    assert ctx.auth_type == "jwt"
    assert ctx.subject == "prosody-meet"
    assert isinstance(ctx.claims, dict)


def test_auth_jwt_mode_rejects_wrong_audience(auth_settings) -> None:
    auth_settings.auth_mode = "jwt"
    auth_settings.jwt_shared_secret = "test-secret"
    auth_settings.jwt_algorithms = "HS256"
    auth_settings.jwt_issuer = None
    auth_settings.jwt_audience = "room-gateway"

    token = _build_hs256_token(secret="test-secret", aud="someone-else")
    with pytest.raises(UnauthorizedError):
        require_auth(authorization=f"Bearer {token}", x_api_key=None)


def test_auth_jwt_mode_allows_service_key_fallback(auth_settings) -> None:
    auth_settings.auth_mode = "jwt"
    auth_settings.allow_service_api_key_in_jwt_mode = True
    auth_settings.service_api_keys = "svc-1"

    ctx = require_auth(authorization=None, x_api_key="svc-1")
    assert ctx.auth_type == "service_api_key"


def test_auth_jwt_mode_rejects_user_api_key_in_fallback(auth_settings) -> None:
    auth_settings.auth_mode = "jwt"
    auth_settings.allow_service_api_key_in_jwt_mode = True
    auth_settings.api_keys = "user-1"
    auth_settings.service_api_keys = "svc-1"

    with pytest.raises(UnauthorizedError):
        require_auth(authorization=None, x_api_key="user-1")
