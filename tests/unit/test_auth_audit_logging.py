from __future__ import annotations

import logging

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from apps.api_gateway.deps import auth_dep
from room_access_orchestrator.common.config import get_settings


def _make_request(*, path: str, method: str = "GET") -> Request:
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": b"",
        "headers": [],
        "client": ("127.0.0.1", 12345),
        "server": ("testserver", 80),
    }
    return Request(scope)


@pytest.fixture()
def auth_settings():
    s = get_settings()
    keys = [
        "auth_mode",
        "api_keys",
        "service_api_keys",
        "allow_service_api_key_in_jwt_mode",
    ]
    snapshot = {k: getattr(s, k) for k in keys}
    try:
        yield s
    finally:
        for k, v in snapshot.items():
            setattr(s, k, v)


def test_auth_dep_logs_allow(caplog, auth_settings) -> None:
    auth_settings.auth_mode = "api_key"
    auth_settings.api_keys = "host-1"

    caplog.set_level(logging.INFO, logger="room-access-orchestrator")
    req = _make_request(path="/v1/rooms/abc-defg/pre-join", method="POST")
    ctx = auth_dep(authorization=None, x_api_key="host-1", request=req)

    assert ctx.auth_type == "user_api_key"
    rec = next(r for r in caplog.records if r.msg == "security_audit_allow")
    assert rec.payload["endpoint"] == "/v1/rooms/abc-defg/pre-join"
    assert rec.payload["method"] == "POST"
    assert rec.payload["reason"] == "auth_ok"
    assert rec.payload["auth_type"] == "user_api_key"


def test_auth_dep_logs_deny_and_raises_401(caplog, auth_settings) -> None:
    auth_settings.auth_mode = "api_key"
    auth_settings.api_keys = "host-1"

    caplog.set_level(logging.INFO, logger="room-access-orchestrator")
    req = _make_request(path="/v1/rooms", method="GET")
    with pytest.raises(HTTPException) as exc:
        auth_dep(authorization=None, x_api_key="wrong", request=req)

    assert exc.value.status_code == 401
    rec = next(r for r in caplog.records if r.msg == "security_audit_deny")
    assert rec.payload["status_code"] == 401
    assert rec.payload["error_code"] == "unauthorized"
    assert rec.payload["client_ip"] == "127.0.0.1"
