from __future__ import annotations

import json

import requests

from room_access_orchestrator.common.errors import ProtocolError, TransportError
from room_access_orchestrator.domain.enums import SignatureMode
from room_access_orchestrator.transport.client import TransportResult, WebhookTransport
from room_access_orchestrator.transport.signing import verify_signature


class _FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "{}") -> None:
        self.status_code = status_code
        self.text = text
        self.headers = {"Content-Type": "application/json"}


class _FakeSession:
    def __init__(self, response: _FakeResponse | None = None, exc: Exception | None = None):
        self.response = response or _FakeResponse()
        self.exc = exc
        self.calls: list[dict] = []
        self.closed = False

    def post(self, url, *, data, headers, timeout):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response

    def close(self) -> None:
        self.closed = True


def _transport(session: _FakeSession, **kwargs) -> WebhookTransport:
    params = {
        "base_url": "http://backend.local/webhooks/jitsi/",
        "secret": "s3cret",
        "timeout_sec": 2.5,
        "session": session,
    }
    params.update(kwargs)
    return WebhookTransport(**params)


def test_send_posts_signed_canonical_body() -> None:
    session = _FakeSession()
    result = _transport(session).send("/room-created", {"roomName": "abc", "roomJid": None})

    assert result.ok is True
    assert result.status_code == 200
    call = session.calls[0]
    assert call["url"] == "http://backend.local/webhooks/jitsi/room-created"
    assert call["timeout"] == 2.5
    assert json.loads(call["data"]) == {"roomName": "abc"}
    headers = call["headers"]
    assert headers["Content-Type"] == "application/json"
    assert headers["X-Webhook-Secret"] == "s3cret"
    assert verify_signature(call["data"], "s3cret", headers["X-Webhook-Signature"])
    assert "X-Webhook-Timestamp" in headers
    assert "Authorization" not in headers


def test_send_hmac_mode_omits_legacy_header_and_forwards_bearer() -> None:
    session = _FakeSession()
    _transport(session, signature_mode=SignatureMode.hmac).send(
        "/validate-access", {"roomName": "abc"}, bearer_token="tok-1"
    )
    headers = session.calls[0]["headers"]
    assert "X-Webhook-Secret" not in headers
    assert "X-Webhook-Signature" in headers
    assert headers["Authorization"] == "Bearer tok-1"


def test_send_without_secret_sends_no_signature() -> None:
    session = _FakeSession()
    _transport(session, secret="").send("/user-left", {"roomName": "abc"})
    headers = session.calls[0]["headers"]
    assert "X-Webhook-Signature" not in headers
    assert "X-Webhook-Secret" not in headers


def test_send_timeout_returns_transport_error_value() -> None:
    session = _FakeSession(exc=requests.Timeout("read timed out"))
    result = _transport(session).send("/validate-access", {"roomName": "abc"})

    assert result.ok is False
    assert result.status_code is None
    assert isinstance(result.error, TransportError)
    assert result.error.timeout is True


def test_send_connection_refused_returns_transport_error_value() -> None:
    session = _FakeSession(exc=requests.ConnectionError("refused"))
    result = _transport(session).send("/room-created", {"roomName": "abc"})

    assert isinstance(result.error, TransportError)
    assert result.error.timeout is False


def test_send_non_2xx_returns_protocol_error_and_keeps_body() -> None:
    session = _FakeSession(_FakeResponse(status_code=503, text="maintenance"))
    result = _transport(session).send("/room-created", {"roomName": "abc"})

    assert isinstance(result.error, ProtocolError)
    assert result.error.status_code == 503
    assert result.body == "maintenance"


def test_json_body_parsing() -> None:
    assert TransportResult(status_code=200, body="").json_body() == ({}, None)
    data, err = TransportResult(status_code=200, body=" ").json_body(allow_empty=False)
    assert data is None
    assert isinstance(err, ProtocolError)
    assert err.status_code == 200
    assert TransportResult(status_code=200, body='{"allowed": true}').json_body() == (
        {"allowed": True},
        None,
    )

    data, err = TransportResult(status_code=200, body="<html>").json_body()
    assert data is None
    assert isinstance(err, ProtocolError)

    data, err = TransportResult(status_code=200, body="[1, 2]").json_body()
    assert data is None
    assert isinstance(err, ProtocolError)


def test_close_closes_session() -> None:
    session = _FakeSession()
    _transport(session).close()
    assert session.closed is True
