from __future__ import annotations

import json

import requests

from room_access_orchestrator.connectors.host_http import HttpRoomHostConnector
from room_access_orchestrator.transport.client import WebhookTransport


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

    def post(self, url, *, data, headers, timeout):
        self.calls.append({"url": url, "data": data, "headers": headers})
        if self.exc is not None:
            raise self.exc
        return self.response

    def close(self) -> None:
        pass


def _connector(session: _FakeSession) -> HttpRoomHostConnector:
    return HttpRoomHostConnector(
        WebhookTransport(
            base_url="http://host.local/control",
            secret="s3cret",
            timeout_sec=1.0,
            session=session,
        )
    )


def test_destroy_room_posts_signed_request_with_quoted_name() -> None:
    session = _FakeSession()

    assert _connector(session).destroy_room("team room", "duration limit reached") is True

    call = session.calls[0]
    assert call["url"] == "http://host.local/control/rooms/team%20room/destroy"
    body = json.loads(call["data"])
    assert body["roomName"] == "team room"
    assert body["reason"] == "duration limit reached"
    assert call["headers"]["X-Webhook-Signature"].startswith("sha256=")


def test_apply_room_settings_sends_settings_mapping() -> None:
    session = _FakeSession()

    ok = _connector(session).apply_room_settings("abc", {"membersOnly": True})

    assert ok is True
    assert session.calls[0]["url"].endswith("/rooms/abc/settings")
    assert json.loads(session.calls[0]["data"])["settings"] == {"membersOnly": True}


def test_host_failures_are_reported_as_false() -> None:
    refused = _FakeSession(exc=requests.ConnectionError("refused"))
    rejected = _FakeSession(response=_FakeResponse(status_code=500, text="boom"))

    assert _connector(refused).destroy_room("abc", "x") is False
    assert _connector(rejected).destroy_room("abc", "x") is False
