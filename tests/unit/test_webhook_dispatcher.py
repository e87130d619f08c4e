from __future__ import annotations

import logging
import threading

from room_access_orchestrator.common.errors import TransportError
from room_access_orchestrator.domain.enums import WebhookEvent
from room_access_orchestrator.services.dispatcher import WebhookDispatcher
from room_access_orchestrator.transport.client import TransportResult


class _FakeTransport:
    def __init__(self, result: TransportResult | None = None) -> None:
        self.result = result or TransportResult(status_code=200, body='{"ok": true}')
        self.calls: list[tuple[str, dict]] = []
        self._lock = threading.Lock()

    def send(self, endpoint, payload, *, bearer_token=None, timeout_sec=None):
        with self._lock:
            self.calls.append((endpoint, dict(payload)))
        return self.result


def test_notify_maps_event_to_endpoint_and_builds_payload() -> None:
    transport = _FakeTransport()
    dispatcher = WebhookDispatcher(transport, max_workers=2)
    try:
        fut = dispatcher.notify(
            WebhookEvent.user_joined,
            "abc-defg",
            {"userJid": "u1@meet.jitsi/res", "userName": "Ann", "isModerator": False},
        )
        assert fut is not None
        fut.result(timeout=5)
    finally:
        dispatcher.shutdown()

    endpoint, payload = transport.calls[0]
    assert endpoint == "/user-joined"
    assert payload["roomName"] == "abc-defg"
    assert payload["userJid"] == "u1@meet.jitsi/res"
    assert payload["isModerator"] is False
    assert isinstance(payload["timestamp"], int)


def test_recording_status_goes_to_recording_endpoint() -> None:
    transport = _FakeTransport()
    dispatcher = WebhookDispatcher(transport, max_workers=1)
    try:
        dispatcher.notify(
            WebhookEvent.recording_status, "abc", {"status": "started", "sessionId": "s1"}
        ).result(timeout=5)
    finally:
        dispatcher.shutdown()
    assert transport.calls[0][0] == "/recording"


def test_on_response_called_only_on_success() -> None:
    ok_transport = _FakeTransport()
    dispatcher = WebhookDispatcher(ok_transport, max_workers=1)
    seen: list[TransportResult] = []
    try:
        dispatcher.notify(
            WebhookEvent.room_created, "abc", {"roomJid": "abc@conf"}, on_response=seen.append
        ).result(timeout=5)
    finally:
        dispatcher.shutdown()
    assert len(seen) == 1

    failing = _FakeTransport(
        TransportResult(status_code=None, error=TransportError("refused"))
    )
    dispatcher = WebhookDispatcher(failing, max_workers=1)
    seen = []
    try:
        result = dispatcher.notify(
            WebhookEvent.room_created, "abc", None, on_response=seen.append
        ).result(timeout=5)
    finally:
        dispatcher.shutdown()
    assert result.ok is False
    assert seen == []


def test_callback_exception_is_logged_not_raised(caplog) -> None:
    dispatcher = WebhookDispatcher(_FakeTransport(), max_workers=1)

    def boom(_result):
        raise RuntimeError("bad snapshot handler")

    caplog.set_level(logging.INFO, logger="room-access-orchestrator")
    try:
        result = dispatcher.notify(
            WebhookEvent.room_created, "abc", None, on_response=boom
        ).result(timeout=5)
    finally:
        dispatcher.shutdown()

    assert result.ok is True
    assert any(r.msg == "webhook_response_handler_failed" for r in caplog.records)


def test_notify_after_shutdown_is_dropped() -> None:
    transport = _FakeTransport()
    dispatcher = WebhookDispatcher(transport, max_workers=1)
    dispatcher.shutdown()

    assert dispatcher.notify(WebhookEvent.user_left, "abc", {"userJid": "u1"}) is None
    assert transport.calls == []


def test_invalid_payload_is_not_sent() -> None:
    transport = _FakeTransport()
    dispatcher = WebhookDispatcher(transport, max_workers=1)
    try:
        # userJid обязателен для user-joined
        assert dispatcher.notify(WebhookEvent.user_joined, "abc", {}) is None
    finally:
        dispatcher.shutdown()
    assert transport.calls == []
