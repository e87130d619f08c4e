from __future__ import annotations

import json
import threading
import time

from room_access_orchestrator.common.config import OrchestratorConfig
from room_access_orchestrator.connectors.mock import RecordingRoomHostConnector
from room_access_orchestrator.domain.enums import AccessReason
from room_access_orchestrator.services.access_validator import JoinContext
from room_access_orchestrator.services.orchestrator import build_orchestrator
from room_access_orchestrator.transport.client import TransportResult

# 1 "минута" сценария = 1 секунда реального времени
_TIME_SCALE = 1 / 60


class _BackendStub:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict, float]] = []
        self._lock = threading.Lock()

    def send(self, endpoint, payload, *, bearer_token=None, timeout_sec=None):
        with self._lock:
            self.calls.append((endpoint, dict(payload), time.monotonic()))
        if endpoint == "/room-created":
            return TransportResult(
                status_code=200,
                body=json.dumps(
                    {"meetingId": "m-abc", "isPublic": True, "maxDurationMinutes": 1}
                ),
            )
        if endpoint == "/validate-access":
            return TransportResult(status_code=200, body=json.dumps({"allowed": True}))
        return TransportResult(status_code=200, body="{}")

    def close(self) -> None:
        return None

    def events(self, endpoint: str) -> list[tuple[dict, float]]:
        with self._lock:
            return [(p, ts) for e, p, ts in self.calls if e == endpoint]


def _scaled_timer(interval, fn) -> threading.Timer:
    t = threading.Timer(interval * _TIME_SCALE, fn)
    t.daemon = True
    return t


def _wait_for(predicate, timeout: float) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


def test_public_room_is_destroyed_when_duration_limit_reached() -> None:
    backend = _BackendStub()
    connector = RecordingRoomHostConnector()
    orch = build_orchestrator(
        OrchestratorConfig(webhook_base_url="http://backend.local"),
        transport=backend,
        connector=connector,
        timer_factory=_scaled_timer,
    )
    try:
        room = orch.on_room_created("abc-defg", room_jid="abc-defg@conference.meet.jitsi")
        assert _wait_for(lambda: room.timer_armed, timeout=2)
        armed_at = time.monotonic()

        first = orch.on_pre_join(JoinContext(room_name="abc-defg", user_jid="u1@meet.jitsi"))
        assert first.allowed is True
        orch.on_occupant_joined("abc-defg", user_jid="u1@meet.jitsi")

        assert _wait_for(lambda: backend.events("/room-destroyed"), timeout=3)
        destroyed_at = backend.events("/room-destroyed")[0][1]
        # 1 "минута" ±1 "секунда" сценария
        assert abs((destroyed_at - armed_at) - 1.0) <= 1.0 / 60 + 0.25

        time.sleep(0.2)
        destroyed = backend.events("/room-destroyed")
        assert len(destroyed) == 1
        assert destroyed[0][0]["reason"] == "duration limit reached"
        assert connector.destroyed == [("abc-defg", "duration limit reached")]

        late = orch.on_pre_join(JoinContext(room_name="abc-defg", user_jid="u2@meet.jitsi"))
        assert late.allowed is False
        assert late.reason is AccessReason.room_not_found
        assert len(backend.events("/validate-access")) == 1
    finally:
        orch.shutdown()


def test_room_destroyed_by_host_before_limit_never_fires() -> None:
    backend = _BackendStub()
    connector = RecordingRoomHostConnector()
    orch = build_orchestrator(
        OrchestratorConfig(webhook_base_url="http://backend.local"),
        transport=backend,
        connector=connector,
        timer_factory=_scaled_timer,
    )
    try:
        room = orch.on_room_created("abc-defg")
        assert _wait_for(lambda: room.timer_armed, timeout=2)

        orch.on_room_destroyed("abc-defg", reason="last participant left")
        time.sleep(1.5)

        destroyed = backend.events("/room-destroyed")
        assert len(destroyed) == 1
        assert destroyed[0][0]["reason"] == "last participant left"
        assert connector.destroyed == []
    finally:
        orch.shutdown()
