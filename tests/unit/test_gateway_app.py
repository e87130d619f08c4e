from __future__ import annotations

from fastapi.testclient import TestClient

from apps.api_gateway.main import _create_app
from room_access_orchestrator.common.config import get_settings


def test_health_ready_and_metrics() -> None:
    s = get_settings()
    snapshot = (s.app_env, s.auth_mode, s.api_keys, s.webhook_base_url, s.access_fail_policy)
    try:
        s.app_env = "dev"
        s.auth_mode = "api_key"
        s.api_keys = "host-key"
        s.webhook_base_url = "http://meeting-service:2031/webhooks/jitsi"
        s.access_fail_policy = "fail_closed"

        client = TestClient(_create_app())
        assert client.get("/health").json() == {"ok": True}

        ready = client.get("/ready")
        assert ready.status_code == 200
        assert ready.json()["ready"] is True

        metrics = client.get("/metrics")
        assert metrics.status_code == 200
        assert "rooms_active" in metrics.text
        assert "rooms_requests_total" in metrics.text
    finally:
        s.app_env, s.auth_mode, s.api_keys, s.webhook_base_url, s.access_fail_policy = snapshot


def test_ready_reports_503_when_not_ready() -> None:
    s = get_settings()
    snapshot = (s.auth_mode, s.api_keys, s.service_api_keys)
    try:
        s.auth_mode = "api_key"
        s.api_keys = ""
        s.service_api_keys = ""

        client = TestClient(_create_app())
        resp = client.get("/ready")
        assert resp.status_code == 503
        assert "auth_api_keys_empty" in {i["code"] for i in resp.json()["issues"]}
    finally:
        s.auth_mode, s.api_keys, s.service_api_keys = snapshot
