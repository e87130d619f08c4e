"""
HTTP-коннектор к плагину хоста (HOST_CONTROL_URL).

Назначение:
- закрытие комнаты по таймеру длительности
- передача применённых настроек комнаты

Запросы подписываются так же, как webhook'и в backend.
Ошибки только логируются: решение ядра от ответа хоста не зависит.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from room_access_orchestrator.common.config import OrchestratorConfig
from room_access_orchestrator.common.logging import get_project_logger
from room_access_orchestrator.common.time import unix_ts
from room_access_orchestrator.connectors.base import RoomHostConnector
from room_access_orchestrator.transport.client import WebhookTransport

log = get_project_logger()


class HttpRoomHostConnector(RoomHostConnector):
    def __init__(self, transport: WebhookTransport) -> None:
        self.transport = transport

    @classmethod
    def from_config(cls, config: OrchestratorConfig) -> HttpRoomHostConnector:
        return cls(
            WebhookTransport(
                base_url=config.host_control_url or "",
                secret=config.webhook_secret,
                timeout_sec=config.host_control_timeout_sec,
                signature_mode=config.signature_mode,
                user_agent=config.user_agent,
            )
        )

    def _post(self, endpoint: str, room_name: str, payload: dict[str, Any]) -> bool:
        result = self.transport.send(endpoint, payload)
        if not result.ok:
            log.warning(
                "host_control_call_failed",
                extra={
                    "payload": {
                        "endpoint": endpoint,
                        "room_name": room_name,
                        "status_code": result.status_code,
                        "error": result.error.message if result.error else None,
                    }
                },
            )
            return False
        return True

    def destroy_room(self, room_name: str, reason: str) -> bool:
        return self._post(
            f"/rooms/{quote(room_name, safe='')}/destroy",
            room_name,
            {"roomName": room_name, "reason": reason, "timestamp": unix_ts()},
        )

    def apply_room_settings(self, room_name: str, settings: dict[str, Any]) -> bool:
        return self._post(
            f"/rooms/{quote(room_name, safe='')}/settings",
            room_name,
            {"roomName": room_name, "settings": settings, "timestamp": unix_ts()},
        )
