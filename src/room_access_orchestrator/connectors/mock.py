"""
Коннекторы-заглушки для dev/тестов.

NullRoomHostConnector: управляющий канал не настроен, только логируем
RecordingRoomHostConnector: запоминает вызовы в памяти
"""

from __future__ import annotations

import threading
from typing import Any

from room_access_orchestrator.common.logging import get_project_logger
from room_access_orchestrator.connectors.base import RoomHostConnector

log = get_project_logger()


class NullRoomHostConnector(RoomHostConnector):
    def destroy_room(self, room_name: str, reason: str) -> bool:
        log.info(
            "host_destroy_skipped_no_control_url",
            extra={"payload": {"room_name": room_name, "reason": reason}},
        )
        return False

    def apply_room_settings(self, room_name: str, settings: dict[str, Any]) -> bool:
        log.debug("host_settings_skipped_no_control_url", extra={"payload": {"room_name": room_name}})
        return False


class RecordingRoomHostConnector(RoomHostConnector):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.destroyed: list[tuple[str, str]] = []
        self.settings: list[tuple[str, dict[str, Any]]] = []

    def destroy_room(self, room_name: str, reason: str) -> bool:
        with self._lock:
            self.destroyed.append((room_name, reason))
        return True

    def apply_room_settings(self, room_name: str, settings: dict[str, Any]) -> bool:
        with self._lock:
            self.settings.append((room_name, dict(settings)))
        return True
