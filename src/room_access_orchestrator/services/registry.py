"""
Реестр живых комнат (in-memory).

Назначение:
- create / get / list / destroy с потокобезопасностью
- destroy идемпотентен: ровно одно уведомление room-destroyed на комнату

Важно:
- блокировка реестра и room.lock никогда не берутся вложенно
- комнату с тем же именем может пересоздать хост: expected защищает
  новую комнату от уничтожения по устаревшему handle
"""

from __future__ import annotations

import threading

from room_access_orchestrator.common.logging import get_project_logger
from room_access_orchestrator.common.metrics import ROOMS_ACTIVE
from room_access_orchestrator.connectors.base import RoomHostConnector
from room_access_orchestrator.domain.enums import WebhookEvent
from room_access_orchestrator.domain.room import Room
from room_access_orchestrator.services.dispatcher import WebhookDispatcher
from room_access_orchestrator.services.duration_timer import cancel_duration_timer

log = get_project_logger()


class RoomRegistry:
    def __init__(self, dispatcher: WebhookDispatcher, connector: RoomHostConnector) -> None:
        self.dispatcher = dispatcher
        self.connector = connector
        self._rooms: dict[str, Room] = {}
        self._lock = threading.Lock()

    def create(self, name: str, *, jid: str | None = None) -> tuple[Room, bool]:
        """
        Вернуть живую комнату (created=False) или зарегистрировать новую.
        """
        with self._lock:
            room = self._rooms.get(name)
            if room is not None:
                return room, False
            room = Room(name=name, jid=jid)
            self._rooms[name] = room
            ROOMS_ACTIVE.set(len(self._rooms))
        log.info("room_registered", extra={"payload": {"room_name": name, "room_jid": jid}})
        return room, True

    def get(self, name: str) -> Room | None:
        with self._lock:
            return self._rooms.get(name)

    def list(self) -> list[Room]:
        with self._lock:
            return sorted(self._rooms.values(), key=lambda r: r.name)

    def count(self) -> int:
        with self._lock:
            return len(self._rooms)

    def destroy(
        self,
        name: str,
        reason: str | None,
        *,
        expected: Room | None = None,
        source: str = "host",
    ) -> bool:
        """
        Уничтожить комнату. Повторный вызов и устаревший expected ничего не делают.

        source="timer": комнату закрывает ядро, хост просим выгнать участников.
        """
        with self._lock:
            room = self._rooms.get(name)
            if room is None or (expected is not None and room is not expected):
                return False
            del self._rooms[name]
            ROOMS_ACTIVE.set(len(self._rooms))

        with room.lock:
            if room.destroyed:
                return False
            room.destroyed = True
            room.destroy_reason = reason
            cancel_duration_timer(room)
            jid = room.jid

        log.info(
            "room_destroyed",
            extra={"payload": {"room_name": name, "reason": reason, "source": source}},
        )
        self.dispatcher.notify(
            WebhookEvent.room_destroyed,
            name,
            {"roomJid": jid, "reason": reason},
        )
        if source == "timer":
            self.connector.destroy_room(name, reason or "")
        return True
