"""
Таймер максимальной длительности комнаты.

Назначение:
- один одноразовый таймер на комнату (повторный arm ничего не делает)
- по срабатыванию комната закрывается через реестр с фиксированной причиной
- отмена при любом уничтожении комнаты

Важно:
- handle таймера хранится на комнате (room.timer) и меняется только под room.lock
- при срабатывании проверяется, что комната жива и это тот же объект в реестре
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from room_access_orchestrator.common.logging import get_project_logger
from room_access_orchestrator.common.metrics import DURATION_TIMERS_TOTAL
from room_access_orchestrator.domain.room import Room

if TYPE_CHECKING:
    from room_access_orchestrator.services.registry import RoomRegistry

log = get_project_logger()

DURATION_LIMIT_REASON = "duration limit reached"

TimerFactory = Callable[[float, Callable[[], None]], Any]


def _default_timer_factory(interval: float, fn: Callable[[], None]) -> threading.Timer:
    t = threading.Timer(interval, fn)
    t.daemon = True
    return t


def cancel_duration_timer(room: Room) -> bool:
    """
    Снять таймер комнаты. Вызывается под room.lock.
    """
    handle = room.timer
    if handle is None:
        return False
    room.timer = None
    handle.cancel()
    DURATION_TIMERS_TOTAL.labels(event="cancelled").inc()
    log.info("duration_timer_cancelled", extra={"payload": {"room_name": room.name}})
    return True


class DurationTimer:
    def __init__(
        self,
        registry: RoomRegistry,
        *,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self.registry = registry
        self._timer_factory = timer_factory or _default_timer_factory

    def arm(self, room: Room, minutes: float | None) -> bool:
        if minutes is None or minutes <= 0:
            return False
        with room.lock:
            if room.destroyed or room.timer is not None:
                return False
            delay_sec = float(minutes) * 60.0
            handle = self._timer_factory(delay_sec, lambda: self._fire(room))
            room.timer = handle
            room.max_duration_minutes = float(minutes)
            handle.start()

        DURATION_TIMERS_TOTAL.labels(event="armed").inc()
        log.info(
            "duration_timer_armed",
            extra={"payload": {"room_name": room.name, "minutes": minutes, "delay_sec": delay_sec}},
        )
        return True

    def cancel(self, room: Room) -> bool:
        with room.lock:
            return cancel_duration_timer(room)

    def _fire(self, room: Room) -> None:
        current = self.registry.get(room.name)
        with room.lock:
            stale = room.destroyed or current is not room
            if not stale:
                room.timer = None
        if stale:
            DURATION_TIMERS_TOTAL.labels(event="skipped").inc()
            log.info("duration_timer_skipped_stale_room", extra={"payload": {"room_name": room.name}})
            return

        DURATION_TIMERS_TOTAL.labels(event="fired").inc()
        log.warning(
            "duration_limit_reached",
            extra={"payload": {"room_name": room.name, "minutes": room.max_duration_minutes}},
        )
        self.registry.destroy(
            room.name, DURATION_LIMIT_REASON, expected=room, source="timer"
        )
