"""
Базовый интерфейс коннектора к серверу конференций (хосту).

Назначение:
- отделить "что решило ядро" (уничтожить комнату, применить настройки)
  от "как это доставляется хосту"
"""

from __future__ import annotations

from typing import Any, Protocol


class RoomHostConnector(Protocol):
    """
    Контракт управляющего канала к хосту.
    """

    def destroy_room(self, room_name: str, reason: str) -> bool:
        """Попросить хост закрыть комнату и выгнать участников."""
        ...

    def apply_room_settings(self, room_name: str, settings: dict[str, Any]) -> bool:
        """Передать хосту эффективные настройки комнаты."""
        ...
