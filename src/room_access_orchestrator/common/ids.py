"""
Генерация идентификаторов.

Назначение:
- session_id записи (упорядочен по времени)
- event_id для логов и трассировки webhook'ов
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime


def new_event_id(prefix: str = "evt") -> str:
    """
    Идентификатор события.
    Формат: <prefix>_<UTCYYYYMMDDHHMMSS>_<rand>
    """
    ts = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
    return f"{prefix}_{ts}_{secrets.token_hex(6)}"


def new_recording_session_id(room_name: str) -> str:
    """
    Идентификатор сессии записи, если хост его не прислал.
    Лексикографически растёт со временем в пределах комнаты.
    """
    ts = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
    return f"session-{room_name}-{ts}-{secrets.token_hex(3)}"
