"""
Утилиты времени.

Назначение:
- единый формат времени (ISO UTC)
- unix-секунды для webhook payload'ов (так их ждёт backend)
"""

from __future__ import annotations

import time
from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Текущее время в UTC (datetime).
    """
    return datetime.now(UTC)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def unix_ts() -> int:
    """
    Текущее время в unix-секундах (int).
    """
    return int(time.time())
