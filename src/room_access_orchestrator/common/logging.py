"""
Логирование оркестратора комнат.

Формат:
- одна JSON-строка на событие в stdout; text только для локальной отладки
- msg это стабильное snake_case имя события (room_destroyed, access_decision, ...)
- структурные данные идут через extra={"payload": {...}}

Важно:
- секреты webhook'ов и bearer-токены участников в лог не попадают:
  RedactSecretsFilter маскирует их в payload на уровне хэндлера
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from room_access_orchestrator.common.config import get_settings

# Ключи payload, значения которых нельзя писать в лог
_SECRET_KEYS = {
    "authorization",
    "bearer_token",
    "bearertoken",
    "session_token",
    "stanza_token",
    "token",
    "webhook_secret",
    "webhooksecret",
    "secret",
    "password",
}
_MASK = "***"


def redact_payload(payload: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in payload.items():
        if str(key).lower() in _SECRET_KEYS and value not in (None, ""):
            out[key] = _MASK
        elif isinstance(value, dict):
            out[key] = redact_payload(value)
        else:
            out[key] = value
    return out


class RedactSecretsFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        payload = getattr(record, "payload", None)
        if isinstance(payload, dict):
            record.payload = redact_payload(payload)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload = getattr(record, "payload", None)
        if isinstance(payload, dict):
            out["payload"] = payload
        if record.exc_info:
            out["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(out, ensure_ascii=False, default=str)


def _build_formatter(log_format: str | None) -> logging.Formatter:
    if (log_format or "").lower() == "text":
        return logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s %(payload)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            defaults={"payload": ""},
        )
    return JsonFormatter()


def setup_logging() -> None:
    s = get_settings()
    root = logging.getLogger()
    level = getattr(logging, (s.log_level or "INFO").upper(), logging.INFO)
    root.setLevel(level)

    # повторный вызов (uvicorn reload, тесты) хэндлеры не добавляет
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_build_formatter(s.log_format))
    handler.addFilter(RedactSecretsFilter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)
    # urllib3 на DEBUG пишет URL с query, а там бывает jwt участника
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))


def get_project_logger(name: str = "room-access-orchestrator") -> logging.Logger:
    return logging.getLogger(name)


def get_webhook_logger() -> logging.Logger:
    """
    Логгер исходящих вызовов backend (webhook_sent / webhook_failed).
    """
    return logging.getLogger("room-access-orchestrator.webhooks")
