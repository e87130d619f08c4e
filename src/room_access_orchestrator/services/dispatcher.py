"""
Диспетчер webhook-событий (fire-and-forget).

Назначение:
- отправка не-блокирующих событий жизненного цикла комнаты
- не более одной попытки на событие, без ретраев
- ошибки только логируются: хост и состояние комнаты от них не зависят
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from pydantic import ValidationError

from room_access_orchestrator.common.ids import new_event_id
from room_access_orchestrator.common.logging import get_project_logger
from room_access_orchestrator.common.metrics import WEBHOOK_DROPPED_TOTAL
from room_access_orchestrator.contracts.webhooks import build_payload
from room_access_orchestrator.domain.enums import WebhookEvent
from room_access_orchestrator.transport.client import TransportResult, WebhookTransport

log = get_project_logger()

ResponseCallback = Callable[[TransportResult], None]


class WebhookDispatcher:
    def __init__(self, transport: WebhookTransport, *, max_workers: int = 8) -> None:
        self.transport = transport
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, int(max_workers)), thread_name_prefix="webhook"
        )
        self._closed = False
        self._lock = threading.Lock()

    def notify(
        self,
        event: WebhookEvent,
        room_name: str,
        extra_fields: dict[str, Any] | None = None,
        *,
        on_response: ResponseCallback | None = None,
    ) -> Future | None:
        """
        Поставить событие в отправку и сразу вернуть управление.

        on_response вызывается только при успешном ответе (2xx) из потока
        отправки; используется room-created, чтобы получить снимок.
        """
        event_id = new_event_id("wh")
        try:
            payload = build_payload(event, room_name, extra_fields).to_json()
        except ValidationError as e:
            log.error(
                "webhook_payload_invalid",
                extra={
                    "payload": {
                        "event": event.value,
                        "room_name": room_name,
                        "event_id": event_id,
                        "err": str(e)[:300],
                    }
                },
            )
            return None

        with self._lock:
            if self._closed:
                WEBHOOK_DROPPED_TOTAL.labels(event=event.value).inc()
                log.warning(
                    "webhook_dropped_dispatcher_closed",
                    extra={"payload": {"event": event.value, "room_name": room_name}},
                )
                return None
            return self._executor.submit(
                self._deliver, event, room_name, payload, event_id, on_response
            )

    def _deliver(
        self,
        event: WebhookEvent,
        room_name: str,
        payload: dict[str, Any],
        event_id: str,
        on_response: ResponseCallback | None,
    ) -> TransportResult:
        result = self.transport.send(event.endpoint, payload)
        if not result.ok:
            log.warning(
                "webhook_event_not_delivered",
                extra={
                    "payload": {
                        "event": event.value,
                        "room_name": room_name,
                        "event_id": event_id,
                        "status_code": result.status_code,
                        "error": result.error.message if result.error else None,
                    }
                },
            )
            return result

        log.info(
            "webhook_event_delivered",
            extra={
                "payload": {
                    "event": event.value,
                    "room_name": room_name,
                    "event_id": event_id,
                    "status_code": result.status_code,
                }
            },
        )
        if on_response is not None:
            try:
                on_response(result)
            except Exception as e:
                log.exception(
                    "webhook_response_handler_failed",
                    extra={
                        "payload": {
                            "event": event.value,
                            "room_name": room_name,
                            "event_id": event_id,
                            "err": str(e)[:300],
                        }
                    },
                )
        return result

    def shutdown(self, *, wait: bool = True) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=wait)
        log.info("webhook_dispatcher_stopped")
