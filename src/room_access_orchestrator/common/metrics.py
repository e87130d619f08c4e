"""
Метрики Prometheus для сервиса.

Назначение:
- Экспорт /metrics
- Счётчики исходящих webhook'ов и решений о доступе
- Состояние комнат, таймеров длительности и записи
"""

from __future__ import annotations

import time
from collections.abc import Callable

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

# =============================================================================
# СЧЁТЧИКИ И МЕТРИКИ
# =============================================================================

# Общее количество HTTP-запросов к gateway
REQUESTS_TOTAL = Counter(
    "rooms_requests_total",
    "Общее количество HTTP запросов",
    ["service", "route", "method", "status"],
)

HTTP_REQUEST_LATENCY_MS = Histogram(
    "rooms_http_request_latency_ms",
    "Задержка HTTP запроса (мс)",
    ["service", "route", "method"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
)

WEBHOOK_CALLS_TOTAL = Counter(
    "rooms_webhook_calls_total",
    "Исходящие вызовы backend webhook",
    ["endpoint", "result"],  # result=ok|transport_error|protocol_error
)

WEBHOOK_LATENCY_MS = Histogram(
    "rooms_webhook_latency_ms",
    "Задержка вызова backend webhook (мс)",
    ["endpoint"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
)

WEBHOOK_DROPPED_TOTAL = Counter(
    "rooms_webhook_dropped_total",
    "Webhook'и, не поставленные в отправку (dispatcher остановлен)",
    ["event"],
)

ACCESS_DECISIONS_TOTAL = Counter(
    "rooms_access_decisions_total",
    "Решения о доступе на pre-join",
    ["outcome", "reason"],  # outcome=allowed|denied
)

CONFIG_APPLIED_TOTAL = Counter(
    "rooms_config_applied_total",
    "Применения конфигурации комнаты",
    ["source"],  # room_created|validate_access
)

DURATION_TIMERS_TOTAL = Counter(
    "rooms_duration_timers_total",
    "События таймеров максимальной длительности",
    ["event"],  # armed|fired|cancelled|skipped
)

RECORDING_DESCRIPTORS_TOTAL = Counter(
    "rooms_recording_descriptors_total",
    "Дескрипторы загрузки записи",
    ["result"],  # written|failed|removed
)

ROOMS_ACTIVE = Gauge(
    "rooms_active",
    "Количество живых комнат в реестре",
)


def record_webhook_call(*, endpoint: str, result: str, elapsed_ms: float) -> None:
    WEBHOOK_CALLS_TOTAL.labels(endpoint=endpoint, result=result).inc()
    WEBHOOK_LATENCY_MS.labels(endpoint=endpoint).observe(elapsed_ms)


def record_access_decision(*, allowed: bool, reason: str) -> None:
    outcome = "allowed" if allowed else "denied"
    ACCESS_DECISIONS_TOTAL.labels(outcome=outcome, reason=reason).inc()


# =============================================================================
# ENDPOINT /metrics
# =============================================================================
def setup_metrics_endpoint(app: FastAPI, *, rooms_count: Callable[[], int] | None = None) -> None:
    """
    Регистрирует endpoint /metrics для Prometheus.
    """

    @app.middleware("http")
    async def http_metrics(request: Request, call_next):
        # label route = шаблон роута, имя комнаты в label не попадает
        method = request.method
        started = time.perf_counter()

        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        route_obj = request.scope.get("route")
        route = getattr(route_obj, "path", None) or request.url.path

        REQUESTS_TOTAL.labels(
            service="room-gateway",
            route=route,
            method=method,
            status=str(response.status_code),
        ).inc()
        HTTP_REQUEST_LATENCY_MS.labels(
            service="room-gateway",
            route=route,
            method=method,
        ).observe(elapsed_ms)
        return response

    @app.get("/metrics")
    def metrics() -> Response:
        if rooms_count is not None:
            ROOMS_ACTIVE.set(max(0, rooms_count()))
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
