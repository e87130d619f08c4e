"""
Host Gateway (FastAPI).

Функции:
- /health, /ready, /metrics
- HTTP API для хуков сервера конференций (жизненный цикл комнаты,
  pre-join проверка доступа, запись)
- чтение эффективных настроек комнат

Архитектурно:
- плагин хоста шлёт события сюда, gateway вызывает оркестратор и отвечает
  синхронно; pre-join отвечает только после решения о доступе
- исходящие webhook'и в backend уходят из оркестратора
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from apps.api_gateway.routers.host_events import router as host_events_router
from apps.api_gateway.routers.recordings import router as recordings_router
from apps.api_gateway.routers.rooms import router as rooms_router
from room_access_orchestrator.common.config import get_settings
from room_access_orchestrator.common.logging import get_project_logger, setup_logging
from room_access_orchestrator.common.metrics import setup_metrics_endpoint
from room_access_orchestrator.services.readiness_service import (
    enforce_startup_readiness,
    evaluate_readiness,
)
from room_access_orchestrator.services.runtime import get_orchestrator, shutdown_orchestrator

log = get_project_logger()


@asynccontextmanager
async def _lifespan(app: FastAPI):
    orchestrator = get_orchestrator()
    log.info(
        "gateway_started",
        extra={
            "payload": {
                "service": get_settings().service_name,
                "fail_policy": orchestrator.config.fail_policy.value,
            }
        },
    )
    yield
    shutdown_orchestrator()


def _rooms_count() -> int:
    return get_orchestrator().registry.count()


def _create_app() -> FastAPI:
    app = FastAPI(title="Room Access Orchestrator", version="0.1.0", lifespan=_lifespan)

    setup_metrics_endpoint(app, rooms_count=_rooms_count)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True}

    @app.get("/ready")
    def ready() -> JSONResponse:
        state = evaluate_readiness()
        body = {
            "ready": state.ready,
            "issues": [
                {"severity": i.severity, "code": i.code, "message": i.message}
                for i in state.issues
            ],
        }
        return JSONResponse(status_code=200 if state.ready else 503, content=body)

    app.include_router(host_events_router, prefix="/v1")
    app.include_router(recordings_router, prefix="/v1")
    app.include_router(rooms_router, prefix="/v1")

    return app


setup_logging()
enforce_startup_readiness(service_name=get_settings().service_name)

app = _create_app()
