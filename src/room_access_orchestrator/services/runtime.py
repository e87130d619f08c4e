"""
Процессный экземпляр оркестратора для gateway.

Единственное место, где OrchestratorConfig собирается из get_settings().
"""

from __future__ import annotations

import threading

from room_access_orchestrator.common.config import OrchestratorConfig, get_settings
from room_access_orchestrator.services.orchestrator import (
    RoomLifecycleOrchestrator,
    build_orchestrator,
)

_LOCK = threading.Lock()
_ORCHESTRATOR: RoomLifecycleOrchestrator | None = None


def get_orchestrator() -> RoomLifecycleOrchestrator:
    global _ORCHESTRATOR
    with _LOCK:
        if _ORCHESTRATOR is None:
            _ORCHESTRATOR = build_orchestrator(OrchestratorConfig.from_settings(get_settings()))
        return _ORCHESTRATOR


def shutdown_orchestrator() -> None:
    global _ORCHESTRATOR
    with _LOCK:
        current, _ORCHESTRATOR = _ORCHESTRATOR, None
    if current is not None:
        current.shutdown(wait=True)
