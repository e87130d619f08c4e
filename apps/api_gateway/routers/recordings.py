"""
HTTP роуты записи.

- POST /v1/rooms/{room_name}/recording   (хост: запись включена/выключена)
- POST /v1/recordings/status             (finalize-шаг: stopped|failed)

Авторизация: Depends(auth_dep)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from apps.api_gateway.deps import auth_dep
from room_access_orchestrator.common.errors import NotFoundError, ValidationError
from room_access_orchestrator.common.security import AuthContext
from room_access_orchestrator.contracts.host_events import (
    AckResponse,
    RecordingFinalizedRequest,
    RecordingStatusRequest,
    RecordingStatusResponse,
)
from room_access_orchestrator.services.runtime import get_orchestrator

router = APIRouter()


@router.post("/rooms/{room_name}/recording", response_model=RecordingStatusResponse)
def recording_status(
    room_name: str,
    req: RecordingStatusRequest,
    ctx: AuthContext = Depends(auth_dep),
) -> RecordingStatusResponse:
    try:
        session_id = get_orchestrator().on_recording_status(
            room_name, req.status, session_id=req.session_id
        )
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": e.code, "message": e.message},
        ) from e
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": e.code, "message": e.message, "details": e.details or {}},
        ) from e
    return RecordingStatusResponse(session_id=session_id)


@router.post("/recordings/status", response_model=AckResponse)
def recording_finalized(
    req: RecordingFinalizedRequest,
    ctx: AuthContext = Depends(auth_dep),
) -> AckResponse:
    try:
        get_orchestrator().on_recording_finalized(req.to_payload())
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": e.code, "message": e.message, "details": e.details or {}},
        ) from e
    return AckResponse(room_name=req.room_name)
