"""
HTTP роуты событий хоста конференций.

- POST /v1/rooms/{room_name}/created
- POST /v1/rooms/{room_name}/pre-join      (блокирующая проверка доступа)
- POST /v1/rooms/{room_name}/joined
- POST /v1/rooms/{room_name}/left
- POST /v1/rooms/{room_name}/affiliation
- POST /v1/rooms/{room_name}/destroyed

Авторизация: Depends(auth_dep)
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from apps.api_gateway.deps import auth_dep
from room_access_orchestrator.common.errors import ValidationError
from room_access_orchestrator.common.logging import get_project_logger
from room_access_orchestrator.common.security import AuthContext
from room_access_orchestrator.contracts.host_events import (
    AckResponse,
    AffiliationChangedRequest,
    OccupantJoinedRequest,
    OccupantJoinedResponse,
    OccupantLeftRequest,
    PreJoinRequest,
    RoomCreatedRequest,
    RoomDestroyedRequest,
)
from room_access_orchestrator.services.access_validator import JoinContext
from room_access_orchestrator.services.runtime import get_orchestrator

log = get_project_logger()

router = APIRouter()


@router.post("/rooms/{room_name}/created", response_model=AckResponse)
def room_created(
    room_name: str,
    req: RoomCreatedRequest,
    ctx: AuthContext = Depends(auth_dep),
) -> AckResponse:
    get_orchestrator().on_room_created(room_name, room_jid=req.room_jid)
    return AckResponse(room_name=room_name)


@router.post("/rooms/{room_name}/pre-join")
def pre_join(
    room_name: str,
    req: PreJoinRequest,
    ctx: AuthContext = Depends(auth_dep),
) -> dict[str, Any]:
    """
    Ответ всегда 200: отказ передаётся в теле, хост сам отдаёт stanza error.
    """
    decision = get_orchestrator().on_pre_join(
        JoinContext(
            room_name=room_name,
            user_jid=req.user_jid,
            user_name=req.user_name,
            session_token=req.session_token,
            stanza_token=req.stanza_token,
            join_url=req.join_url,
        )
    )
    return decision.to_json()


@router.post("/rooms/{room_name}/joined", response_model=OccupantJoinedResponse)
def occupant_joined(
    room_name: str,
    req: OccupantJoinedRequest,
    ctx: AuthContext = Depends(auth_dep),
) -> OccupantJoinedResponse:
    result = get_orchestrator().on_occupant_joined(
        room_name, user_jid=req.user_jid, user_name=req.user_name, role=req.role
    )
    if result is None:
        return OccupantJoinedResponse(known=False, room_name=room_name)
    return OccupantJoinedResponse(
        known=True,
        room_name=room_name,
        is_moderator=result["isModerator"],
        room_config=result["roomConfig"],
        start_recording=result["startRecording"],
    )


@router.post("/rooms/{room_name}/left", response_model=AckResponse)
def occupant_left(
    room_name: str,
    req: OccupantLeftRequest,
    ctx: AuthContext = Depends(auth_dep),
) -> AckResponse:
    get_orchestrator().on_occupant_left(room_name, user_jid=req.user_jid, user_name=req.user_name)
    return AckResponse(room_name=room_name)


@router.post("/rooms/{room_name}/affiliation", response_model=AckResponse)
def affiliation_changed(
    room_name: str,
    req: AffiliationChangedRequest,
    ctx: AuthContext = Depends(auth_dep),
) -> AckResponse:
    try:
        get_orchestrator().on_affiliation_changed(
            room_name,
            user_jid=req.user_jid,
            affiliation=req.affiliation,
            user_name=req.user_name,
            actor=req.actor,
        )
    except ValidationError as e:
        log.warning(
            "affiliation_rejected",
            extra={"payload": {"room_name": room_name, "affiliation": req.affiliation}},
        )
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": e.code, "message": e.message, "details": e.details or {}},
        ) from e
    return AckResponse(room_name=room_name)


@router.post("/rooms/{room_name}/destroyed", response_model=AckResponse)
def room_destroyed(
    room_name: str,
    req: RoomDestroyedRequest,
    ctx: AuthContext = Depends(auth_dep),
) -> AckResponse:
    destroyed = get_orchestrator().on_room_destroyed(room_name, reason=req.reason)
    return AckResponse(ok=destroyed, room_name=room_name)
