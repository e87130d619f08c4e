"""
HTTP роуты чтения состояния комнат.

- GET /v1/rooms
- GET /v1/rooms/{room_name}

Авторизация: Depends(auth_dep)
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from apps.api_gateway.deps import auth_dep
from room_access_orchestrator.common.errors import NotFoundError
from room_access_orchestrator.common.security import AuthContext
from room_access_orchestrator.contracts.host_events import RoomListResponse
from room_access_orchestrator.services.runtime import get_orchestrator

router = APIRouter()


@router.get("/rooms", response_model=RoomListResponse)
def list_rooms(ctx: AuthContext = Depends(auth_dep)) -> RoomListResponse:
    return RoomListResponse(rooms=[r.effective_settings() for r in get_orchestrator().list_rooms()])


@router.get("/rooms/{room_name}")
def get_room(room_name: str, ctx: AuthContext = Depends(auth_dep)) -> dict[str, Any]:
    try:
        room = get_orchestrator().get_room(room_name)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": e.code, "message": e.message},
        ) from e
    return room.effective_settings()
