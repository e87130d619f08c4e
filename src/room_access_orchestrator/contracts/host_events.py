"""
Контракты HTTP API gateway (события хоста конференций).

Назначение:
- валидация входа на уровне FastAPI
- незнакомые поля от плагина хоста игнорируются
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _HostEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# ЗАПРОСЫ
# =============================================================================
class RoomCreatedRequest(_HostEvent):
    room_jid: str | None = Field(default=None, alias="roomJid")


class PreJoinRequest(_HostEvent):
    user_jid: str = Field(alias="userJid")
    user_name: str | None = Field(default=None, alias="userName")
    # токен, сохранённый хостом в сессии при аутентификации
    session_token: str | None = Field(default=None, alias="sessionToken")
    # токен из кастомного элемента presence stanza
    stanza_token: str | None = Field(default=None, alias="stanzaToken")
    join_url: str | None = Field(default=None, alias="joinUrl")


class OccupantJoinedRequest(_HostEvent):
    user_jid: str = Field(alias="userJid")
    user_name: str | None = Field(default=None, alias="userName")
    role: str | None = None


class OccupantLeftRequest(_HostEvent):
    user_jid: str = Field(alias="userJid")
    user_name: str | None = Field(default=None, alias="userName")


class AffiliationChangedRequest(_HostEvent):
    user_jid: str = Field(alias="userJid")
    user_name: str | None = Field(default=None, alias="userName")
    affiliation: str
    actor: str | None = None


class RoomDestroyedRequest(_HostEvent):
    reason: str | None = None


class RecordingStatusRequest(_HostEvent):
    status: str
    session_id: str | None = Field(default=None, alias="sessionId")


class RecordingFinalizedRequest(BaseModel):
    """
    Отчёт finalize-шага. Пересылается в backend как есть, поэтому extra="allow".
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    room_name: str = Field(alias="roomName")
    status: str
    session_id: str | None = Field(default=None, alias="sessionId")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# ОТВЕТЫ
# =============================================================================
class _Response(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AckResponse(_Response):
    ok: bool = True
    room_name: str | None = Field(default=None, alias="roomName")


class OccupantJoinedResponse(_Response):
    known: bool
    room_name: str = Field(alias="roomName")
    is_moderator: bool = Field(default=False, alias="isModerator")
    room_config: dict[str, Any] = Field(default_factory=dict, alias="roomConfig")
    start_recording: bool = Field(default=False, alias="startRecording")


class RecordingStatusResponse(_Response):
    ok: bool = True
    session_id: str = Field(alias="sessionId")


class RoomListResponse(BaseModel):
    rooms: list[dict[str, Any]] = Field(default_factory=list)
