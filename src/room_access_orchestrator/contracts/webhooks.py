"""
Контракты backend webhook'ов (Pydantic-модели).

Назначение:
- явная структура payload'а на каждый endpoint (camelCase, как ждёт backend)
- терпимость к незнакомым полям ответа (игнорируются, не роняют разбор)
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from room_access_orchestrator.common.time import unix_ts
from room_access_orchestrator.domain.enums import WebhookEvent


# =============================================================================
# ИСХОДЯЩИЕ PAYLOAD'Ы
# =============================================================================
class WebhookPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    room_name: str = Field(alias="roomName")
    timestamp: int = Field(default_factory=unix_ts)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RoomCreatedPayload(WebhookPayload):
    room_jid: str | None = Field(default=None, alias="roomJid")


class RoomDestroyedPayload(WebhookPayload):
    room_jid: str | None = Field(default=None, alias="roomJid")
    reason: str | None = None


class UserJoinedPayload(WebhookPayload):
    user_jid: str = Field(alias="userJid")
    user_name: str | None = Field(default=None, alias="userName")
    is_moderator: bool = Field(default=False, alias="isModerator")


class UserLeftPayload(WebhookPayload):
    user_jid: str = Field(alias="userJid")
    user_name: str | None = Field(default=None, alias="userName")


class ModeratorChangedPayload(WebhookPayload):
    user_jid: str = Field(alias="userJid")
    user_name: str | None = Field(default=None, alias="userName")
    is_moderator: bool = Field(alias="isModerator")
    changed_by: str | None = Field(default=None, alias="changedBy")


class RecordingStatusPayload(WebhookPayload):
    status: str
    session_id: str | None = Field(default=None, alias="sessionId")
    meeting_id: str | None = Field(default=None, alias="meetingId")


class ValidateAccessRequest(WebhookPayload):
    meeting_id: str | None = Field(default=None, alias="meetingId")
    user_jid: str = Field(alias="userJid")
    user_name: str | None = Field(default=None, alias="userName")
    bearer_token: str | None = Field(default=None, alias="bearerToken")


_PAYLOAD_BY_EVENT: dict[WebhookEvent, type[WebhookPayload]] = {
    WebhookEvent.room_created: RoomCreatedPayload,
    WebhookEvent.room_destroyed: RoomDestroyedPayload,
    WebhookEvent.user_joined: UserJoinedPayload,
    WebhookEvent.user_left: UserLeftPayload,
    WebhookEvent.moderator_changed: ModeratorChangedPayload,
    WebhookEvent.recording_status: RecordingStatusPayload,
}


def build_payload(
    event: WebhookEvent, room_name: str, extra_fields: dict[str, Any] | None = None
) -> WebhookPayload:
    """
    Собрать payload события. Поля события передаются camelCase-ключами.
    """
    model = _PAYLOAD_BY_EVENT[event]
    data: dict[str, Any] = dict(extra_fields or {})
    data["roomName"] = room_name
    return model.model_validate(data)


# =============================================================================
# ОТВЕТЫ BACKEND
# =============================================================================
class ValidateAccessResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # без явного allowed ответ не соответствует контракту
    allowed: bool
    reason: str | None = None
    message: str | None = None
    require_auth: bool | None = Field(default=None, alias="requireAuth")
    redirect_url: str | None = Field(default=None, alias="redirectUrl")
    configuration: dict[str, Any] | None = None
    # старое имя поля у ранних версий backend
    room_configuration: dict[str, Any] | None = Field(default=None, alias="roomConfiguration")

    @property
    def snapshot_data(self) -> dict[str, Any] | None:
        return self.configuration or self.room_configuration
