"""
Снимок конфигурации комнаты от backend.

Приходит в ответе /room-created или внутри ответа /validate-access.
Набор флагов открытый: новые toggles backend'а не требуют изменения схемы,
незнакомые ключи сохраняются как features.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

# Поля, которые трактуются как настройки комнаты, а не как UI-флаги
_ROOM_FIELDS = {
    "meetingId",
    "isPublic",
    "moderators",
    "maxDurationMinutes",
    "membersOnly",
    "moderated",
    "persistent",
    "hidden",
    "publicRoom",
    "allowInvites",
    "changeSubject",
    "whois",
    "historyLength",
    "meetingTitle",
    "meetingDescription",
    "maxParticipants",
    "password",
    "recordingMeetingId",
    "recordingFileServiceUrl",
    "recordingUploadPath",
    "recordingBucket",
    "recordingStoragePath",
}

# UI-флаги, по которым ядро принимает решения
_KNOWN_FEATURES = {"lobbyEnabled", "autoRecord", "recordingEnabled", "toolbarButtons"}


class ConfigurationSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    meeting_id: str | None = Field(default=None, alias="meetingId")
    is_public: bool | None = Field(default=None, alias="isPublic")
    moderators: list[str] = Field(default_factory=list)
    max_duration_minutes: float | None = Field(default=None, alias="maxDurationMinutes")

    # Настройки MUC
    members_only: bool | None = Field(default=None, alias="membersOnly")
    moderated: bool | None = None
    persistent: bool | None = None
    hidden: bool | None = None
    public_room: bool | None = Field(default=None, alias="publicRoom")
    allow_invites: bool | None = Field(default=None, alias="allowInvites")
    change_subject: bool | None = Field(default=None, alias="changeSubject")
    whois: str | None = None
    history_length: int | None = Field(default=None, alias="historyLength")
    max_participants: int | None = Field(default=None, alias="maxParticipants")
    password: str | None = None

    meeting_title: str | None = Field(default=None, alias="meetingTitle")
    meeting_description: str | None = Field(default=None, alias="meetingDescription")

    # Куда грузить запись (плоские поля, как их шлёт backend)
    recording_meeting_id: str | None = Field(default=None, alias="recordingMeetingId")
    recording_file_service_url: str | None = Field(default=None, alias="recordingFileServiceUrl")
    recording_upload_path: str | None = Field(default=None, alias="recordingUploadPath")
    recording_bucket: str | None = Field(default=None, alias="recordingBucket")
    recording_storage_path: str | None = Field(default=None, alias="recordingStoragePath")

    @field_validator("moderators", mode="before")
    @classmethod
    def _moderators_list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("meeting_id", "recording_meeting_id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Any:
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def recording_correlation_id(self) -> str | None:
        return self.recording_meeting_id or self.meeting_id

    def features(self) -> dict[str, Any]:
        """
        Открытый набор флагов (chatEnabled, lobbyEnabled, audioQuality, ...).
        Только скалярные значения и списки строк (toolbarButtons).
        """
        out: dict[str, Any] = {}
        for key, value in (self.model_extra or {}).items():
            if key in _ROOM_FIELDS:
                continue
            if isinstance(value, bool | int | float | str):
                out[key] = value
            elif isinstance(value, list) and all(isinstance(v, str) for v in value):
                out[key] = list(value)
        return out

    def flag(self, name: str, default: bool = False) -> bool:
        value = self.features().get(name)
        return value if isinstance(value, bool) else default


def parse_snapshot(data: Any) -> ConfigurationSnapshot | None:
    """
    Разбор снимка из JSON. Некорректный снимок -> None (join не блокируется).
    """
    if not isinstance(data, dict) or not data:
        return None
    try:
        return ConfigurationSnapshot.model_validate(data)
    except ValidationError:
        return None


def has_snapshot_fields(data: Any) -> bool:
    """
    Есть ли в объекте хотя бы одно известное поле снимка.
    Голое подтверждение вида {"success": true} снимком не считается.
    """
    if not isinstance(data, dict):
        return False
    return any(key in _ROOM_FIELDS or key in _KNOWN_FEATURES for key in data)
