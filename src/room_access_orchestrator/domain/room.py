"""
Модель комнаты (зеркало комнаты на сервере конференций).

Комната единолично владеет снимком конфигурации и handle таймера
длительности. Все изменения состояния делаются под room.lock.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from room_access_orchestrator.common.time import utc_now_iso
from room_access_orchestrator.domain.enums import Affiliation
from room_access_orchestrator.domain.snapshot import ConfigurationSnapshot


@dataclass
class RecordingDescriptor:
    """
    Дескриптор загрузки записи, который читает внешний finalize-шаг.
    """

    room_name: str
    meeting_id: str | None
    session_id: str
    start_time: int
    file_service_url: str
    upload_path: str
    bucket: str
    storage_path: str
    webhook_url: str
    webhook_secret: str

    def to_json(self) -> dict[str, Any]:
        return {
            "roomName": self.room_name,
            "meetingId": self.meeting_id,
            "sessionId": self.session_id,
            "startTime": self.start_time,
            "recordingUploadConfig": {
                "meetingId": self.meeting_id,
                "fileServiceUrl": self.file_service_url,
                "uploadPath": self.upload_path,
                "bucket": self.bucket,
                "storagePath": self.storage_path,
                "webhookUrl": self.webhook_url,
                "webhookSecret": self.webhook_secret,
            },
        }


@dataclass(eq=False)
class Room:
    name: str
    jid: str | None = None
    created_at: str = field(default_factory=utc_now_iso)

    # Конфигурация (применяется не более одного раза)
    applied: bool = False
    applied_source: str | None = None
    snapshot: ConfigurationSnapshot | None = None
    meeting_id: str | None = None

    # Приватность: None = backend ещё не сказал
    is_public: bool | None = None
    members_only: bool = False

    # Модерация / MUC
    moderated: bool | None = None
    persistent: bool | None = None
    hidden: bool | None = None
    public_room: bool | None = None
    allow_invites: bool | None = None
    change_subject: bool | None = None
    whois: str | None = None
    lobby_enabled: bool = False
    password: str | None = None
    max_occupants: int | None = None
    history_length: int | None = None
    subject: str | None = None
    description: str | None = None

    affiliations: dict[str, Affiliation] = field(default_factory=dict)
    features: dict[str, Any] = field(default_factory=dict)

    max_duration_minutes: float | None = None
    timer: Any | None = field(default=None, repr=False)

    recordings: dict[str, RecordingDescriptor] = field(default_factory=dict)

    destroyed: bool = False
    destroy_reason: str | None = None

    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @property
    def timer_armed(self) -> bool:
        return self.timer is not None

    def affiliation_of(self, jid: str) -> Affiliation:
        return self.affiliations.get(jid, Affiliation.none)

    def moderators(self) -> list[str]:
        return sorted(j for j, a in self.affiliations.items() if a.is_moderator)

    def effective_settings(self) -> dict[str, Any]:
        """
        Эффективные настройки комнаты после применения снимка.
        """
        with self.lock:
            return {
                "roomName": self.name,
                "applied": self.applied,
                "appliedSource": self.applied_source,
                "meetingId": self.meeting_id,
                "isPublic": self.is_public,
                "membersOnly": self.members_only,
                "moderated": self.moderated,
                "persistent": self.persistent,
                "hidden": self.hidden,
                "publicRoom": self.public_room,
                "allowInvites": self.allow_invites,
                "changeSubject": self.change_subject,
                "whois": self.whois,
                "lobbyEnabled": self.lobby_enabled,
                "passwordProtected": bool(self.password),
                "maxOccupants": self.max_occupants,
                "historyLength": self.history_length,
                "subject": self.subject,
                "description": self.description,
                "moderators": self.moderators(),
                "maxDurationMinutes": self.max_duration_minutes,
                "durationTimerArmed": self.timer_armed,
                "features": dict(self.features),
                "activeRecordings": sorted(self.recordings),
                "destroyed": self.destroyed,
                "createdAt": self.created_at,
            }

    def client_config(self) -> dict[str, Any]:
        """
        Набор флагов для клиента участника (рисует тулбар по ним).
        """
        with self.lock:
            config: dict[str, Any] = dict(self.features)
            config["meetingTitle"] = self.subject
            config["meetingDescription"] = self.description
            config["lobbyEnabled"] = self.lobby_enabled
            return config
