"""
Доменные перечисления (enum).

Используются во всей системе:
- политика отказа при недоступности backend
- причины решений о доступе
- виды webhook-событий
- статусы записи и аффилиации участников
"""

from __future__ import annotations

import enum


class FailPolicy(str, enum.Enum):
    """
    Что делать с join, если backend недоступен или ответил мусором.
    """

    fail_closed = "fail_closed"
    fail_open = "fail_open"

    @classmethod
    def parse(cls, raw: str | None) -> FailPolicy:
        value = (raw or "").strip().lower().replace("-", "_")
        if value in {"", "closed"}:
            return cls.fail_closed
        if value == "open":
            return cls.fail_open
        return cls(value)


class SignatureMode(str, enum.Enum):
    """
    Как подписывать исходящие webhook'и.

    legacy: только X-Webhook-Secret (старые версии backend).
    """

    hmac = "hmac"
    legacy = "legacy"
    both = "both"

    @classmethod
    def parse(cls, raw: str | None) -> SignatureMode:
        value = (raw or "").strip().lower()
        return cls(value) if value else cls.both


class WebhookEvent(str, enum.Enum):
    room_created = "room-created"
    user_joined = "user-joined"
    user_left = "user-left"
    room_destroyed = "room-destroyed"
    moderator_changed = "moderator-changed"
    recording_status = "recording-status"

    @property
    def endpoint(self) -> str:
        if self is WebhookEvent.recording_status:
            return "/recording"
        return f"/{self.value}"


class AccessReason(str, enum.Enum):
    """
    Стабильные коды причин решения о доступе.
    """

    allowed = "allowed"
    auth_required = "auth_required"
    not_invited = "not_invited"
    meeting_not_found = "meeting_not_found"
    meeting_expired = "meeting_expired"
    meeting_cancelled = "meeting_cancelled"
    meeting_completed = "meeting_completed"
    meeting_not_started = "meeting_not_started"
    room_not_found = "room_not_found"
    access_denied = "access_denied"
    service_timeout = "service_timeout"
    service_unavailable = "service_unavailable"
    invalid_response = "invalid_response"

    @classmethod
    def from_backend(cls, raw: str | None, *, allowed: bool) -> AccessReason:
        """
        Backend присылает причину строкой; незнакомые значения не роняют join.
        """
        known = cls._lookup(raw)
        if known is not None:
            return known
        return cls.allowed if allowed else cls.access_denied

    @classmethod
    def is_known(cls, raw: str | None) -> bool:
        return cls._lookup(raw) is not None

    @classmethod
    def _lookup(cls, raw: str | None) -> AccessReason | None:
        value = (raw or "").strip().lower().replace("-", "_").replace(" ", "_")
        aliases = {
            "ok": cls.allowed,
            "canceled": cls.meeting_cancelled,
            "cancelled": cls.meeting_cancelled,
            "expired": cls.meeting_expired,
            "completed": cls.meeting_completed,
            "not_found": cls.meeting_not_found,
            "unauthorized": cls.auth_required,
            "forbidden": cls.access_denied,
        }
        if value in aliases:
            return aliases[value]
        try:
            return cls(value)
        except ValueError:
            return None


class RecordingStatus(str, enum.Enum):
    started = "started"
    stopped = "stopped"
    failed = "failed"

    @classmethod
    def parse(cls, raw: str | None) -> RecordingStatus:
        value = (raw or "").strip().lower()
        if value in {"on", "start", "started"}:
            return cls.started
        if value in {"off", "stop", "stopped"}:
            return cls.stopped
        return cls(value)


class Affiliation(str, enum.Enum):
    owner = "owner"
    admin = "admin"
    member = "member"
    none = "none"
    outcast = "outcast"

    @property
    def is_moderator(self) -> bool:
        return self in {Affiliation.owner, Affiliation.admin}
