"""
Решение о доступе участника (результат pre-join проверки).

Не персистится: создаётся на одну попытку входа и отдаётся хосту.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from room_access_orchestrator.domain.enums import AccessReason
from room_access_orchestrator.domain.snapshot import ConfigurationSnapshot


@dataclass(frozen=True)
class HostRejection:
    """
    Ошибка уровня протокола хоста (тип + условие XMPP stanza error).
    """

    error_type: str  # auth|cancel|wait|modify
    condition: str
    text: str
    redirect_url: str | None = None

    def to_json(self) -> dict[str, Any]:
        return {
            "type": self.error_type,
            "condition": self.condition,
            "text": self.text,
            "redirectUrl": self.redirect_url,
        }


_REJECTIONS: dict[AccessReason, tuple[str, str]] = {
    AccessReason.auth_required: ("auth", "not-authorized"),
    AccessReason.not_invited: ("auth", "forbidden"),
    AccessReason.access_denied: ("auth", "forbidden"),
    AccessReason.meeting_not_found: ("cancel", "item-not-found"),
    AccessReason.room_not_found: ("cancel", "item-not-found"),
    AccessReason.meeting_expired: ("cancel", "gone"),
    AccessReason.meeting_cancelled: ("cancel", "gone"),
    AccessReason.meeting_completed: ("cancel", "gone"),
    AccessReason.meeting_not_started: ("wait", "resource-constraint"),
    AccessReason.service_timeout: ("wait", "service-unavailable"),
    AccessReason.service_unavailable: ("wait", "service-unavailable"),
    AccessReason.invalid_response: ("cancel", "internal-server-error"),
}

_DEFAULT_MESSAGES: dict[AccessReason, str] = {
    AccessReason.allowed: "Access granted",
    AccessReason.auth_required: "This meeting is private, please sign in",
    AccessReason.not_invited: "You are not invited to this meeting",
    AccessReason.access_denied: "You are not authorized to join this room",
    AccessReason.meeting_not_found: "Meeting not found",
    AccessReason.room_not_found: "Room does not exist",
    AccessReason.meeting_expired: "This meeting has expired",
    AccessReason.meeting_cancelled: "This meeting has been cancelled",
    AccessReason.meeting_completed: "This meeting has already ended",
    AccessReason.meeting_not_started: "This meeting has not started yet",
    AccessReason.service_timeout: "Meeting service did not respond in time",
    AccessReason.service_unavailable: "Meeting service is unavailable",
    AccessReason.invalid_response: "Invalid response from meeting service",
}


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: AccessReason
    message: str | None = None
    redirect_url: str | None = None
    require_auth: bool = False
    snapshot: ConfigurationSnapshot | None = None
    # True, если решение принято политикой fail_open/fail_closed, а не backend
    degraded: bool = False
    backend_called: bool = True

    @property
    def text(self) -> str:
        return self.message or _DEFAULT_MESSAGES.get(self.reason, self.reason.value)

    def to_rejection(self) -> HostRejection | None:
        if self.allowed:
            return None
        error_type, condition = _REJECTIONS.get(self.reason, ("auth", "forbidden"))
        return HostRejection(
            error_type=error_type,
            condition=condition,
            text=self.text,
            redirect_url=self.redirect_url,
        )

    def to_json(self) -> dict[str, Any]:
        rejection = self.to_rejection()
        return {
            "allowed": self.allowed,
            "reason": self.reason.value,
            "message": self.text,
            "requireAuth": self.require_auth,
            "redirectUrl": self.redirect_url,
            "degraded": self.degraded,
            "error": rejection.to_json() if rejection else None,
        }
