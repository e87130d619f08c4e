"""
Кэш конфигурации комнаты (apply-once).

Назначение:
- применить снимок backend к комнате ровно один раз
- порядок: приватность -> модерация -> история -> тема -> модераторы ->
  features -> таймер длительности

Важно:
- check-and-set флага room.applied атомарен (room.lock)
- проигравший гонку получает False (ConfigApplyConflict только в debug-лог)
- уничтоженная комната не конфигурируется
"""

from __future__ import annotations

from typing import Any

from room_access_orchestrator.common.config import OrchestratorConfig
from room_access_orchestrator.common.errors import ConfigApplyConflict
from room_access_orchestrator.common.logging import get_project_logger
from room_access_orchestrator.common.metrics import CONFIG_APPLIED_TOTAL
from room_access_orchestrator.connectors.base import RoomHostConnector
from room_access_orchestrator.domain.enums import Affiliation, WebhookEvent
from room_access_orchestrator.domain.room import Room
from room_access_orchestrator.domain.snapshot import ConfigurationSnapshot
from room_access_orchestrator.services.dispatcher import WebhookDispatcher
from room_access_orchestrator.services.duration_timer import DurationTimer

log = get_project_logger()


def normalize_jid(raw: str, domain: str) -> str:
    """
    email/локальное имя -> bare JID. Без "@" дописываем домен хоста.
    """
    value = (raw or "").strip()
    if not value or "@" in value or not domain:
        return value
    return f"{value}@{domain}"


class RoomConfigurationCache:
    def __init__(
        self,
        config: OrchestratorConfig,
        *,
        timer: DurationTimer,
        dispatcher: WebhookDispatcher,
        connector: RoomHostConnector,
    ) -> None:
        self.config = config
        self.timer = timer
        self.dispatcher = dispatcher
        self.connector = connector

    def apply_once(self, room: Room, snapshot: ConfigurationSnapshot, *, source: str) -> bool:
        granted: list[str] = []
        with room.lock:
            if room.destroyed:
                log.info(
                    "room_config_skipped_destroyed",
                    extra={"payload": {"room_name": room.name, "source": source}},
                )
                return False
            if room.applied:
                conflict = ConfigApplyConflict(room.name)
                log.debug(
                    "room_config_already_applied",
                    extra={
                        "payload": {
                            "room_name": room.name,
                            "source": source,
                            "applied_source": room.applied_source,
                            "code": conflict.code,
                        }
                    },
                )
                return False

            room.applied = True
            room.applied_source = source
            room.snapshot = snapshot

            self._apply_privacy(room, snapshot)
            self._apply_moderation(room, snapshot)
            if snapshot.history_length is not None:
                room.history_length = max(0, int(snapshot.history_length))
            if snapshot.meeting_title:
                room.subject = snapshot.meeting_title
            if snapshot.meeting_description:
                room.description = snapshot.meeting_description
            granted = self._apply_moderators(room, snapshot)
            room.features = snapshot.features()
            room.lobby_enabled = snapshot.flag("lobbyEnabled", room.lobby_enabled)
            if snapshot.meeting_id:
                room.meeting_id = snapshot.meeting_id

            # таймер взводится под тем же room.lock: destroy не может проскочить между
            armed = self.timer.arm(room, snapshot.max_duration_minutes)
            settings = room.effective_settings()

        CONFIG_APPLIED_TOTAL.labels(source=source).inc()
        log.info(
            "room_config_applied",
            extra={
                "payload": {
                    "room_name": room.name,
                    "source": source,
                    "meeting_id": room.meeting_id,
                    "members_only": settings["membersOnly"],
                    "moderators": len(granted),
                    "timer_armed": armed,
                }
            },
        )
        for jid in granted:
            self.dispatcher.notify(
                WebhookEvent.moderator_changed,
                room.name,
                {"userJid": jid, "isModerator": True, "changedBy": "backend"},
            )
        self.connector.apply_room_settings(room.name, settings)
        return True

    @staticmethod
    def _apply_privacy(room: Room, snapshot: ConfigurationSnapshot) -> None:
        if snapshot.is_public is not None:
            room.is_public = snapshot.is_public
        if snapshot.is_public is False:
            room.members_only = True
        elif snapshot.members_only is not None:
            room.members_only = snapshot.members_only

    @staticmethod
    def _apply_moderation(room: Room, snapshot: ConfigurationSnapshot) -> None:
        simple: dict[str, Any] = {
            "moderated": snapshot.moderated,
            "persistent": snapshot.persistent,
            "hidden": snapshot.hidden,
            "public_room": snapshot.public_room,
            "allow_invites": snapshot.allow_invites,
            "change_subject": snapshot.change_subject,
            "whois": snapshot.whois,
            "password": snapshot.password,
        }
        for attr, value in simple.items():
            if value is not None:
                setattr(room, attr, value)
        if snapshot.max_participants is not None and snapshot.max_participants > 0:
            room.max_occupants = int(snapshot.max_participants)

    def _apply_moderators(self, room: Room, snapshot: ConfigurationSnapshot) -> list[str]:
        granted: list[str] = []
        for raw in snapshot.moderators:
            jid = normalize_jid(raw, self.config.xmpp_domain)
            if not jid or room.affiliation_of(jid) is Affiliation.owner:
                continue
            room.affiliations[jid] = Affiliation.owner
            granted.append(jid)
        return granted
