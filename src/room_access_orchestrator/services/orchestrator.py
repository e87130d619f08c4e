"""
Оркестратор жизненного цикла комнаты.

Назначение:
- принимает хуки хоста (создание, pre-join, вход/выход, аффилиации,
  уничтожение, запись) и связывает реестр, кэш конфигурации, таймер,
  валидатор доступа, диспетчер и пайплайн записи

Важно:
- события одной комнаты хост присылает последовательно, разные комнаты
  обрабатываются параллельно
- блокирует только pre-join (ждёт ответа validate-access в своём потоке)
"""

from __future__ import annotations

from typing import Any

from room_access_orchestrator.common.config import OrchestratorConfig
from room_access_orchestrator.common.errors import NotFoundError, ValidationError
from room_access_orchestrator.common.logging import get_project_logger
from room_access_orchestrator.connectors.base import RoomHostConnector
from room_access_orchestrator.connectors.host_http import HttpRoomHostConnector
from room_access_orchestrator.connectors.mock import NullRoomHostConnector
from room_access_orchestrator.domain.access import AccessDecision
from room_access_orchestrator.domain.enums import Affiliation, RecordingStatus, WebhookEvent
from room_access_orchestrator.domain.room import Room
from room_access_orchestrator.domain.snapshot import has_snapshot_fields, parse_snapshot
from room_access_orchestrator.services.access_validator import AccessValidator, JoinContext
from room_access_orchestrator.services.dispatcher import WebhookDispatcher
from room_access_orchestrator.services.duration_timer import DurationTimer, TimerFactory
from room_access_orchestrator.services.recording import RecordingHandoff
from room_access_orchestrator.services.registry import RoomRegistry
from room_access_orchestrator.services.room_config import RoomConfigurationCache
from room_access_orchestrator.transport.client import TransportResult, WebhookTransport

log = get_project_logger()

_NOTIFIED_AFFILIATIONS = {Affiliation.owner, Affiliation.admin, Affiliation.member}


class RoomLifecycleOrchestrator:
    def __init__(
        self,
        config: OrchestratorConfig,
        *,
        transport: WebhookTransport,
        connector: RoomHostConnector,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self.config = config
        self.transport = transport
        self.connector = connector
        self.dispatcher = WebhookDispatcher(transport, max_workers=config.dispatcher_max_workers)
        self.registry = RoomRegistry(self.dispatcher, connector)
        self.timer = DurationTimer(self.registry, timer_factory=timer_factory)
        self.cache = RoomConfigurationCache(
            config, timer=self.timer, dispatcher=self.dispatcher, connector=connector
        )
        self.validator = AccessValidator(
            config, transport=transport, registry=self.registry, cache=self.cache
        )
        self.recording = RecordingHandoff(config, dispatcher=self.dispatcher)

    # =========================================================================
    # КОМНАТА
    # =========================================================================
    def on_room_created(self, room_name: str, *, room_jid: str | None = None) -> Room:
        room, created = self.registry.create(room_name, jid=room_jid)
        if not created:
            log.info("room_created_duplicate", extra={"payload": {"room_name": room_name}})
            return room
        self.dispatcher.notify(
            WebhookEvent.room_created,
            room_name,
            {"roomJid": room_jid},
            on_response=lambda result: self._on_room_created_response(room, result),
        )
        return room

    def _on_room_created_response(self, room: Room, result: TransportResult) -> None:
        data, err = result.json_body()
        if err is not None:
            log.warning(
                "room_created_response_invalid",
                extra={"payload": {"room_name": room.name, "error": err.message}},
            )
            return
        raw = data.get("configuration") or data.get("roomConfiguration")
        if raw is None:
            if not has_snapshot_fields(data):
                log.info(
                    "room_created_ack_without_snapshot",
                    extra={"payload": {"room_name": room.name, "keys": sorted(data)[:10]}},
                )
                return
            raw = data
        snapshot = parse_snapshot(raw)
        if snapshot is None:
            if raw:
                log.warning(
                    "room_snapshot_malformed",
                    extra={"payload": {"room_name": room.name}},
                )
            return
        self.cache.apply_once(room, snapshot, source="room_created")

    def on_room_destroyed(self, room_name: str, *, reason: str | None = None) -> bool:
        return self.registry.destroy(room_name, reason, source="host")

    def get_room(self, room_name: str) -> Room:
        room = self.registry.get(room_name)
        if room is None:
            raise NotFoundError("Комната не найдена", {"room_name": room_name})
        return room

    def list_rooms(self) -> list[Room]:
        return self.registry.list()

    # =========================================================================
    # УЧАСТНИКИ
    # =========================================================================
    def on_pre_join(self, ctx: JoinContext) -> AccessDecision:
        return self.validator.validate(ctx)

    def on_occupant_joined(
        self,
        room_name: str,
        *,
        user_jid: str,
        user_name: str | None = None,
        role: str | None = None,
    ) -> dict[str, Any] | None:
        """
        Уведомить backend о входе и вернуть конфигурацию для клиента.
        None: комнаты нет (хост прислал событие после destroy).
        """
        room = self.registry.get(room_name)
        if room is None:
            log.info(
                "occupant_joined_unknown_room",
                extra={"payload": {"room_name": room_name, "user_jid": user_jid}},
            )
            return None

        with room.lock:
            is_moderator = room.affiliation_of(user_jid).is_moderator
            snapshot = room.snapshot
        if (role or "").strip().lower() == "moderator":
            is_moderator = True

        self.dispatcher.notify(
            WebhookEvent.user_joined,
            room_name,
            {"userJid": user_jid, "userName": user_name, "isModerator": is_moderator},
        )
        start_recording = bool(
            snapshot is not None
            and snapshot.flag("autoRecord")
            and snapshot.flag("recordingEnabled")
        )
        return {
            "roomName": room_name,
            "isModerator": is_moderator,
            "roomConfig": room.client_config(),
            "startRecording": start_recording,
        }

    def on_occupant_left(
        self, room_name: str, *, user_jid: str, user_name: str | None = None
    ) -> None:
        self.dispatcher.notify(
            WebhookEvent.user_left,
            room_name,
            {"userJid": user_jid, "userName": user_name},
        )

    def on_affiliation_changed(
        self,
        room_name: str,
        *,
        user_jid: str,
        affiliation: str,
        user_name: str | None = None,
        actor: str | None = None,
    ) -> bool:
        try:
            value = Affiliation((affiliation or "").strip().lower())
        except ValueError as e:
            raise ValidationError(
                "Неизвестная аффилиация", {"affiliation": affiliation}
            ) from e

        room = self.registry.get(room_name)
        if room is not None:
            with room.lock:
                if value is Affiliation.none:
                    room.affiliations.pop(user_jid, None)
                else:
                    room.affiliations[user_jid] = value

        if value not in _NOTIFIED_AFFILIATIONS:
            return False
        self.dispatcher.notify(
            WebhookEvent.moderator_changed,
            room_name,
            {
                "userJid": user_jid,
                "userName": user_name,
                "isModerator": value.is_moderator,
                "changedBy": actor,
            },
        )
        return True

    # =========================================================================
    # ЗАПИСЬ
    # =========================================================================
    def on_recording_status(
        self, room_name: str, status: str, *, session_id: str | None = None
    ) -> str:
        try:
            parsed = RecordingStatus.parse(status)
        except ValueError as e:
            raise ValidationError("Неизвестный статус записи", {"status": status}) from e
        room = self.get_room(room_name)
        return self.recording.on_recording_status(room, parsed, session_id=session_id)

    def on_recording_finalized(self, payload: dict[str, Any]) -> None:
        try:
            status = RecordingStatus.parse(str(payload.get("status") or ""))
        except ValueError as e:
            raise ValidationError(
                "Неизвестный статус записи", {"status": payload.get("status")}
            ) from e
        if status is RecordingStatus.started:
            raise ValidationError(
                "Отчёт finalize-шага должен быть stopped|failed", {"status": status.value}
            )
        room = self.registry.get(str(payload.get("roomName") or ""))
        self.recording.on_recording_finalized(room, payload)

    # =========================================================================
    # ОСТАНОВКА
    # =========================================================================
    def shutdown(self, *, wait: bool = True) -> None:
        for room in self.registry.list():
            self.timer.cancel(room)
        self.dispatcher.shutdown(wait=wait)
        self.transport.close()
        log.info("orchestrator_stopped")


def build_orchestrator(
    config: OrchestratorConfig,
    *,
    transport: WebhookTransport | None = None,
    connector: RoomHostConnector | None = None,
    timer_factory: TimerFactory | None = None,
) -> RoomLifecycleOrchestrator:
    if transport is None:
        transport = WebhookTransport(
            base_url=config.webhook_base_url,
            secret=config.webhook_secret,
            timeout_sec=config.webhook_timeout_sec,
            signature_mode=config.signature_mode,
            user_agent=config.user_agent,
        )
    if connector is None:
        if config.host_control_url:
            connector = HttpRoomHostConnector.from_config(config)
        else:
            connector = NullRoomHostConnector()
    return RoomLifecycleOrchestrator(
        config, transport=transport, connector=connector, timer_factory=timer_factory
    )
