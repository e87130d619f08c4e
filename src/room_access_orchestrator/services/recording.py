"""
Передача записи в пайплайн загрузки (Recording Handoff).

Назначение:
- старт записи: webhook recording-status(started) + дескриптор загрузки
  для внешнего finalize-шага (RECORDING_DIR/RECORDING_DESCRIPTOR_FILENAME)
- отчёт finalize-шага (stopped|failed) пересылается в backend как есть,
  локальное состояние сессии удаляется

Важно:
- дескриптор пишется атомарно (tmp + os.replace)
- ошибка подготовки загрузки не отменяет уведомление backend
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from room_access_orchestrator.common.config import OrchestratorConfig
from room_access_orchestrator.common.errors import AppError, ErrCode
from room_access_orchestrator.common.ids import new_recording_session_id
from room_access_orchestrator.common.logging import get_project_logger
from room_access_orchestrator.common.metrics import RECORDING_DESCRIPTORS_TOTAL
from room_access_orchestrator.common.time import unix_ts
from room_access_orchestrator.domain.enums import RecordingStatus, WebhookEvent
from room_access_orchestrator.domain.room import RecordingDescriptor, Room
from room_access_orchestrator.services.dispatcher import WebhookDispatcher

log = get_project_logger()


class RecordingProvisioningError(AppError):
    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(ErrCode.RECORDING_PROVISIONING, message, details)


def render_storage_path(
    template: str | None, *, room_name: str, session_id: str, meeting_id: str | None
) -> str:
    if not template:
        return f"recordings/{room_name}/{session_id}/"
    return template.replace("{sessionId}", session_id).replace("{meetingId}", meeting_id or "")


class RecordingHandoff:
    def __init__(self, config: OrchestratorConfig, *, dispatcher: WebhookDispatcher) -> None:
        self.config = config
        self.dispatcher = dispatcher

    @property
    def descriptor_path(self) -> Path:
        return Path(self.config.recording_dir) / self.config.recording_descriptor_filename

    # -------------------------------------------------------------------------
    # Старт записи (от хоста)
    # -------------------------------------------------------------------------
    def on_recording_status(
        self, room: Room, status: RecordingStatus, *, session_id: str | None = None
    ) -> str:
        with room.lock:
            meeting_id = room.meeting_id
            snapshot = room.snapshot
        if snapshot is not None and snapshot.recording_correlation_id:
            meeting_id = snapshot.recording_correlation_id

        sid = (session_id or "").strip() or new_recording_session_id(room.name)
        self.dispatcher.notify(
            WebhookEvent.recording_status,
            room.name,
            {"status": status.value, "sessionId": sid, "meetingId": meeting_id},
        )
        if status is not RecordingStatus.started:
            log.info(
                "recording_status_forwarded",
                extra={"payload": {"room_name": room.name, "status": status.value, "session_id": sid}},
            )
            return sid

        try:
            descriptor = self._build_descriptor(room, sid, meeting_id)
            self._write_descriptor(descriptor)
        except (RecordingProvisioningError, OSError) as e:
            RECORDING_DESCRIPTORS_TOTAL.labels(result="failed").inc()
            log.error(
                "recording_provisioning_failed",
                extra={
                    "payload": {
                        "room_name": room.name,
                        "session_id": sid,
                        "err": str(e)[:200],
                    }
                },
            )
            return sid

        with room.lock:
            room.recordings[sid] = descriptor
        RECORDING_DESCRIPTORS_TOTAL.labels(result="written").inc()
        log.info(
            "recording_descriptor_written",
            extra={
                "payload": {
                    "room_name": room.name,
                    "session_id": sid,
                    "meeting_id": meeting_id,
                    "path": str(self.descriptor_path),
                }
            },
        )
        return sid

    def _build_descriptor(
        self, room: Room, session_id: str, meeting_id: str | None
    ) -> RecordingDescriptor:
        snapshot = room.snapshot
        file_service_url = (
            (snapshot.recording_file_service_url if snapshot else None)
            or self.config.recording_file_service_url
        )
        if not file_service_url:
            raise RecordingProvisioningError(
                "Не задан адрес файлового сервиса для загрузки записи",
                {"room_name": room.name},
            )
        template = snapshot.recording_storage_path if snapshot else None
        return RecordingDescriptor(
            room_name=room.name,
            meeting_id=meeting_id,
            session_id=session_id,
            start_time=unix_ts(),
            file_service_url=file_service_url,
            upload_path=(snapshot.recording_upload_path if snapshot else None)
            or self.config.recording_upload_path,
            bucket=(snapshot.recording_bucket if snapshot else None) or self.config.recording_bucket,
            storage_path=render_storage_path(
                template, room_name=room.name, session_id=session_id, meeting_id=meeting_id
            ),
            webhook_url=self.config.recording_webhook_url,
            webhook_secret=self.config.webhook_secret,
        )

    def _write_descriptor(self, descriptor: RecordingDescriptor) -> None:
        target = self.descriptor_path
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".descriptor-", dir=str(target.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(descriptor.to_json(), f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, target)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # -------------------------------------------------------------------------
    # Отчёт finalize-шага
    # -------------------------------------------------------------------------
    def on_recording_finalized(self, room: Room | None, payload: dict[str, Any]) -> None:
        room_name = str(payload.get("roomName") or "")
        session_id = payload.get("sessionId")
        extra = {k: v for k, v in payload.items() if k != "roomName"}
        self.dispatcher.notify(WebhookEvent.recording_status, room_name, extra)

        if room is not None and session_id:
            with room.lock:
                room.recordings.pop(str(session_id), None)
        if session_id:
            self._remove_descriptor_file(str(session_id))
        log.info(
            "recording_finalized",
            extra={
                "payload": {
                    "room_name": room_name,
                    "session_id": session_id,
                    "status": payload.get("status"),
                }
            },
        )

    def _remove_descriptor_file(self, session_id: str) -> bool:
        path = self.descriptor_path
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return False
        except (OSError, ValueError) as e:
            log.warning(
                "recording_descriptor_unreadable",
                extra={"payload": {"path": str(path), "err": str(e)[:200]}},
            )
            return False
        if not isinstance(data, dict) or data.get("sessionId") != session_id:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        RECORDING_DESCRIPTORS_TOTAL.labels(result="removed").inc()
        log.info(
            "recording_descriptor_removed",
            extra={"payload": {"session_id": session_id, "path": str(path)}},
        )
        return True
