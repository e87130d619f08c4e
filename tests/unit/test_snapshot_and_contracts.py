from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from room_access_orchestrator.contracts.webhooks import (
    ValidateAccessResponse,
    build_payload,
)
from room_access_orchestrator.domain.access import AccessDecision
from room_access_orchestrator.domain.enums import (
    AccessReason,
    Affiliation,
    RecordingStatus,
    WebhookEvent,
)
from room_access_orchestrator.domain.snapshot import has_snapshot_fields, parse_snapshot


def test_parse_snapshot_keeps_open_feature_flags() -> None:
    snap = parse_snapshot(
        {
            "meetingId": 17,
            "isPublic": False,
            "moderators": None,
            "maxDurationMinutes": 1.5,
            "chatEnabled": True,
            "newShinyToggle": "on",
            "toolbarButtons": ["chat"],
            "weird": {"x": 1},
        }
    )
    assert snap is not None
    assert snap.meeting_id == "17"
    assert snap.moderators == []
    assert snap.max_duration_minutes == 1.5
    assert snap.features() == {
        "chatEnabled": True,
        "newShinyToggle": "on",
        "toolbarButtons": ["chat"],
    }
    assert snap.flag("chatEnabled") is True
    assert snap.flag("newShinyToggle") is False


def test_parse_snapshot_malformed_or_empty() -> None:
    assert parse_snapshot(None) is None
    assert parse_snapshot({}) is None
    assert parse_snapshot(["not", "a", "dict"]) is None
    assert parse_snapshot({"isPublic": "perhaps"}) is None


def test_recording_correlation_prefers_recording_meeting_id() -> None:
    snap = parse_snapshot({"meetingId": "m-1", "recordingMeetingId": "rec-1"})
    assert snap.recording_correlation_id == "rec-1"
    assert parse_snapshot({"meetingId": "m-1"}).recording_correlation_id == "m-1"


def test_build_payload_uses_camel_case_and_drops_none() -> None:
    payload = build_payload(
        WebhookEvent.moderator_changed,
        "abc-defg",
        {"userJid": "u1@meet.jitsi", "isModerator": True, "changedBy": None},
    ).to_json()
    assert payload["roomName"] == "abc-defg"
    assert payload["userJid"] == "u1@meet.jitsi"
    assert payload["isModerator"] is True
    assert "changedBy" not in payload
    assert isinstance(payload["timestamp"], int)


def test_validate_access_response_tolerates_unknown_keys() -> None:
    resp = ValidateAccessResponse.model_validate(
        {"allowed": True, "reason": "allowed", "somethingNew": 1}
    )
    assert resp.allowed is True
    assert resp.snapshot_data is None
    with pytest.raises(PydanticValidationError):
        ValidateAccessResponse.model_validate({"reason": "allowed"})


def test_event_endpoints() -> None:
    assert WebhookEvent.room_created.endpoint == "/room-created"
    assert WebhookEvent.moderator_changed.endpoint == "/moderator-changed"
    assert WebhookEvent.recording_status.endpoint == "/recording"


def test_reason_aliases_and_enums() -> None:
    assert AccessReason.from_backend("canceled", allowed=False) is AccessReason.meeting_cancelled
    assert AccessReason.from_backend("Meeting-Expired", allowed=False) is AccessReason.meeting_expired
    assert AccessReason.from_backend("???", allowed=False) is AccessReason.access_denied
    assert AccessReason.is_known("not_invited") is True
    assert AccessReason.is_known("Host has locked the meeting") is False

    assert RecordingStatus.parse("ON") is RecordingStatus.started
    assert RecordingStatus.parse("off") is RecordingStatus.stopped
    assert Affiliation.admin.is_moderator is True
    assert Affiliation.member.is_moderator is False


def test_decision_json_shape() -> None:
    body = AccessDecision(
        allowed=False,
        reason=AccessReason.meeting_not_started,
        redirect_url="https://meet.example/wait",
    ).to_json()
    assert body == {
        "allowed": False,
        "reason": "meeting_not_started",
        "message": "This meeting has not started yet",
        "requireAuth": False,
        "redirectUrl": "https://meet.example/wait",
        "degraded": False,
        "error": {
            "type": "wait",
            "condition": "resource-constraint",
            "text": "This meeting has not started yet",
            "redirectUrl": "https://meet.example/wait",
        },
    }


def test_has_snapshot_fields_rejects_bare_ack() -> None:
    assert has_snapshot_fields({"success": True}) is False
    assert has_snapshot_fields({}) is False
    assert has_snapshot_fields(["isPublic"]) is False
    assert has_snapshot_fields({"success": True, "isPublic": False}) is True
    assert has_snapshot_fields({"autoRecord": True}) is True
