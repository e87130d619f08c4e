from __future__ import annotations

import json
import logging

from room_access_orchestrator.common.logging import JsonFormatter, RedactSecretsFilter


def _record(payload: dict) -> logging.LogRecord:
    record = logging.LogRecord(
        name="room-access-orchestrator",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="recording_descriptor_written",
        args=(),
        exc_info=None,
    )
    record.payload = payload
    return record


def test_secrets_are_masked_before_formatting() -> None:
    record = _record(
        {
            "room_name": "abc-defg",
            "has_token": True,
            "bearerToken": "eyJhbGciOi",
            "recordingUploadConfig": {"webhookSecret": "s3cret", "bucket": "recordings"},
            "password": "",
        }
    )

    assert RedactSecretsFilter().filter(record) is True
    line = json.loads(JsonFormatter().format(record))

    assert line["msg"] == "recording_descriptor_written"
    assert line["level"] == "INFO"
    payload = line["payload"]
    assert payload["room_name"] == "abc-defg"
    assert payload["has_token"] is True
    assert payload["bearerToken"] == "***"
    assert payload["recordingUploadConfig"] == {"webhookSecret": "***", "bucket": "recordings"}
    assert payload["password"] == ""
    assert "s3cret" not in JsonFormatter().format(record)


def test_record_without_payload_is_left_alone() -> None:
    record = logging.LogRecord(
        name="room-access-orchestrator",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="orchestrator_stopped",
        args=(),
        exc_info=None,
    )

    assert RedactSecretsFilter().filter(record) is True
    line = json.loads(JsonFormatter().format(record))
    assert "payload" not in line
    assert line["level"] == "WARNING"
