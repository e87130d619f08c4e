"""
Централизованная конфигурация проекта (ENV / .env).

Важно:
- настройки читаются из .env и переменных окружения
- типизированные значения через pydantic-settings
- любое поле можно передать файлом через <ALIAS>_FILE (docker secrets)
- ядро НЕ читает get_settings() напрямую: на старте собирается
  OrchestratorConfig и передаётся в компоненты явно
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from room_access_orchestrator.domain.enums import FailPolicy, SignatureMode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Runtime
    # -------------------------------------------------------------------------
    app_env: str = Field(default="dev", alias="APP_ENV")
    service_name: str = Field(default="room-gateway", alias="SERVICE_NAME")
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=2032, alias="API_PORT")

    # -------------------------------------------------------------------------
    # Auth (входящие запросы от хоста конференций)
    # -------------------------------------------------------------------------
    auth_mode: str = Field(default="api_key", alias="AUTH_MODE")  # api_key|jwt|none
    api_keys: str = Field(default="", alias="API_KEYS")
    service_api_keys: str = Field(default="", alias="SERVICE_API_KEYS")
    allow_service_api_key_in_jwt_mode: bool = Field(
        default=True, alias="ALLOW_SERVICE_API_KEY_IN_JWT_MODE"
    )
    jwt_shared_secret: str | None = Field(default=None, alias="JWT_SHARED_SECRET")
    jwt_algorithms: str = Field(default="HS256", alias="JWT_ALGORITHMS")
    jwt_audience: str | None = Field(default=None, alias="JWT_AUDIENCE")
    jwt_issuer: str | None = Field(default=None, alias="JWT_ISSUER")
    jwt_clock_skew_sec: int = Field(default=30, alias="JWT_CLOCK_SKEW_SEC")

    # -------------------------------------------------------------------------
    # Backend webhooks
    # -------------------------------------------------------------------------
    webhook_base_url: str = Field(
        default="http://meeting-service:2031/webhooks/jitsi", alias="WEBHOOK_BASE_URL"
    )
    webhook_secret: str = Field(default="", alias="WEBHOOK_SECRET")
    webhook_timeout_sec: float = Field(default=5.0, alias="WEBHOOK_TIMEOUT_SEC")
    webhook_signature_mode: str = Field(
        default="both", alias="WEBHOOK_SIGNATURE_MODE"
    )  # hmac|legacy|both
    webhook_user_agent: str = Field(
        default="room-access-orchestrator/0.1", alias="WEBHOOK_USER_AGENT"
    )

    # -------------------------------------------------------------------------
    # Access policy
    # -------------------------------------------------------------------------
    access_fail_policy: str = Field(
        default="fail_closed", alias="ACCESS_FAIL_POLICY"
    )  # fail_closed|fail_open
    access_login_url: str | None = Field(default=None, alias="ACCESS_LOGIN_URL")

    # -------------------------------------------------------------------------
    # Dispatcher
    # -------------------------------------------------------------------------
    dispatcher_max_workers: int = Field(default=8, alias="DISPATCHER_MAX_WORKERS")

    # -------------------------------------------------------------------------
    # Host (сервер конференций)
    # -------------------------------------------------------------------------
    host_xmpp_domain: str = Field(default="meet.jitsi", alias="HOST_XMPP_DOMAIN")
    host_control_url: str | None = Field(default=None, alias="HOST_CONTROL_URL")
    host_control_timeout_sec: float = Field(default=5.0, alias="HOST_CONTROL_TIMEOUT_SEC")

    # -------------------------------------------------------------------------
    # Recording handoff
    # -------------------------------------------------------------------------
    recording_dir: str = Field(default="/tmp/recordings", alias="RECORDING_DIR")
    recording_descriptor_filename: str = Field(
        default="metadata.json", alias="RECORDING_DESCRIPTOR_FILENAME"
    )
    recording_file_service_url: str | None = Field(
        default=None, alias="RECORDING_FILE_SERVICE_URL"
    )
    recording_upload_path: str = Field(
        default="/api/files/upload", alias="RECORDING_UPLOAD_PATH"
    )
    recording_bucket: str = Field(default="recordings", alias="RECORDING_BUCKET")

    # -------------------------------------------------------------------------
    # Logging / readiness
    # -------------------------------------------------------------------------
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")  # json|text
    readiness_fail_fast_in_prod: bool = Field(default=True, alias="READINESS_FAIL_FAST_IN_PROD")

    def model_post_init(self, __context) -> None:
        _apply_file_overrides(self)


_CSV_ENV_FIELDS = {
    "API_KEYS",
    "SERVICE_API_KEYS",
    "JWT_ALGORITHMS",
}


def _normalize_file_value(env_key: str, raw: str) -> str:
    value = (raw or "").strip()
    if env_key in _CSV_ENV_FIELDS and "\n" in value and "," not in value:
        parts = [p.strip() for p in value.splitlines() if p.strip()]
        return ",".join(parts)
    return value


def _apply_file_overrides(settings: Settings) -> None:
    alias_to_field = {}
    for name, field in type(settings).model_fields.items():
        alias_to_field[str(field.alias or name)] = name
        alias_to_field[str(name)] = name

    for key, path in os.environ.items():
        if not key.endswith("_FILE"):
            continue
        target = alias_to_field.get(key[: -len("_FILE")])
        if not target:
            continue
        file_path = (path or "").strip()
        if not file_path:
            continue
        try:
            raw = Path(file_path).read_text(encoding="utf-8")
        except OSError as e:
            logging.getLogger("room-access-orchestrator").error(
                "config_file_read_failed",
                extra={"payload": {"env_key": key, "path": file_path, "error": str(e)[:200]}},
            )
            raise RuntimeError(f"Failed to read {key} from {file_path}") from e
        setattr(settings, target, _normalize_file_value(key[: -len("_FILE")], raw))


_SETTINGS = Settings()


def get_settings() -> Settings:
    return _SETTINGS


# =============================================================================
# ЯВНАЯ КОНФИГУРАЦИЯ ЯДРА
# =============================================================================
@dataclass(frozen=True)
class OrchestratorConfig:
    """
    Неизменяемый набор параметров ядра.

    Собирается один раз на старте процесса и передаётся в компоненты
    (transport, validator, recording, registry) по ссылке.
    """

    webhook_base_url: str
    webhook_secret: str = ""
    webhook_timeout_sec: float = 5.0
    signature_mode: SignatureMode = SignatureMode.both
    user_agent: str = "room-access-orchestrator/0.1"
    fail_policy: FailPolicy = FailPolicy.fail_closed
    login_url: str | None = None
    dispatcher_max_workers: int = 8
    xmpp_domain: str = "meet.jitsi"
    host_control_url: str | None = None
    host_control_timeout_sec: float = 5.0
    recording_dir: str = "/tmp/recordings"
    recording_descriptor_filename: str = "metadata.json"
    recording_file_service_url: str | None = None
    recording_upload_path: str = "/api/files/upload"
    recording_bucket: str = "recordings"

    @property
    def recording_webhook_url(self) -> str:
        return self.webhook_base_url.rstrip("/") + "/recording"

    @classmethod
    def from_settings(cls, s: Settings) -> OrchestratorConfig:
        return cls(
            webhook_base_url=(s.webhook_base_url or "").strip().rstrip("/"),
            webhook_secret=(s.webhook_secret or "").strip(),
            webhook_timeout_sec=max(0.1, float(s.webhook_timeout_sec)),
            signature_mode=SignatureMode.parse(s.webhook_signature_mode),
            user_agent=s.webhook_user_agent,
            fail_policy=FailPolicy.parse(s.access_fail_policy),
            login_url=(s.access_login_url or "").strip() or None,
            dispatcher_max_workers=max(1, int(s.dispatcher_max_workers)),
            xmpp_domain=(s.host_xmpp_domain or "").strip(),
            host_control_url=(s.host_control_url or "").strip().rstrip("/") or None,
            host_control_timeout_sec=max(0.1, float(s.host_control_timeout_sec)),
            recording_dir=s.recording_dir,
            recording_descriptor_filename=s.recording_descriptor_filename,
            recording_file_service_url=(s.recording_file_service_url or "").strip() or None,
            recording_upload_path=s.recording_upload_path,
            recording_bucket=s.recording_bucket,
        )
