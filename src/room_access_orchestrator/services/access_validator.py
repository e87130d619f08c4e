"""
Access Validator: синхронная проверка доступа перед входом в комнату.

Назначение:
- извлечь bearer-токен участника (сессия -> элемент stanza -> URL)
- приватная комната без токена: auth_required без обращения к backend
- иначе один вызов POST /validate-access (блокирует только этот join)
- встроенный в ответ снимок конфигурации отдаётся в apply_once

Ошибки backend разрешаются одной политикой (FailPolicy из конфига):
- timeout            -> service_timeout
- соединение / не-2xx -> service_unavailable
- тело пустое, не разобрать или без allowed -> invalid_response
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit

from pydantic import ValidationError as PydanticValidationError

from room_access_orchestrator.common.config import OrchestratorConfig
from room_access_orchestrator.common.errors import (
    AppError,
    AuthRequired,
    PolicyDenied,
    ProtocolError,
    TransportError,
)
from room_access_orchestrator.common.logging import get_project_logger
from room_access_orchestrator.common.metrics import record_access_decision
from room_access_orchestrator.contracts.webhooks import (
    ValidateAccessRequest,
    ValidateAccessResponse,
)
from room_access_orchestrator.domain.access import AccessDecision
from room_access_orchestrator.domain.enums import AccessReason, FailPolicy
from room_access_orchestrator.domain.room import Room
from room_access_orchestrator.domain.snapshot import parse_snapshot
from room_access_orchestrator.services.registry import RoomRegistry
from room_access_orchestrator.services.room_config import RoomConfigurationCache
from room_access_orchestrator.transport.client import WebhookTransport

log = get_project_logger()

VALIDATE_ACCESS_ENDPOINT = "/validate-access"
_URL_TOKEN_PARAMS = ("jwt", "token")


@dataclass(frozen=True)
class JoinContext:
    room_name: str
    user_jid: str
    user_name: str | None = None
    session_token: str | None = None
    stanza_token: str | None = None
    join_url: str | None = None


def _clean(token: str | None) -> str | None:
    value = (token or "").strip()
    return value or None


def extract_bearer_token(ctx: JoinContext) -> str | None:
    """
    Первый непустой из: токен сессии, элемент stanza, jwt/token из URL.
    """
    for candidate in (ctx.session_token, ctx.stanza_token):
        token = _clean(candidate)
        if token:
            return token
    if ctx.join_url:
        query = parse_qs(urlsplit(ctx.join_url).query)
        for key in _URL_TOKEN_PARAMS:
            for value in query.get(key, []):
                token = _clean(value)
                if token:
                    return token
    return None


def _failure_reason(error: AppError) -> AccessReason:
    if isinstance(error, TransportError):
        return AccessReason.service_timeout if error.timeout else AccessReason.service_unavailable
    if isinstance(error, ProtocolError) and error.status_code is not None and not (
        200 <= error.status_code < 300
    ):
        return AccessReason.service_unavailable
    return AccessReason.invalid_response


class AccessValidator:
    def __init__(
        self,
        config: OrchestratorConfig,
        *,
        transport: WebhookTransport,
        registry: RoomRegistry,
        cache: RoomConfigurationCache,
    ) -> None:
        self.config = config
        self.transport = transport
        self.registry = registry
        self.cache = cache

    def validate(self, ctx: JoinContext) -> AccessDecision:
        decision = self._decide(ctx)
        record_access_decision(allowed=decision.allowed, reason=decision.reason.value)
        log.info(
            "access_decision",
            extra={
                "payload": {
                    "room_name": ctx.room_name,
                    "user_jid": ctx.user_jid,
                    "allowed": decision.allowed,
                    "reason": decision.reason.value,
                    "degraded": decision.degraded,
                    "backend_called": decision.backend_called,
                }
            },
        )
        return decision

    def _decide(self, ctx: JoinContext) -> AccessDecision:
        room = self.registry.get(ctx.room_name)
        if room is None or room.destroyed:
            return AccessDecision(
                allowed=False,
                reason=AccessReason.room_not_found,
                backend_called=False,
            )

        token = extract_bearer_token(ctx)
        with room.lock:
            is_public = room.is_public
            meeting_id = room.meeting_id
        if is_public is False and token is None:
            err = AuthRequired()
            log.info(
                "access_auth_required_short_circuit",
                extra={"payload": {"room_name": ctx.room_name, "code": err.code}},
            )
            return AccessDecision(
                allowed=False,
                reason=AccessReason.auth_required,
                require_auth=True,
                redirect_url=self.config.login_url,
                backend_called=False,
            )

        request = ValidateAccessRequest(
            room_name=ctx.room_name,
            meeting_id=meeting_id,
            user_jid=ctx.user_jid,
            user_name=ctx.user_name,
            bearer_token=token,
        )
        result = self.transport.send(
            VALIDATE_ACCESS_ENDPOINT, request.to_json(), bearer_token=token
        )
        if result.error is not None:
            return self._on_failure(ctx, result.error)

        data, parse_err = result.json_body(allow_empty=False)
        if parse_err is not None:
            return self._on_failure(ctx, parse_err)
        try:
            response = ValidateAccessResponse.model_validate(data)
        except PydanticValidationError as e:
            return self._on_failure(
                ctx,
                ProtocolError(
                    "Ответ validate-access не соответствует контракту",
                    status_code=result.status_code,
                    details={"err": str(e)[:200]},
                ),
            )
        return self._on_response(ctx, room, response, has_token=token is not None)

    def _on_response(
        self,
        ctx: JoinContext,
        room: Room,
        response: ValidateAccessResponse,
        *,
        has_token: bool,
    ) -> AccessDecision:
        snapshot = None
        raw_snapshot = response.snapshot_data
        if raw_snapshot:
            snapshot = parse_snapshot(raw_snapshot)
            if snapshot is None:
                log.warning(
                    "access_snapshot_malformed",
                    extra={"payload": {"room_name": ctx.room_name}},
                )
            else:
                self.cache.apply_once(room, snapshot, source="validate_access")

        reason = AccessReason.from_backend(response.reason, allowed=response.allowed)
        message = response.message
        if response.allowed:
            reason = AccessReason.allowed
        elif reason is AccessReason.allowed:
            reason = AccessReason.access_denied
        if not response.allowed and not message and not AccessReason.is_known(response.reason):
            # незнакомая причина backend: текст сохраняем для участника
            message = (response.reason or "").strip() or None
        if (
            not response.allowed
            and response.require_auth
            and not AccessReason.is_known(response.reason)
        ):
            reason = AccessReason.auth_required

        if not response.allowed:
            denied = PolicyDenied(details={"reason": reason.value, "has_token": has_token})
            log.info(
                "access_denied_by_backend",
                extra={"payload": {"room_name": ctx.room_name, **(denied.details or {})}},
            )

        require_auth = bool(response.require_auth) or reason is AccessReason.auth_required
        redirect_url = response.redirect_url
        if require_auth and not redirect_url:
            redirect_url = self.config.login_url
        return AccessDecision(
            allowed=response.allowed,
            reason=reason,
            message=message,
            redirect_url=redirect_url,
            require_auth=require_auth and not response.allowed,
            snapshot=snapshot,
        )

    def _on_failure(self, ctx: JoinContext, error: AppError) -> AccessDecision:
        reason = _failure_reason(error)
        fail_open = self.config.fail_policy is FailPolicy.fail_open
        log.warning(
            "access_backend_failure",
            extra={
                "payload": {
                    "room_name": ctx.room_name,
                    "reason": reason.value,
                    "policy": self.config.fail_policy.value,
                    "code": error.code,
                    "error": error.message,
                }
            },
        )
        return AccessDecision(
            allowed=fail_open,
            reason=reason,
            degraded=True,
        )
