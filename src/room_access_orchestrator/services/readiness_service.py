"""
Runtime readiness checks for production rollout.
"""

from __future__ import annotations

from dataclasses import dataclass

from room_access_orchestrator.common.config import get_settings
from room_access_orchestrator.common.logging import get_project_logger
from room_access_orchestrator.common.security import is_prod_env
from room_access_orchestrator.domain.enums import FailPolicy, SignatureMode

log = get_project_logger()


@dataclass
class ReadinessIssue:
    severity: str  # error|warning
    code: str
    message: str


@dataclass
class ReadinessState:
    ready: bool
    issues: list[ReadinessIssue]


def evaluate_readiness() -> ReadinessState:
    s = get_settings()
    issues: list[ReadinessIssue] = []
    is_prod = is_prod_env(s.app_env)
    auth_mode = (s.auth_mode or "").strip().lower()

    if not (s.webhook_base_url or "").strip():
        issues.append(
            ReadinessIssue(
                severity="error",
                code="webhook_base_url_empty",
                message="WEBHOOK_BASE_URL не задан, backend недоступен",
            )
        )

    if not (s.webhook_secret or "").strip():
        issues.append(
            ReadinessIssue(
                severity="error" if is_prod else "warning",
                code="webhook_secret_empty",
                message="WEBHOOK_SECRET пустой, webhook'и уходят без подписи",
            )
        )

    if auth_mode == "api_key" and not (
        (s.api_keys or "").strip() or (s.service_api_keys or "").strip()
    ):
        issues.append(
            ReadinessIssue(
                severity="error",
                code="auth_api_keys_empty",
                message="AUTH_MODE=api_key требует непустой API_KEYS или SERVICE_API_KEYS",
            )
        )

    try:
        fail_policy = FailPolicy.parse(s.access_fail_policy)
    except ValueError:
        fail_policy = None
        issues.append(
            ReadinessIssue(
                severity="error",
                code="access_fail_policy_invalid",
                message="ACCESS_FAIL_POLICY должен быть fail_closed|fail_open",
            )
        )

    try:
        signature_mode = SignatureMode.parse(s.webhook_signature_mode)
    except ValueError:
        signature_mode = None
        issues.append(
            ReadinessIssue(
                severity="error",
                code="webhook_signature_mode_invalid",
                message="WEBHOOK_SIGNATURE_MODE должен быть hmac|legacy|both",
            )
        )

    if is_prod:
        if auth_mode == "none":
            issues.append(
                ReadinessIssue(
                    severity="error",
                    code="auth_none_in_prod",
                    message="AUTH_MODE=none запрещен в prod",
                )
            )
        if auth_mode == "jwt" and not (s.jwt_shared_secret or "").strip():
            issues.append(
                ReadinessIssue(
                    severity="error",
                    code="jwt_shared_secret_empty",
                    message="AUTH_MODE=jwt требует JWT_SHARED_SECRET",
                )
            )
        if fail_policy is FailPolicy.fail_open:
            issues.append(
                ReadinessIssue(
                    severity="warning",
                    code="access_fail_open_in_prod",
                    message="ACCESS_FAIL_POLICY=fail_open: при сбое backend вход разрешается",
                )
            )
        if (s.webhook_base_url or "").strip().lower().startswith("http://"):
            issues.append(
                ReadinessIssue(
                    severity="warning",
                    code="webhook_base_url_not_https",
                    message="В prod WEBHOOK_BASE_URL лучше держать на https://",
                )
            )
        if signature_mode is SignatureMode.legacy:
            issues.append(
                ReadinessIssue(
                    severity="warning",
                    code="webhook_signature_legacy_only",
                    message="WEBHOOK_SIGNATURE_MODE=legacy: секрет уходит в заголовке без HMAC",
                )
            )

    ready = all(i.severity != "error" for i in issues)
    return ReadinessState(ready=ready, issues=issues)


def enforce_startup_readiness(*, service_name: str) -> ReadinessState:
    s = get_settings()
    state = evaluate_readiness()
    errors = [i for i in state.issues if i.severity == "error"]

    if errors:
        log.error(
            "startup_readiness_failed",
            extra={
                "payload": {
                    "service": service_name,
                    "app_env": s.app_env,
                    "error_codes": [e.code for e in errors],
                }
            },
        )
    else:
        log.info(
            "startup_readiness_ok",
            extra={"payload": {"service": service_name, "app_env": s.app_env}},
        )

    should_fail_fast = is_prod_env(s.app_env) and bool(s.readiness_fail_fast_in_prod)
    if should_fail_fast and errors:
        msg = ", ".join(e.code for e in errors)
        raise RuntimeError(f"startup readiness failed for {service_name}: {msg}")
    return state
