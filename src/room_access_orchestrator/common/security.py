"""
Авторизация входящих запросов к gateway (от хоста конференций).

Поддерживаемые режимы (AUTH_MODE):
- api_key — проверка X-API-Key
- jwt     — проверка Bearer JWT (shared secret) + опциональный service API key
- none    — без авторизации (ТОЛЬКО dev)

Это НЕ проверка токена участника встречи: его валидирует backend
через /validate-access.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jwt

from .config import get_settings
from .errors import UnauthorizedError


def _parse_csv(raw: str | None) -> set[str]:
    return {v.strip() for v in (raw or "").split(",") if v.strip()}


@dataclass(frozen=True)
class AuthContext:
    subject: str
    auth_type: str
    claims: dict[str, Any] | None = None


def _extract_bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    prefix = "bearer "
    if authorization.lower().startswith(prefix):
        return authorization[len(prefix) :].strip() or None
    return None


def is_prod_env(app_env: str | None) -> bool:
    env = (app_env or "").strip().lower()
    return env in {"prod", "production"}


def _verify_jwt(token: str) -> dict[str, Any]:
    s = get_settings()
    secret = (s.jwt_shared_secret or "").strip()
    if not secret:
        raise UnauthorizedError("JWT не настроен: укажи JWT_SHARED_SECRET")

    algos = sorted(_parse_csv(s.jwt_algorithms)) or ["HS256"]
    kwargs: dict[str, Any] = {
        "algorithms": algos,
        "options": {"verify_aud": bool(s.jwt_audience)},
        "leeway": max(0, int(s.jwt_clock_skew_sec)),
    }
    if s.jwt_audience:
        kwargs["audience"] = s.jwt_audience
    if s.jwt_issuer:
        kwargs["issuer"] = s.jwt_issuer

    try:
        return jwt.decode(token, secret, **kwargs)
    except jwt.PyJWTError as e:
        raise UnauthorizedError("JWT не прошёл проверку", {"err": str(e)}) from e


def require_auth(*, authorization: str | None, x_api_key: str | None) -> AuthContext:
    """
    Универсальная проверка авторизации:
    - AUTH_MODE=none: без проверки (dev)
    - AUTH_MODE=api_key: только X-API-Key / SERVICE_API_KEYS
    - AUTH_MODE=jwt: JWT (Bearer) + опциональный service API key fallback
    """
    settings = get_settings()
    mode = (settings.auth_mode or "api_key").lower().strip()

    if mode == "none":
        if is_prod_env(settings.app_env):
            raise UnauthorizedError("AUTH_MODE=none запрещён в APP_ENV=prod")
        return AuthContext(subject="anonymous", auth_type="none")

    user_keys = _parse_csv(settings.api_keys)
    service_keys = _parse_csv(settings.service_api_keys)
    has_valid_key = bool(x_api_key and x_api_key in (user_keys | service_keys))
    has_valid_service_key = bool(x_api_key and x_api_key in service_keys)

    if mode == "api_key":
        if not has_valid_key:
            raise UnauthorizedError("Неверный API ключ")
        if has_valid_service_key:
            return AuthContext(subject="service", auth_type="service_api_key")
        return AuthContext(subject="host", auth_type="user_api_key")

    if mode != "jwt":
        raise UnauthorizedError("Неизвестный режим авторизации")

    token = _extract_bearer(authorization)
    if token:
        claims = _verify_jwt(token)
        sub = str(claims.get("sub") or claims.get("client_id") or "jwt_subject")
        return AuthContext(subject=sub, auth_type="jwt", claims=claims)

    if settings.allow_service_api_key_in_jwt_mode and has_valid_service_key:
        return AuthContext(subject="service", auth_type="service_api_key")

    raise UnauthorizedError("Требуется Bearer JWT или service API key")
