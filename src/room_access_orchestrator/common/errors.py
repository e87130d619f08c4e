"""
Единые ошибки и коды ошибок.

Назначение:
- предсказуемые коды для HTTP-ответов gateway и логов
- таксономия ошибок обращения к backend (transport/protocol)
- ошибки решения о доступе (policy/auth)

TransportError/ProtocolError возвращаются транспортом как значения,
а не бросаются: политику выбирает вызывающий код.
"""

from __future__ import annotations

from dataclasses import dataclass


class ErrCode:
    # Общие
    UNKNOWN = "unknown"
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"

    # Backend webhooks
    TRANSPORT = "transport_error"
    PROTOCOL = "protocol_error"

    # Доступ
    POLICY_DENIED = "policy_denied"
    AUTH_REQUIRED = "auth_required"

    # Конфигурация комнаты
    CONFIG_APPLY_CONFLICT = "config_apply_conflict"

    # Запись
    RECORDING_PROVISIONING = "recording_provisioning_error"


@dataclass
class AppError(Exception):
    """
    Базовая ошибка приложения.
    - code: стабильный код ошибки
    - message: безопасное сообщение
    - details: доп. данные (без секретов/токенов)
    """

    code: str
    message: str
    details: dict | None = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"


class ValidationError(AppError):
    def __init__(self, message: str = "Ошибка валидации", details: dict | None = None) -> None:
        super().__init__(ErrCode.VALIDATION, message, details)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Не авторизован", details: dict | None = None) -> None:
        super().__init__(ErrCode.UNAUTHORIZED, message, details)


class NotFoundError(AppError):
    def __init__(self, message: str = "Не найдено", details: dict | None = None) -> None:
        super().__init__(ErrCode.NOT_FOUND, message, details)


# =============================================================================
# BACKEND
# =============================================================================
class TransportError(AppError):
    """
    Соединение не установлено / оборвано / истёк таймаут.
    """

    def __init__(
        self, message: str = "Backend недоступен", *, timeout: bool = False, details: dict | None = None
    ) -> None:
        super().__init__(ErrCode.TRANSPORT, message, details)
        self.timeout = timeout


class ProtocolError(AppError):
    """
    Backend ответил не-2xx или телом, которое не разобрать.
    """

    def __init__(
        self,
        message: str = "Некорректный ответ backend",
        *,
        status_code: int | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(ErrCode.PROTOCOL, message, details)
        self.status_code = status_code


# =============================================================================
# ДОСТУП
# =============================================================================
class PolicyDenied(AppError):
    def __init__(self, message: str = "Доступ запрещён backend", details: dict | None = None) -> None:
        super().__init__(ErrCode.POLICY_DENIED, message, details)


class AuthRequired(AppError):
    def __init__(
        self, message: str = "Для приватной встречи нужна авторизация", details: dict | None = None
    ) -> None:
        super().__init__(ErrCode.AUTH_REQUIRED, message, details)


class ConfigApplyConflict(AppError):
    """
    Конфигурация комнаты уже применена другим участником.
    Разрешается внутри кэша конфигурации, наружу не выходит.
    """

    def __init__(self, room_name: str) -> None:
        super().__init__(
            ErrCode.CONFIG_APPLY_CONFLICT,
            "Конфигурация комнаты уже применена",
            {"room_name": room_name},
        )
