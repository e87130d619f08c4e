"""
HTTP-транспорт к backend (Signature & Transport Helper).

Контракт:
- send(endpoint, payload) -> TransportResult(status_code, body, error)
- POST с ограниченным таймаутом, подпись HMAC и/или legacy-секрет
- НИКОГДА не бросает: ошибки сети/протокола возвращаются значением,
  политику решает вызывающий код
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any

import requests

from room_access_orchestrator.common.errors import AppError, ProtocolError, TransportError
from room_access_orchestrator.common.logging import get_webhook_logger
from room_access_orchestrator.common.metrics import record_webhook_call
from room_access_orchestrator.common.time import unix_ts
from room_access_orchestrator.domain.enums import SignatureMode

from .signing import (
    LEGACY_SECRET_HEADER,
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    canonical_json,
    sign_payload,
)

log = get_webhook_logger()


@dataclass
class TransportResult:
    status_code: int | None
    body: str = ""
    error: AppError | None = None
    elapsed_ms: float = 0.0
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    def json_body(
        self, *, allow_empty: bool = True
    ) -> tuple[dict[str, Any] | None, ProtocolError | None]:
        """
        Разобрать тело как JSON-объект.
        Пустое тело на 2xx считается пустым объектом, если allow_empty=True;
        иначе это ProtocolError (ответ, на котором строится решение).
        """
        if not self.body or not self.body.strip():
            if allow_empty:
                return {}, None
            return None, ProtocolError(
                "Пустое тело ответа", status_code=self.status_code
            )
        try:
            data = json.loads(self.body)
        except ValueError as e:
            return None, ProtocolError(
                "Тело ответа не JSON",
                status_code=self.status_code,
                details={"err": str(e)[:200]},
            )
        if not isinstance(data, dict):
            return None, ProtocolError(
                "Тело ответа не JSON-объект",
                status_code=self.status_code,
                details={"type": type(data).__name__},
            )
        return data, None


class WebhookTransport:
    def __init__(
        self,
        *,
        base_url: str,
        secret: str = "",
        timeout_sec: float = 5.0,
        signature_mode: SignatureMode = SignatureMode.both,
        user_agent: str = "room-access-orchestrator/0.1",
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.secret = secret or ""
        self.timeout_sec = float(timeout_sec)
        self.signature_mode = signature_mode
        self.user_agent = user_agent
        self._session = session or requests.Session()

    def _headers(self, body: bytes, bearer_token: str | None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
            TIMESTAMP_HEADER: str(unix_ts()),
        }
        if self.secret:
            if self.signature_mode in {SignatureMode.hmac, SignatureMode.both}:
                headers[SIGNATURE_HEADER] = sign_payload(body, self.secret)
            if self.signature_mode in {SignatureMode.legacy, SignatureMode.both}:
                headers[LEGACY_SECRET_HEADER] = self.secret
        if bearer_token:
            headers["Authorization"] = f"Bearer {bearer_token}"
        return headers

    def send(
        self,
        endpoint: str,
        payload: dict[str, Any],
        *,
        bearer_token: str | None = None,
        timeout_sec: float | None = None,
    ) -> TransportResult:
        url = f"{self.base_url}{endpoint}"
        body = canonical_json(payload)
        headers = self._headers(body, bearer_token)
        timeout = self.timeout_sec if timeout_sec is None else float(timeout_sec)

        started = time.perf_counter()
        try:
            resp = self._session.post(url, data=body, headers=headers, timeout=timeout)
        except requests.Timeout as e:
            result = TransportResult(
                status_code=None,
                error=TransportError(
                    "Таймаут обращения к backend",
                    timeout=True,
                    details={"endpoint": endpoint, "timeout_sec": timeout},
                ),
            )
            return self._finish(endpoint, result, started, err=e)
        except requests.RequestException as e:
            result = TransportResult(
                status_code=None,
                error=TransportError(
                    "Ошибка соединения с backend",
                    details={"endpoint": endpoint, "err": str(e)[:200]},
                ),
            )
            return self._finish(endpoint, result, started, err=e)

        text = resp.text or ""
        result = TransportResult(
            status_code=resp.status_code,
            body=text,
            headers=dict(resp.headers or {}),
        )
        if not 200 <= resp.status_code < 300:
            result.error = ProtocolError(
                f"Backend ответил HTTP {resp.status_code}",
                status_code=resp.status_code,
                details={"endpoint": endpoint, "body": text[:200]},
            )
        return self._finish(endpoint, result, started)

    def _finish(
        self,
        endpoint: str,
        result: TransportResult,
        started: float,
        *,
        err: Exception | None = None,
    ) -> TransportResult:
        result.elapsed_ms = (time.perf_counter() - started) * 1000
        if result.error is None:
            outcome = "ok"
        elif isinstance(result.error, TransportError):
            outcome = "transport_error"
        else:
            outcome = "protocol_error"
        record_webhook_call(endpoint=endpoint, result=outcome, elapsed_ms=result.elapsed_ms)

        payload = {
            "endpoint": endpoint,
            "status_code": result.status_code,
            "elapsed_ms": round(result.elapsed_ms, 1),
        }
        if result.error is None:
            log.info("webhook_sent", extra={"payload": payload})
        else:
            payload["error"] = result.error.message
            if err is not None:
                payload["err"] = str(err)[:200]
            log.warning("webhook_failed", extra={"payload": payload})
        return result

    def close(self) -> None:
        self._session.close()
