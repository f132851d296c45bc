"""JSONロギングの共通ヘルパー。"""

from __future__ import annotations

import json
import logging
import traceback
from typing import Any

from graph_mailer.core.models import SendRequest

_LOGGER = logging.getLogger("graph_mailer")


def log_request(*, path: str, status: int, correlation_id: str, latency_ms: int) -> None:
    payload = {
        "level": "INFO",
        "path": path,
        "status": status,
        "correlation_id": correlation_id,
        "latency_ms": latency_ms,
    }
    _LOGGER.info(json.dumps(payload, ensure_ascii=False))


def log_error(
    *,
    path: str,
    status: int,
    correlation_id: str,
    latency_ms: int,
    error: Any,
    error_id: str | None = None,
) -> None:
    payload = {
        "level": "ERROR",
        "path": path,
        "status": status,
        "correlation_id": correlation_id,
        "latency_ms": latency_ms,
        "error_id": error_id,
        "error_json": _to_error_json(error),
        "traceback": traceback.format_exc(),
    }
    _LOGGER.error(json.dumps(payload, ensure_ascii=False))


def log_event(
    event: str,
    *,
    correlation_id: str | None,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """任意のイベントを 1 行の JSON として出力する。"""

    payload = {
        "level": logging.getLevelName(level),
        "event": event,
        "correlation_id": correlation_id,
        **fields,
    }
    _LOGGER.log(level, json.dumps(payload, ensure_ascii=False, default=str))


def log_mail_sent(request: SendRequest, *, message_id: str, correlation_id: str) -> None:
    log_event(
        "mail_sent",
        correlation_id=correlation_id,
        message_id=message_id,
        **_audit_fields(request),
    )


def log_mail_failed(request: SendRequest, *, reason: str, correlation_id: str) -> None:
    log_event(
        "mail_failed",
        correlation_id=correlation_id,
        level=logging.WARNING,
        reason=reason,
        **_audit_fields(request),
    )


def _audit_fields(request: SendRequest) -> dict[str, Any]:
    return {
        "from": request.from_upn,
        "to_count": len(request.to),
        "cc_count": len(request.cc),
        "bcc_count": len(request.bcc),
        "subject": request.subject,
        "attachment_count": len(request.attachments),
    }


def _to_error_json(error: Any) -> str:
    if isinstance(error, (dict, list)):
        return json.dumps(error, ensure_ascii=False)
    return json.dumps({"message": str(error)}, ensure_ascii=False)
