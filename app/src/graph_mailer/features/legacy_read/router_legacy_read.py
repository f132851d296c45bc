"""旧 EWS 互換の `/reademail` エンドポイント (非推奨)。"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from graph_mailer.clients.mail_provider import MailProvider
from graph_mailer.core.dependencies import (
    enforce_rate_limit,
    get_correlation_id,
    get_mail_provider,
)
from graph_mailer.core.logging import log_event
from graph_mailer.features.legacy_read.adapter_legacy_read import (
    LegacyReadFields,
    errors_json,
    validate_read_fields,
)
from graph_mailer.features.mail_read.usecase_mail_read import is_csv, read_emails

router = APIRouter(tags=["legacy"], dependencies=[Depends(enforce_rate_limit)])

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


@router.api_route("/reademail", methods=["GET", "POST"], deprecated=True)
async def legacy_read(
    request: Request,
    correlation_id: str = Depends(get_correlation_id),
    provider: MailProvider = Depends(get_mail_provider),
) -> Response:
    log_event(
        "deprecated_api_usage",
        correlation_id=correlation_id,
        level=logging.WARNING,
        path="/reademail",
    )

    params: dict[str, str] = dict(request.query_params)
    content_type = request.headers.get("content-type", "")
    if request.method == "POST" and content_type.startswith(_FORM_TYPES):
        form = await request.form()
        params.update({key: value for key, value in form.items() if isinstance(value, str)})

    fields = LegacyReadFields.from_params(params)
    error = validate_read_fields(fields)
    if error is not None:
        log_event("legacy_validation_error", correlation_id=correlation_id, error=error)
        return Response(content=error, status_code=400, media_type="application/json")

    try:
        body = await run_in_threadpool(
            read_emails,
            provider,
            mailbox=fields.from_addr or "",
            correlation_id=correlation_id,
            sender=fields.sender,
            subject=fields.subject,
            top=fields.counted,
            filetype=fields.filetype,
            separator=fields.separator,
            header=fields.include_header,
        )
    except Exception as exc:
        log_event(
            "legacy_read_error",
            correlation_id=correlation_id,
            level=logging.ERROR,
            error=repr(exc),
        )
        return Response(
            content=errors_json(f"Internal server error: {exc}"),
            status_code=500,
            media_type="application/json",
        )

    media_type = "text/csv; charset=utf-8" if is_csv(fields.filetype) else "application/json"
    return Response(content=body, status_code=200, media_type=media_type)
