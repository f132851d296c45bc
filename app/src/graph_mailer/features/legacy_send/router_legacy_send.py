"""旧 EWS 互換の `/sendemail` エンドポイント (非推奨)。

旧クライアントとの互換のため、検証エラーも送信失敗も HTTP 200 で返し、
本文が `OK` かどうかで成否を伝える。
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import PlainTextResponse

from graph_mailer.clients.mail_provider import MailProvider
from graph_mailer.core.dependencies import (
    enforce_rate_limit,
    get_allow_list,
    get_correlation_id,
    get_mail_provider,
    get_settings,
)
from graph_mailer.core.logging import log_event
from graph_mailer.core.models import AllowListConfig
from graph_mailer.core.settings import Settings
from graph_mailer.features.legacy_send.adapter_legacy_send import (
    LegacySendFields,
    LegacyUpload,
    adapt,
    validate_legacy_fields,
)
from graph_mailer.features.mail_send.usecase_mail_send import RetryPolicy, send_mail

router = APIRouter(tags=["legacy"], dependencies=[Depends(enforce_rate_limit)])


@router.post("/sendemail", response_class=PlainTextResponse, deprecated=True)
def legacy_send(
    subject: str | None = Form(None),
    from_addr: str | None = Form(None, alias="from"),
    paswd: str | None = Form(None),
    emailbody: str | None = Form(None),
    to: list[str] | None = Form(None),
    cc: list[str] | None = Form(None),
    attach_bytes: list[UploadFile] | None = File(None, alias="attachBytes"),
    attach_name: list[str] | None = Form(None, alias="attachName"),
    correlation_id: str = Depends(get_correlation_id),
    settings: Settings = Depends(get_settings),
    provider: MailProvider = Depends(get_mail_provider),
    allow_list: AllowListConfig = Depends(get_allow_list),
) -> PlainTextResponse:
    log_event(
        "deprecated_api_usage",
        correlation_id=correlation_id,
        level=logging.WARNING,
        path="/sendemail",
        replacement="/api/v1/mail/send",
        sender=from_addr,
    )

    fields = LegacySendFields(
        subject=subject,
        from_addr=from_addr,
        password=paswd,
        emailbody=emailbody,
        to=[item for item in (to or []) if item],
        cc=[item for item in (cc or []) if item],
        uploads=[_read_upload(upload) for upload in (attach_bytes or [])],
        attach_names=list(attach_name or []),
    )
    error = validate_legacy_fields(fields)
    if error is not None:
        log_event("legacy_validation_error", correlation_id=correlation_id, error=error)
        return PlainTextResponse(error, status_code=200)

    try:
        result = send_mail(
            adapt(fields),
            correlation_id=correlation_id,
            provider=provider,
            allow_list=allow_list,
            retry_policy=RetryPolicy.from_settings(settings),
        )
    except Exception as exc:
        log_event(
            "legacy_send_error",
            correlation_id=correlation_id,
            level=logging.ERROR,
            error=repr(exc),
        )
        return PlainTextResponse(f"Internal server error: {exc}", status_code=200)

    if result.is_success:
        return PlainTextResponse("OK", status_code=200)
    return PlainTextResponse(result.message or "", status_code=200)


def _read_upload(upload: UploadFile) -> LegacyUpload:
    return LegacyUpload(
        content=upload.file.read(),
        filename=upload.filename,
        content_type=upload.content_type,
    )
