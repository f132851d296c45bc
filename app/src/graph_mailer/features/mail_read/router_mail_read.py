"""受信メール読み出しエンドポイント。"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from graph_mailer.clients.mail_provider import MailProvider
from graph_mailer.core.dependencies import (
    enforce_rate_limit,
    get_correlation_id,
    get_mail_provider,
)
from graph_mailer.features.mail_read.usecase_mail_read import is_csv, read_emails

router = APIRouter(
    prefix="/api/v1/mail",
    tags=["mail"],
    dependencies=[Depends(enforce_rate_limit)],
)


@router.get("/read")
def mail_read(
    mailbox: str | None = Query(None, description="読み出すメールボックスの UPN"),
    sender: str | None = Query(None, description="差出人アドレスで絞り込み"),
    subject: str | None = Query(None, description="件名の部分一致で絞り込み"),
    top: int = Query(10, description="取得件数 (1〜100)"),
    format: str = Query("json", description="json または csv"),
    separator: str = Query(",", description="CSV の区切り文字"),
    include_headers: bool = Query(True, alias="includeHeaders"),
    correlation_id: str = Depends(get_correlation_id),
    provider: MailProvider = Depends(get_mail_provider),
) -> Response:
    if not mailbox or not mailbox.strip():
        return _bad_request("Mailbox parameter is required", correlation_id)
    if top < 1 or top > 100:
        return _bad_request("Top parameter must be between 1 and 100", correlation_id)

    body = read_emails(
        provider,
        mailbox=mailbox,
        correlation_id=correlation_id,
        sender=sender,
        subject=subject,
        top=top,
        filetype="CSV" if is_csv(format) else "JSON",
        separator=separator,
        header=include_headers,
    )
    media_type = "text/csv; charset=utf-8" if is_csv(format) else "application/json"
    return Response(content=body, media_type=media_type)


def _bad_request(message: str, correlation_id: str) -> JSONResponse:
    return JSONResponse(
        {"error": message, "correlationId": correlation_id},
        status_code=400,
    )
