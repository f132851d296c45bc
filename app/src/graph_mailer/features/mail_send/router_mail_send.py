"""FastAPI ルータ定義。"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from graph_mailer.clients.mail_provider import MailProvider
from graph_mailer.core.dependencies import (
    enforce_rate_limit,
    get_allow_list,
    get_correlation_id,
    get_mail_provider,
    get_settings,
)
from graph_mailer.core.errors import ErrorKind
from graph_mailer.core.models import AllowListConfig, SendResult
from graph_mailer.core.settings import Settings
from graph_mailer.features.mail_send.schemas_mail_send import (
    SendMailRequest,
    SendMailResponse,
)
from graph_mailer.features.mail_send.usecase_mail_send import RetryPolicy, send_mail

router = APIRouter(
    prefix="/api/v1/mail",
    tags=["mail"],
    dependencies=[Depends(enforce_rate_limit)],
)

_CATEGORY_STATUS = {
    "validation": 400,
    "authorization": 403,
    "size-limit": 413,
}


@router.post(
    "/send",
    response_model=SendMailResponse,
    responses={
        400: {"model": SendMailResponse},
        403: {"model": SendMailResponse},
        413: {"model": SendMailResponse},
        429: {"model": SendMailResponse},
        500: {"model": SendMailResponse},
    },
)
def mail_send(
    payload: SendMailRequest,
    correlation_id: str = Depends(get_correlation_id),
    settings: Settings = Depends(get_settings),
    provider: MailProvider = Depends(get_mail_provider),
    allow_list: AllowListConfig = Depends(get_allow_list),
) -> JSONResponse:
    result = send_mail(
        payload.to_send_request(),
        correlation_id=correlation_id,
        provider=provider,
        allow_list=allow_list,
        retry_policy=RetryPolicy.from_settings(settings),
    )
    body = SendMailResponse.from_result(result).to_json()
    return JSONResponse(body, status_code=status_for(result))


def status_for(result: SendResult) -> int:
    if result.is_success:
        return 200
    try:
        kind = ErrorKind(result.error_code)
    except ValueError:
        return 500
    return _CATEGORY_STATUS[kind.category]
