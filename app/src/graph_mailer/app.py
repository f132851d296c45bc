"""FastAPI アプリケーションの組み立てを担当するモジュール。"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from graph_mailer.clients.mail_provider import MailProvider, provider_from_settings
from graph_mailer.core.errors import RateLimitExceeded
from graph_mailer.core.middleware import correlation_id_middleware
from graph_mailer.core.models import SendResult
from graph_mailer.core.rate_limit import RateLimiter
from graph_mailer.core.settings import Settings, load_settings
from graph_mailer.features.legacy_read.router_legacy_read import router as legacy_read_router
from graph_mailer.features.legacy_send.router_legacy_send import router as legacy_send_router
from graph_mailer.features.mail_read.router_mail_read import router as mail_read_router
from graph_mailer.features.mail_send.router_mail_send import router as mail_send_router
from graph_mailer.features.mail_send.schemas_mail_send import SendMailResponse

APP_NAME = "graph-mailer"
APP_VERSION = "0.1.0"
APP_DESCRIPTION = "Microsoft Graph Mail Service - Replaces EWS email sending with Graph API"


def create_app(
    settings: Settings | None = None,
    *,
    mail_provider: MailProvider | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    """コア設定や共通ミドルウェアを組み込んだ FastAPI アプリを返す。

    送受信プロバイダはここで一度だけ選択する (APP_MODE=mock なら偽プロバイダ)。
    """

    settings = settings or load_settings()
    app = FastAPI(title=APP_NAME, version=APP_VERSION, description=APP_DESCRIPTION)
    app.state.settings = settings  # type: ignore[attr-defined]
    app.state.allow_list = settings.allow_list()  # type: ignore[attr-defined]
    app.state.mail_provider = (  # type: ignore[attr-defined]
        mail_provider if mail_provider is not None else provider_from_settings(settings)
    )
    # 空の RateLimiter は len() == 0 で偽になる。
    if rate_limiter is None:
        rate_limiter = RateLimiter(
            capacity=settings.rate_limit_capacity,
            interval_seconds=settings.rate_limit_refill_seconds,
        )
    app.state.rate_limiter = rate_limiter  # type: ignore[attr-defined]
    app.middleware("http")(correlation_id_middleware)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_handler)  # type: ignore[arg-type]

    @app.get("/healthz", tags=["health"])
    def healthz() -> dict[str, str]:
        return {"status": "ok", "env": settings.app_env, "mode": settings.app_mode}

    @app.get("/api/v1/info", tags=["info"])
    def info() -> dict[str, str]:
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "description": APP_DESCRIPTION,
            "environment": settings.app_env,
            "mode": settings.app_mode,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    app.include_router(mail_send_router)
    app.include_router(mail_read_router)
    app.include_router(legacy_send_router)
    app.include_router(legacy_read_router)

    return app


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid.uuid4())


async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    result = SendResult.failed(
        "Rate limit exceeded", _correlation_id(request), error_code="RATE_LIMIT_EXCEEDED"
    )
    return JSONResponse(SendMailResponse.from_result(result).to_json(), status_code=429)


async def _validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: dict[str, str] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors[".".join(location) or "request"] = str(error.get("msg", ""))
    return JSONResponse(
        {
            "title": "Validation Failed",
            "status": 400,
            "detail": "Request validation failed for one or more fields",
            "validationErrors": errors,
            "correlationId": _correlation_id(request),
        },
        status_code=400,
    )

