"""ルータ間で共有する FastAPI 依存関数。"""

from __future__ import annotations

import logging
import uuid

from fastapi import Request

from graph_mailer.clients.mail_provider import MailProvider
from graph_mailer.core.errors import RateLimitExceeded
from graph_mailer.core.logging import log_event
from graph_mailer.core.models import AllowListConfig
from graph_mailer.core.rate_limit import RateLimiter, resolve_client_id
from graph_mailer.core.settings import Settings


async def get_settings(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


async def get_allow_list(request: Request) -> AllowListConfig:
    return request.app.state.allow_list  # type: ignore[attr-defined]


async def get_mail_provider(request: Request) -> MailProvider:
    return request.app.state.mail_provider  # type: ignore[attr-defined]


async def get_correlation_id(request: Request) -> str:
    # ミドルウェアを通らない呼び出し (単体テスト等) でも ID を欠かさない。
    correlation_id = getattr(request.state, "correlation_id", None)
    if not correlation_id:
        correlation_id = str(uuid.uuid4())
        request.state.correlation_id = correlation_id
    return correlation_id


async def enforce_rate_limit(request: Request) -> None:
    """他の処理より先にクライアント IP 単位のレート制限を適用する。"""

    limiter: RateLimiter = request.app.state.rate_limiter  # type: ignore[attr-defined]
    peer = request.client.host if request.client else None
    client_id = resolve_client_id(request.headers, peer)
    if limiter.allow(client_id):
        return

    log_event(
        "rate_limit_exceeded",
        correlation_id=await get_correlation_id(request),
        level=logging.WARNING,
        client_id=client_id,
        path=request.url.path,
    )
    raise RateLimitExceeded(client_id)
