"""FastAPI 用の共通ミドルウェア群。"""

from __future__ import annotations

import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from graph_mailer.core.errors import InternalError
from graph_mailer.core.logging import log_error, log_request

CORRELATION_HEADER = "X-Correlation-Id"

RequestHandler = Callable[[Request], Awaitable[Response]]


async def correlation_id_middleware(request: Request, call_next: RequestHandler) -> Response:
    """X-Correlation-Id を受理・生成しレスポンスヘッダへ付与する。

    ハンドラで捕捉されなかった例外もここで 500 応答に変換し、同じヘッダを付ける。
    """

    correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
    request.state.correlation_id = correlation_id

    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as exc:
        latency_ms = int((time.perf_counter() - started) * 1000)
        response = _internal_error_response(request, exc, correlation_id, latency_ms)
    else:
        latency_ms = int((time.perf_counter() - started) * 1000)
        log_request(
            path=request.url.path,
            status=response.status_code,
            correlation_id=correlation_id,
            latency_ms=latency_ms,
        )

    response.headers[CORRELATION_HEADER] = correlation_id
    response.headers["X-Response-Time-Ms"] = str(latency_ms)
    return response


def _internal_error_response(
    request: Request, exc: Exception, correlation_id: str, latency_ms: int
) -> JSONResponse:
    internal = InternalError(str(uuid.uuid4()))
    log_error(
        path=request.url.path,
        status=500,
        correlation_id=correlation_id,
        latency_ms=latency_ms,
        error=exc,
        error_id=internal.error_id,
    )
    return JSONResponse(
        {
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred",
            "errorId": internal.error_id,
            "correlationId": correlation_id,
        },
        status_code=500,
    )
