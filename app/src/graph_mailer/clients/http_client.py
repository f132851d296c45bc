"""httpx クライアントの共通設定。"""

from __future__ import annotations

import httpx

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=5.0)


def timeout_from_ms(timeout_ms: int) -> httpx.Timeout:
    """設定値 (ミリ秒) から接続 5 秒上限のタイムアウトを作る。"""

    seconds = timeout_ms / 1000
    return httpx.Timeout(seconds, connect=min(5.0, seconds))


def create_sync_client(
    *,
    timeout: httpx.Timeout | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """共通タイムアウト付きの同期 Client を生成する。"""

    return httpx.Client(timeout=timeout or DEFAULT_TIMEOUT, transport=transport)
