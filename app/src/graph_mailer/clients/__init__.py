"""外部サービスへの接続ヘルパーをまとめたパッケージ。"""

from __future__ import annotations

__all__ = [
    "graph_client",
    "http_client",
    "mail_provider",
    "mock_mail_client",
]
