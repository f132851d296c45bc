"""アプリ共通の例外階層。"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """検証エラーの種別。クライアントが分岐に使う安定したコード。"""

    VALIDATION = "VALIDATION_ERROR"
    SENDER_NOT_ALLOWED = "SENDER_NOT_ALLOWED"
    RECIPIENT_DOMAIN_NOT_ALLOWED = "RECIPIENT_DOMAIN_NOT_ALLOWED"
    SIZE_LIMIT = "SIZE_LIMIT_EXCEEDED"

    @property
    def category(self) -> str:
        if self in (ErrorKind.SENDER_NOT_ALLOWED, ErrorKind.RECIPIENT_DOMAIN_NOT_ALLOWED):
            return "authorization"
        if self is ErrorKind.SIZE_LIMIT:
            return "size-limit"
        return "validation"


class GraphMailerError(Exception):
    """graph_mailer が送出する例外の基底クラス。"""


class MailValidationError(GraphMailerError):
    """入力が形式またはポリシーに違反している。"""

    def __init__(self, kind: ErrorKind, reason: str) -> None:
        super().__init__(reason)
        self.kind = kind
        self.reason = reason


class RateLimitExceeded(GraphMailerError):
    """クライアントのトークンバケットが枯渇している。"""

    def __init__(self, client_id: str) -> None:
        super().__init__(f"Rate limit exceeded for {client_id}")
        self.client_id = client_id


class MailSendFailure(GraphMailerError):
    """リトライを使い切っても送信できなかった。"""


class InternalError(GraphMailerError):
    """想定外の失敗。詳細は隠し、相関用の error_id だけを返す。"""

    def __init__(self, error_id: str) -> None:
        super().__init__("Internal server error")
        self.error_id = error_id
