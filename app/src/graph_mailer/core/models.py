"""ユースケース間で共有するデータモデル。"""

from __future__ import annotations

import base64
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Literal


@dataclass(frozen=True, slots=True)
class AllowListConfig:
    """起動時に確定する送信者・宛先ドメインの許可リスト。"""

    allowed_sender_addresses: frozenset[str]
    allowed_recipient_domains: frozenset[str]
    max_attachment_bytes: int


@dataclass(slots=True)
class Attachment:
    """base64 文字列で保持する添付ファイル。"""

    filename: str
    content_type: str
    content_base64: str


@dataclass(slots=True)
class SendRequest:
    """送信経路 (JSON / レガシー) 共通の内部リクエスト。"""

    from_upn: str
    to: list[str]
    subject: str
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    html_body: str | None = None
    text_body: str | None = None
    attachments: list[Attachment] = field(default_factory=list)
    save_to_sent_items: bool = True
    importance: str = "normal"

    @property
    def recipient_count(self) -> int:
        return len(self.to) + len(self.cc) + len(self.bcc)


@dataclass(slots=True)
class SendResult:
    """送信結果。トランスポート層へはこの値だけを返す。"""

    status: Literal["SUCCESS", "FAILED"]
    correlation_id: str
    message_id: str | None = None
    message: str | None = None
    error_code: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def success(cls, message_id: str, correlation_id: str) -> SendResult:
        return cls(
            status="SUCCESS",
            correlation_id=correlation_id,
            message_id=message_id,
            message="Email sent successfully",
        )

    @classmethod
    def failed(
        cls, message: str, correlation_id: str, *, error_code: str | None = None
    ) -> SendResult:
        return cls(
            status="FAILED",
            correlation_id=correlation_id,
            message=message,
            error_code=error_code,
        )

    @property
    def is_success(self) -> bool:
        return self.status == "SUCCESS"


class Importance(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"

    @classmethod
    def parse(cls, raw: str | None) -> Importance:
        """大文字小文字を無視して解釈し、未知の値は NORMAL に倒す。"""

        if not raw:
            return cls.NORMAL
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.NORMAL


@dataclass(slots=True)
class OutboundAttachment:
    name: str
    content_type: str
    content: bytes


@dataclass(slots=True)
class OutboundMessage:
    """Graph `sendMail` に渡すメッセージ。"""

    subject: str
    body_type: Literal["HTML", "Text"] | None
    body_content: str
    to: list[str]
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    importance: Importance = Importance.NORMAL
    attachments: list[OutboundAttachment] = field(default_factory=list)

    def to_graph_payload(self, save_to_sent_items: bool = True) -> dict[str, object]:
        """Graph REST API の sendMail リクエストボディへ変換する。"""

        body: dict[str, str] = {"content": self.body_content}
        if self.body_type:
            body["contentType"] = self.body_type
        message: dict[str, object] = {
            "subject": self.subject,
            "body": body,
            "toRecipients": _recipients(self.to),
            "importance": self.importance.value,
        }
        if self.cc:
            message["ccRecipients"] = _recipients(self.cc)
        if self.bcc:
            message["bccRecipients"] = _recipients(self.bcc)
        if self.attachments:
            message["attachments"] = [
                {
                    "@odata.type": "#microsoft.graph.fileAttachment",
                    "name": attachment.name,
                    "contentType": attachment.content_type,
                    "contentBytes": base64.b64encode(attachment.content).decode("ascii"),
                }
                for attachment in self.attachments
            ]
        return {"message": message, "saveToSentItems": save_to_sent_items}


def _recipients(addresses: list[str]) -> list[dict[str, dict[str, str]]]:
    return [{"emailAddress": {"address": address}} for address in addresses]


@dataclass(slots=True)
class MessageSummary:
    """受信メール一覧の 1 件分。"""

    message_id: str | None
    subject: str | None
    sender: str
    received_at: datetime | None
    body_preview: str | None = None
    is_read: bool = False
    has_attachments: bool = False


def new_identifier() -> str:
    return str(uuid.uuid4())
