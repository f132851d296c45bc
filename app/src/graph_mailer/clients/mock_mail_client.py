"""Graph に接続せず送受信を模擬するクライアント (APP_MODE=mock)。"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from graph_mailer.core.models import MessageSummary, OutboundMessage

_LOGGER = logging.getLogger("graph_mailer")

_DEFAULT_READ_COUNT = 5
_LATEST_RECEIVED_AT = datetime(2025, 10, 21, 23, 0, tzinfo=timezone.utc)


@dataclass(slots=True)
class SentMail:
    sender: str
    save_to_sent_items: bool
    message: OutboundMessage


class MockMailClient:
    """送信したメッセージをメモリに残すだけの偽プロバイダ。実メールは送らない。"""

    def __init__(self) -> None:
        self._sent: list[SentMail] = []
        self._lock = threading.Lock()
        _LOGGER.info("Mock mail client initialized - NO REAL EMAILS WILL BE SENT")

    @property
    def sent(self) -> list[SentMail]:
        with self._lock:
            return list(self._sent)

    def send_mail(
        self,
        message: OutboundMessage,
        *,
        sender: str,
        save_to_sent_items: bool,
    ) -> None:
        with self._lock:
            self._sent.append(
                SentMail(sender=sender, save_to_sent_items=save_to_sent_items, message=message)
            )
        _LOGGER.info(
            "mock mail sent from=%s to=%s subject=%s attachments=%d",
            sender,
            ", ".join(message.to),
            message.subject,
            len(message.attachments),
        )

    def list_messages(
        self,
        mailbox: str,
        *,
        sender: str | None = None,
        subject: str | None = None,
        top: int | None = None,
    ) -> list[MessageSummary]:
        count = top if top and top > 0 else _DEFAULT_READ_COUNT
        summaries: list[MessageSummary] = []
        for index in range(1, count + 1):
            # 番号が大きいほど古い時刻 (新しい順)。
            received_at = _LATEST_RECEIVED_AT - timedelta(minutes=index)
            summaries.append(
                MessageSummary(
                    message_id=f"mock-msg-{index}",
                    subject=f"{subject + ' ' if subject else ''}Mock Email {index}",
                    sender=sender or f"mock.sender{index}@example.com",
                    received_at=received_at,
                    body_preview="This is a mock email body preview for testing purposes",
                    is_read=index % 2 == 0,
                    has_attachments=index % 3 == 0,
                )
            )
        _LOGGER.info("mock mailbox read mailbox=%s count=%d", mailbox, len(summaries))
        return summaries
