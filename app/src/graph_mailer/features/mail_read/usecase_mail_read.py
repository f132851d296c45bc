"""受信メール読み出しユースケース: 取得 → 射影 → JSON / CSV 文字列化。"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Iterable

from graph_mailer.clients.mail_provider import MailProvider
from graph_mailer.core.logging import log_event
from graph_mailer.core.models import MessageSummary

CSV_HEADER = (
    "MessageId",
    "Subject",
    "From",
    "ReceivedDateTime",
    "IsRead",
    "HasAttachments",
)


def read_emails(
    provider: MailProvider,
    *,
    mailbox: str,
    correlation_id: str,
    sender: str | None = None,
    subject: str | None = None,
    top: int | None = None,
    filetype: str | None = "JSON",
    separator: str | None = ",",
    header: bool = True,
) -> str:
    """メールボックスを読み、指定形式の文字列を返す。取得失敗もエラー JSON で返す。"""

    try:
        messages = provider.list_messages(mailbox, sender=sender, subject=subject, top=top)
    except Exception as exc:
        log_event(
            "mail_read_failed",
            correlation_id=correlation_id,
            level=logging.ERROR,
            mailbox=mailbox,
            error=str(exc),
        )
        return error_json(f"Error reading emails: {exc}")

    log_event(
        "mail_read_completed",
        correlation_id=correlation_id,
        mailbox=mailbox,
        count=len(messages),
        filetype=filetype,
    )
    if is_csv(filetype):
        return to_csv(messages, separator=separator, header=header)
    return to_json(messages)


def is_csv(filetype: str | None) -> bool:
    return (filetype or "").strip().lower() == "csv"


def to_json(messages: Iterable[MessageSummary]) -> str:
    emails = [
        {
            "messageId": message.message_id,
            "subject": message.subject,
            "from": message.sender,
            "receivedDateTime": _format_instant(message.received_at),
            "bodyPreview": message.body_preview,
            "isRead": message.is_read,
            "hasAttachments": message.has_attachments,
        }
        for message in messages
    ]
    return json.dumps(
        {"status": "SUCCESS", "totalCount": len(emails), "emails": emails},
        ensure_ascii=False,
    )


def to_csv(
    messages: Iterable[MessageSummary],
    *,
    separator: str | None = ",",
    header: bool = True,
) -> str:
    sep = resolve_separator(separator)
    lines: list[str] = []
    if header:
        lines.append(sep.join(CSV_HEADER))
    for message in messages:
        row = [
            _escape_csv(message.message_id),
            _escape_csv(message.subject),
            _escape_csv(message.sender),
            _escape_csv(_format_instant(message.received_at)),
            _format_bool(message.is_read),
            _format_bool(message.has_attachments),
        ]
        lines.append(sep.join(row))
    return "".join(f"{line}\n" for line in lines)


def resolve_separator(separator: str | None) -> str:
    if not separator:
        return ","
    if separator == "comma":
        return ","
    return separator


def error_json(message: str) -> str:
    return json.dumps({"status": "ERROR", "message": message}, ensure_ascii=False)


def _escape_csv(value: str | None) -> str:
    if value is None:
        return ""
    if "," in value or '"' in value or "\n" in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


def _format_instant(value: datetime | None) -> str:
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
