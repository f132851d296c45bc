"""送信リクエストの業務ルール検証。

検査順は固定で、最初の違反で打ち切る:

1. 送信元アドレスの書式
2. 送信元が許可リストに含まれるか
3. to → cc → bcc の順に宛先ドメインが許可されているか
4. 添付の MIME タイプと累積サイズ (1 件追加するたびに判定)
5. 本文サイズ
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Iterable

from graph_mailer.core.errors import ErrorKind, MailValidationError
from graph_mailer.core.models import AllowListConfig, Attachment, SendRequest

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
MAX_BODY_CHARS = 1_048_576

ALLOWED_MIME_TYPES = frozenset(
    {
        "text/plain",
        "text/html",
        "text/csv",
        "application/pdf",
        "application/zip",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "image/jpeg",
        "image/png",
        "image/gif",
    }
)


def validate(request: SendRequest, config: AllowListConfig) -> None:
    """違反があれば MailValidationError を送出する。副作用なし。"""

    _validate_sender(request.from_upn, config)
    for recipients in (request.to, request.cc, request.bcc):
        _validate_recipient_domains(recipients, config)
    _validate_attachments(request.attachments, config)
    _validate_content_size(request)


def is_valid_email(address: str | None) -> bool:
    return address is not None and EMAIL_PATTERN.match(address) is not None


def extract_domain(address: str) -> str:
    at_index = address.rfind("@")
    if at_index == -1:
        raise MailValidationError(ErrorKind.VALIDATION, f"Invalid email format: {address}")
    return address[at_index + 1 :].lower()


def decoded_size(attachment: Attachment) -> int:
    try:
        return len(base64.b64decode(attachment.content_base64, validate=True))
    except (binascii.Error, ValueError) as exc:
        raise MailValidationError(
            ErrorKind.VALIDATION,
            f"Invalid base64 content in attachment: {attachment.filename}",
        ) from exc


def _validate_sender(from_upn: str, config: AllowListConfig) -> None:
    if not is_valid_email(from_upn):
        raise MailValidationError(
            ErrorKind.VALIDATION, f"Invalid from email address: {from_upn}"
        )
    if from_upn not in config.allowed_sender_addresses:
        raise MailValidationError(
            ErrorKind.SENDER_NOT_ALLOWED,
            f"Sender UPN '{from_upn}' is not in the allowed senders list",
        )


def _validate_recipient_domains(recipients: Iterable[str], config: AllowListConfig) -> None:
    for recipient in recipients:
        domain = extract_domain(recipient)
        if domain not in config.allowed_recipient_domains:
            raise MailValidationError(
                ErrorKind.RECIPIENT_DOMAIN_NOT_ALLOWED,
                f"Recipient domain '{domain}' is not in the allowed domains list",
            )


def _validate_attachments(attachments: Iterable[Attachment], config: AllowListConfig) -> None:
    total_size = 0
    for attachment in attachments:
        if attachment.content_type not in ALLOWED_MIME_TYPES:
            raise MailValidationError(
                ErrorKind.VALIDATION,
                f"Attachment MIME type '{attachment.content_type}' is not allowed",
            )

        total_size += decoded_size(attachment)
        if total_size > config.max_attachment_bytes:
            raise MailValidationError(
                ErrorKind.SIZE_LIMIT,
                f"Total attachment size exceeds limit of {config.max_attachment_bytes} bytes",
            )


def _validate_content_size(request: SendRequest) -> None:
    if request.html_body is not None and len(request.html_body) > MAX_BODY_CHARS:
        raise MailValidationError(ErrorKind.SIZE_LIMIT, "HTML body exceeds 1MB limit")
    if request.text_body is not None and len(request.text_body) > MAX_BODY_CHARS:
        raise MailValidationError(ErrorKind.SIZE_LIMIT, "Text body exceeds 1MB limit")
