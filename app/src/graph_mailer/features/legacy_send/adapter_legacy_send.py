"""旧 `/sendemail` のフォーム項目を内部の SendRequest へ写像する。

旧クライアントはレスポンス本文で成否を判定するため、必須項目エラーの文言は
旧実装のまま (インドネシア語) 返す。`paswd` は受け取るだけで認証には使わない。
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field

from graph_mailer.core.models import Attachment, SendRequest

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_FILENAME = "attachment"
HTML_MARKERS = ("<html>", "<p>", "<br>")


@dataclass(slots=True)
class LegacyUpload:
    content: bytes
    filename: str | None = None
    content_type: str | None = None


@dataclass(slots=True)
class LegacySendFields:
    subject: str | None = None
    from_addr: str | None = None
    password: str | None = None
    emailbody: str | None = None
    to: list[str] = field(default_factory=list)
    cc: list[str] = field(default_factory=list)
    uploads: list[LegacyUpload] = field(default_factory=list)
    attach_names: list[str] = field(default_factory=list)


def validate_legacy_fields(fields: LegacySendFields) -> str | None:
    """必須項目の欠落を旧実装と同じ順序・文言で返す。問題なければ None。"""

    if _blank(fields.from_addr):
        return "From tidak boleh kosong!"
    if _blank(fields.password):
        return "Password tidak boleh kosong!"
    if _blank(fields.emailbody):
        return "Email body tidak boleh kosong!"
    if _blank(fields.subject):
        return "Subject tidak boleh kosong!"
    if not fields.to:
        return "To tidak boleh kosong!"
    return None


def is_html(body: str) -> bool:
    """`<html>` `<p>` `<br>` のいずれかを (大文字小文字無視で) 含めば HTML とみなす。"""

    lowered = body.lower()
    return any(marker in lowered for marker in HTML_MARKERS)


def adapt(fields: LegacySendFields) -> SendRequest:
    """validate_legacy_fields を通過したフォーム項目を SendRequest へ変換する。"""

    body = fields.emailbody or ""
    html = is_html(body)
    return SendRequest(
        from_upn=fields.from_addr or "",
        to=list(fields.to),
        cc=list(fields.cc),
        bcc=[],
        subject=fields.subject or "",
        html_body=body if html else None,
        text_body=None if html else body,
        attachments=_adapt_attachments(fields.uploads, fields.attach_names),
        save_to_sent_items=True,
        importance="normal",
    )


def _adapt_attachments(uploads: list[LegacyUpload], names: list[str]) -> list[Attachment]:
    attachments: list[Attachment] = []
    for index, upload in enumerate(uploads):
        if not upload.content:
            continue
        paired = names[index] if index < len(names) else None
        filename = paired if paired and paired.strip() else upload.filename
        attachments.append(
            Attachment(
                filename=filename or DEFAULT_FILENAME,
                content_type=upload.content_type or DEFAULT_CONTENT_TYPE,
                content_base64=base64.b64encode(upload.content).decode("ascii"),
            )
        )
    return attachments


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()
