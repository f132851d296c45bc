"""検証済みリクエストから Graph 送信用メッセージを組み立てる。"""

from __future__ import annotations

import base64

from graph_mailer.core.models import (
    Importance,
    OutboundAttachment,
    OutboundMessage,
    SendRequest,
)


def build(request: SendRequest) -> OutboundMessage:
    body_type, body_content = _select_body(request)
    return OutboundMessage(
        subject=request.subject,
        body_type=body_type,
        body_content=body_content,
        to=list(request.to),
        cc=list(request.cc),
        bcc=list(request.bcc),
        importance=Importance.parse(request.importance),
        attachments=[
            OutboundAttachment(
                name=attachment.filename,
                content_type=attachment.content_type,
                content=base64.b64decode(attachment.content_base64),
            )
            for attachment in request.attachments
        ],
    )


def _select_body(request: SendRequest) -> tuple[str | None, str]:
    # HTML 優先。検証後は両方空にはならないが、その場合は空本文で送る。
    if request.html_body and request.html_body.strip():
        return "HTML", request.html_body
    if request.text_body and request.text_body.strip():
        return "Text", request.text_body
    return None, ""
