"""`/api/v1/mail/send` のリクエスト/レスポンススキーマ。"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    model_validator,
)

from graph_mailer.core.models import Attachment, SendRequest, SendResult
from graph_mailer.features.mail_send.validator_mail_send import EMAIL_PATTERN, MAX_BODY_CHARS

MailAddress = Annotated[str, StringConstraints(pattern=EMAIL_PATTERN.pattern)]


class AttachmentModel(BaseModel):
    filename: str = Field(
        ...,
        min_length=1,
        max_length=255,
        pattern=r'^[^<>:"/\\|?*]+$',
        description="添付ファイル名",
    )
    content_type: str = Field(
        ...,
        alias="contentType",
        pattern=r"^[a-zA-Z][a-zA-Z0-9!#$&\-\^_]*/[a-zA-Z0-9!#$&\-\^_]+$",
        description="MIME タイプ",
    )
    base64: str = Field(
        ...,
        min_length=1,
        pattern=r"^[A-Za-z0-9+/]*={0,2}$",
        description="base64 エンコード済みの内容",
    )

    model_config = ConfigDict(populate_by_name=True)


class SendMailRequest(BaseModel):
    """Graph 経由で送信するメールの内容。"""

    from_upn: str = Field(
        ...,
        validation_alias=AliasChoices("fromUpn", "from", "from_upn"),
        min_length=1,
        description="送信元メールボックスの UPN",
    )
    to: list[MailAddress] = Field(..., min_length=1, max_length=100)
    cc: list[MailAddress] = Field(default_factory=list, max_length=50)
    bcc: list[MailAddress] = Field(default_factory=list, max_length=50)
    subject: str = Field(..., min_length=1, max_length=255)
    html_body: str | None = Field(None, alias="htmlBody", max_length=MAX_BODY_CHARS)
    text_body: str | None = Field(None, alias="textBody", max_length=MAX_BODY_CHARS)
    attachments: list[AttachmentModel] = Field(default_factory=list, max_length=10)
    save_to_sent_items: bool | None = Field(True, alias="saveToSentItems")
    importance: str | None = Field("normal", description="low / normal / high")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="after")
    def _check_content(self) -> SendMailRequest:
        if not self.subject.strip():
            raise ValueError("Subject is required")
        if not (self.html_body and self.html_body.strip()) and not (
            self.text_body and self.text_body.strip()
        ):
            raise ValueError("Either HTML body or text body is required")
        return self

    def to_send_request(self) -> SendRequest:
        return SendRequest(
            from_upn=self.from_upn,
            to=list(self.to),
            cc=list(self.cc or []),
            bcc=list(self.bcc or []),
            subject=self.subject,
            html_body=self.html_body,
            text_body=self.text_body,
            attachments=[
                Attachment(
                    filename=item.filename,
                    content_type=item.content_type,
                    content_base64=item.base64,
                )
                for item in self.attachments
            ],
            save_to_sent_items=True if self.save_to_sent_items is None else self.save_to_sent_items,
            importance=self.importance or "normal",
        )


class SendMailResponse(BaseModel):
    status: Literal["SUCCESS", "FAILED"]
    message_id: str | None = Field(None, serialization_alias="messageId")
    timestamp: datetime
    message: str | None = None
    correlation_id: str = Field(..., serialization_alias="correlationId")
    error_code: str | None = Field(None, serialization_alias="errorCode")

    @classmethod
    def from_result(cls, result: SendResult) -> SendMailResponse:
        return cls(
            status=result.status,
            message_id=result.message_id,
            timestamp=result.timestamp,
            message=result.message,
            correlation_id=result.correlation_id,
            error_code=result.error_code,
        )

    def to_json(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)
