"""旧 `/sendemail` 互換エンドポイントのテスト。"""

from __future__ import annotations

import base64
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from graph_mailer.clients.mock_mail_client import MockMailClient
from graph_mailer.features.legacy_send.adapter_legacy_send import (
    LegacySendFields,
    LegacyUpload,
    adapt,
    is_html,
    validate_legacy_fields,
)


def _fields(**overrides: Any) -> LegacySendFields:
    values: dict[str, Any] = {
        "subject": "Laporan",
        "from_addr": "noreply@allowed.com",
        "password": "secret",
        "emailbody": "Halo",
        "to": ["a@allowed-domain.com"],
    }
    values.update(overrides)
    return LegacySendFields(**values)


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({"from_addr": None, "password": None}, "From tidak boleh kosong!"),
        ({"password": " ", "emailbody": None}, "Password tidak boleh kosong!"),
        ({"emailbody": "", "subject": None}, "Email body tidak boleh kosong!"),
        ({"subject": None, "to": []}, "Subject tidak boleh kosong!"),
        ({"to": []}, "To tidak boleh kosong!"),
    ],
)
def test_必須項目は決まった順序で検査する(overrides: dict[str, Any], expected: str) -> None:
    assert validate_legacy_fields(_fields(**overrides)) == expected


def test_必須項目が揃っていれば問題なし() -> None:
    assert validate_legacy_fields(_fields()) is None


def test_HTMLマーカーで本文種別を判定する() -> None:
    assert is_html("Hello<BR>world")
    assert is_html("<P>x</P>")
    assert is_html("<HTML>hi</HTML>")
    assert not is_html("Hello")
    assert not is_html("plain <b>bold</b>")

    html_request = adapt(_fields(emailbody="<p>Halo</p>"))
    assert html_request.html_body == "<p>Halo</p>"
    assert html_request.text_body is None

    text_request = adapt(_fields())
    assert text_request.text_body == "Halo"
    assert text_request.html_body is None


def test_変換結果の既定値() -> None:
    request = adapt(_fields(cc=["c@allowed-domain.com"]))

    assert request.bcc == []
    assert request.cc == ["c@allowed-domain.com"]
    assert request.importance == "normal"
    assert request.save_to_sent_items is True


def test_添付名の対応付けと既定値() -> None:
    uploads = [
        LegacyUpload(content=b"one", filename="upload1.txt", content_type="text/plain"),
        LegacyUpload(content=b"", filename="empty.txt"),
        LegacyUpload(content=b"three", filename="upload3.bin"),
        LegacyUpload(content=b"four"),
    ]

    request = adapt(_fields(uploads=uploads, attach_names=["renamed.txt", "ignored", " "]))

    assert [a.filename for a in request.attachments] == [
        "renamed.txt",
        "upload3.bin",
        "attachment",
    ]
    assert request.attachments[0].content_type == "text/plain"
    assert request.attachments[1].content_type == "application/octet-stream"
    assert base64.b64decode(request.attachments[0].content_base64) == b"one"


def _form(**overrides: Any) -> dict[str, Any]:
    form: dict[str, Any] = {
        "subject": "Laporan",
        "from": "noreply@allowed.com",
        "paswd": "secret",
        "emailbody": "<p>Halo</p>",
        "to": ["a@allowed-domain.com", "b@allowed-domain.com"],
    }
    form.update(overrides)
    return form


def test_送信成功時はOKを返す(
    make_client: Callable[..., TestClient], mock_provider: MockMailClient
) -> None:
    client = make_client(provider=mock_provider)

    res = client.post("/sendemail", data=_form(cc=["c@allowed-domain.com"]))

    assert res.status_code == 200
    assert res.text == "OK"
    assert res.headers["X-Correlation-Id"]
    sent = mock_provider.sent
    assert len(sent) == 1
    assert sent[0].message.body_type == "HTML"
    assert sent[0].message.to == ["a@allowed-domain.com", "b@allowed-domain.com"]
    assert sent[0].message.cc == ["c@allowed-domain.com"]
    assert sent[0].message.bcc == []


def test_添付ファイル付きで送信できる(
    make_client: Callable[..., TestClient], mock_provider: MockMailClient
) -> None:
    client = make_client(provider=mock_provider)

    res = client.post(
        "/sendemail",
        data=_form(attachName=["laporan.pdf"]),
        files=[("attachBytes", ("x.pdf", b"%PDF-1.4", "application/pdf"))],
    )

    assert res.text == "OK"
    attachment = mock_provider.sent[0].message.attachments[0]
    assert attachment.name == "laporan.pdf"
    assert attachment.content_type == "application/pdf"
    assert attachment.content == b"%PDF-1.4"


def test_必須項目の欠落も200で文言を返す(
    make_client: Callable[..., TestClient], mock_provider: MockMailClient
) -> None:
    form = _form()
    del form["paswd"]

    res = make_client(provider=mock_provider).post("/sendemail", data=form)

    assert res.status_code == 200
    assert res.text == "Password tidak boleh kosong!"
    assert mock_provider.sent == []


def test_許可外の宛先も200で理由を返す(make_client: Callable[..., TestClient]) -> None:
    res = make_client().post("/sendemail", data=_form(to=["x@evil.com"]))

    assert res.status_code == 200
    assert res.text == "Recipient domain 'evil.com' is not in the allowed domains list"


def test_送信失敗も200で理由を返す(
    make_client: Callable[..., TestClient], failing_provider: Callable[..., Any]
) -> None:
    res = make_client(provider=failing_provider()).post("/sendemail", data=_form())

    assert res.status_code == 200
    assert res.text.startswith("Failed to send email")
