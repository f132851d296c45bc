"""受信メール読み出しのテスト。"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Callable

from fastapi.testclient import TestClient

from graph_mailer.clients.mock_mail_client import MockMailClient
from graph_mailer.core.models import MessageSummary
from graph_mailer.features.mail_read.usecase_mail_read import (
    read_emails,
    resolve_separator,
    to_csv,
    to_json,
)


def _summary(**overrides: Any) -> MessageSummary:
    values: dict[str, Any] = {
        "message_id": "<id-1@example.com>",
        "subject": "Hello",
        "sender": "s@example.com",
        "received_at": datetime(2025, 10, 21, 9, 30, tzinfo=timezone.utc),
        "body_preview": "preview",
        "is_read": True,
        "has_attachments": False,
    }
    values.update(overrides)
    return MessageSummary(**values)


def test_JSON形式に変換する() -> None:
    data = json.loads(to_json([_summary()]))

    assert data == {
        "status": "SUCCESS",
        "totalCount": 1,
        "emails": [
            {
                "messageId": "<id-1@example.com>",
                "subject": "Hello",
                "from": "s@example.com",
                "receivedDateTime": "2025-10-21T09:30:00Z",
                "bodyPreview": "preview",
                "isRead": True,
                "hasAttachments": False,
            }
        ],
    }


def test_CSVはヘッダ付きで各行が改行で終わる() -> None:
    csv = to_csv([_summary()], separator=",", header=True)

    assert csv == (
        "MessageId,Subject,From,ReceivedDateTime,IsRead,HasAttachments\n"
        "<id-1@example.com>,Hello,s@example.com,2025-10-21T09:30:00Z,true,false\n"
    )


def test_CSVの値はカンマや引用符を含むとエスケープする() -> None:
    csv = to_csv([_summary(subject='Re: "a", b', message_id=None)], header=False)

    assert csv == ',"Re: ""a"", b",s@example.com,2025-10-21T09:30:00Z,true,false\n'


def test_区切り文字の解釈() -> None:
    assert resolve_separator("comma") == ","
    assert resolve_separator(None) == ","
    assert resolve_separator(";") == ";"
    assert to_csv([], separator=";", header=True) == (
        "MessageId;Subject;From;ReceivedDateTime;IsRead;HasAttachments\n"
    )


def test_取得失敗はエラーJSONを返す(failing_provider: Callable[..., Any]) -> None:
    body = read_emails(failing_provider(), mailbox="box@allowed.com", correlation_id="c")

    assert json.loads(body) == {
        "status": "ERROR",
        "message": "Error reading emails: Graph unavailable",
    }


def test_読み出しエンドポイントはJSONを返す(
    make_client: Callable[..., TestClient], mock_provider: MockMailClient
) -> None:
    client = make_client(provider=mock_provider)

    res = client.get(
        "/api/v1/mail/read",
        params={"mailbox": "box@allowed.com", "top": 3, "sender": "boss@example.com"},
    )

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("application/json")
    data = res.json()
    assert data["totalCount"] == 3
    assert [email["messageId"] for email in data["emails"]] == [
        "mock-msg-1",
        "mock-msg-2",
        "mock-msg-3",
    ]
    assert {email["from"] for email in data["emails"]} == {"boss@example.com"}
    received = [email["receivedDateTime"] for email in data["emails"]]
    assert received == sorted(received, reverse=True)


def test_読み出しエンドポイントはCSVも返す(make_client: Callable[..., TestClient]) -> None:
    res = make_client().get(
        "/api/v1/mail/read",
        params={"mailbox": "box@allowed.com", "top": 2, "format": "csv", "includeHeaders": "false"},
    )

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    lines = res.text.splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("mock-msg-1,Mock Email 1,")


def test_メールボックス未指定は400(make_client: Callable[..., TestClient]) -> None:
    res = make_client().get("/api/v1/mail/read")

    assert res.status_code == 400
    assert res.json()["error"] == "Mailbox parameter is required"
    assert res.json()["correlationId"] == res.headers["X-Correlation-Id"]


def test_件数が範囲外なら400(make_client: Callable[..., TestClient]) -> None:
    res = make_client().get("/api/v1/mail/read", params={"mailbox": "box@allowed.com", "top": 101})

    assert res.status_code == 400
    assert res.json()["error"] == "Top parameter must be between 1 and 100"
