"""相関 ID ミドルウェアのテスト。"""

from __future__ import annotations

import uuid
from unittest.mock import patch

from fastapi.testclient import TestClient

from graph_mailer.app import create_app


def test_相関IDがなければ生成してヘッダに付与する() -> None:
    client = TestClient(create_app())

    response = client.get("/healthz")

    correlation_id = response.headers["X-Correlation-Id"]
    assert uuid.UUID(correlation_id)
    assert int(response.headers["X-Response-Time-Ms"]) >= 0


def test_受け取った相関IDをそのまま返す() -> None:
    client = TestClient(create_app())

    response = client.get("/healthz", headers={"X-Correlation-Id": "corr-123"})

    assert response.headers["X-Correlation-Id"] == "corr-123"


def test_想定外の例外でも相関IDと識別子付きの500を返す() -> None:
    client = TestClient(create_app(), raise_server_exceptions=False)

    with patch(
        "graph_mailer.features.mail_read.router_mail_read.read_emails",
        side_effect=RuntimeError("boom"),
    ):
        response = client.get(
            "/api/v1/mail/read",
            params={"mailbox": "box@allowed.com"},
            headers={"X-Correlation-Id": "cid-1"},
        )

    assert response.status_code == 500
    assert response.headers["X-Correlation-Id"] == "cid-1"
    assert "X-Response-Time-Ms" in response.headers
    body = response.json()
    assert body["title"] == "Internal Server Error"
    assert body["correlationId"] == "cid-1"
    assert uuid.UUID(body["errorId"])
    assert "boom" not in response.text
