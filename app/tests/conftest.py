from __future__ import annotations

import os

os.environ.setdefault("APP_MODE", "mock")
os.environ.setdefault("MAIL_ALLOWED_SENDERS", '["noreply@allowed.com"]')
os.environ.setdefault(
    "MAIL_ALLOWED_RECIPIENT_DOMAINS", '["allowed-domain.com", "example.com"]'
)

from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from graph_mailer.app import create_app
from graph_mailer.clients.mock_mail_client import MockMailClient
from graph_mailer.core import settings as core_settings
from graph_mailer.core.models import MessageSummary, OutboundMessage
from graph_mailer.core.rate_limit import RateLimiter


@pytest.fixture(autouse=True)
def basic_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """アプリ初期化に必要な環境変数をテスト時にセットする。"""

    monkeypatch.setenv("APP_MODE", "mock")
    monkeypatch.setenv("MAIL_ALLOWED_SENDERS", '["noreply@allowed.com"]')
    monkeypatch.setenv(
        "MAIL_ALLOWED_RECIPIENT_DOMAINS", '["allowed-domain.com", "example.com"]'
    )
    monkeypatch.setenv("SEND_RETRY_DELAY_MS", "1")
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.delenv("RATE_LIMIT_CAPACITY", raising=False)
    core_settings.load_settings.cache_clear()


class FailingProvider:
    """常に (または指定回数だけ) 送信に失敗するテスト用プロバイダ。"""

    def __init__(self, failures: int | None = None, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or RuntimeError("Graph unavailable")
        self.calls = 0
        self.sent: list[OutboundMessage] = []

    def send_mail(
        self,
        message: OutboundMessage,
        *,
        sender: str,
        save_to_sent_items: bool,
    ) -> None:
        self.calls += 1
        if self.failures is None or self.calls <= self.failures:
            raise self.error
        self.sent.append(message)

    def list_messages(self, mailbox: str, **kwargs: Any) -> list[MessageSummary]:
        raise self.error


@pytest.fixture
def mock_provider() -> MockMailClient:
    return MockMailClient()


@pytest.fixture
def make_client() -> Callable[..., TestClient]:
    def _make(
        provider: Any | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> TestClient:
        app = create_app(mail_provider=provider, rate_limiter=rate_limiter)
        return TestClient(app)

    return _make


@pytest.fixture
def valid_payload() -> dict[str, Any]:
    return {
        "fromUpn": "noreply@allowed.com",
        "to": ["a@allowed-domain.com"],
        "subject": "Hi",
        "htmlBody": "<p>hi</p>",
    }


@pytest.fixture
def failing_provider() -> Callable[..., FailingProvider]:
    return FailingProvider
