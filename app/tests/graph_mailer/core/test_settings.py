"""設定読み込みのテスト。"""

from __future__ import annotations

import pytest

from graph_mailer.core.settings import load_settings


def test_ローカル環境では環境変数から読み込む(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAIL_ALLOWED_RECIPIENT_DOMAINS", '["Allowed-Domain.com"]')
    monkeypatch.setenv("MAIL_MAX_ATTACHMENT_BYTES", "1024")
    monkeypatch.setenv("RATE_LIMIT_CAPACITY", "5")

    settings = load_settings()

    assert settings.is_local
    assert settings.is_mock
    assert settings.max_attachment_bytes == 1024
    assert settings.rate_limit_capacity == 5
    assert settings.rate_limit_refill_seconds == 60.0
    assert settings.send_max_attempts == 3

    allow_list = settings.allow_list()
    assert allow_list.allowed_sender_addresses == frozenset({"noreply@allowed.com"})
    assert allow_list.allowed_recipient_domains == frozenset({"allowed-domain.com"})


def test_既定のスコープは_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GRAPH_SCOPES", raising=False)

    assert load_settings().graph_scopes == ["https://graph.microsoft.com/.default"]


def test_不正な_APP_MODE_は拒否する(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_MODE", "staging")

    with pytest.raises(ValueError):
        load_settings()


def test_許可リストは_JSON_配列である必要がある(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAIL_ALLOWED_SENDERS", '{"a": 1}')

    with pytest.raises(ValueError):
        load_settings()


def test_数値設定は正の値である必要がある(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEND_MAX_ATTEMPTS", "0")

    with pytest.raises(ValueError):
        load_settings()
