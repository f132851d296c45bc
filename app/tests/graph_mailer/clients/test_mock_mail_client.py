"""偽プロバイダのテスト。"""

from __future__ import annotations

from graph_mailer.clients.mock_mail_client import MockMailClient


def test_件数が多くても受信日時は厳密に新しい順() -> None:
    summaries = MockMailClient().list_messages("box@allowed.com", top=30)

    received = [summary.received_at for summary in summaries]
    assert len(received) == 30
    assert all(newer > older for newer, older in zip(received, received[1:]))


def test_件数未指定なら5件() -> None:
    assert len(MockMailClient().list_messages("box@allowed.com")) == 5
