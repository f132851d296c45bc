"""送受信プロバイダの共通インターフェースと起動時の選択。"""

from __future__ import annotations

from typing import Protocol

from graph_mailer.clients import graph_client
from graph_mailer.clients.mock_mail_client import MockMailClient
from graph_mailer.core.models import MessageSummary, OutboundMessage
from graph_mailer.core.settings import Settings


class MailProvider(Protocol):
    def send_mail(
        self,
        message: OutboundMessage,
        *,
        sender: str,
        save_to_sent_items: bool,
    ) -> None: ...

    def list_messages(
        self,
        mailbox: str,
        *,
        sender: str | None = None,
        subject: str | None = None,
        top: int | None = None,
    ) -> list[MessageSummary]: ...


def provider_from_settings(settings: Settings) -> MailProvider:
    """APP_MODE に応じて実 Graph クライアントか偽プロバイダを返す。"""

    if settings.is_mock:
        return MockMailClient()
    return graph_client.client_from_settings(settings)
