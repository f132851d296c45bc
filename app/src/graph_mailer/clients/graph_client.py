"""Microsoft Graph Mail API のクライアント。"""

from __future__ import annotations

import json
import threading
from datetime import datetime
from typing import Any, Callable, Sequence
from urllib.parse import quote

import httpx
import msal

from graph_mailer.clients.http_client import create_sync_client, timeout_from_ms
from graph_mailer.core.models import MessageSummary, OutboundMessage
from graph_mailer.core.settings import Settings

GRAPH_BASE = "https://graph.microsoft.com/v1.0"
AUTHORITY_BASE = "https://login.microsoftonline.com"

_READ_SELECT = ",".join(
    [
        "subject",
        "from",
        "receivedDateTime",
        "bodyPreview",
        "isRead",
        "hasAttachments",
        "internetMessageId",
    ]
)

TokenProvider = Callable[[], str]


class GraphApiError(RuntimeError):
    """Graph API のエラーを表す例外。"""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class GraphClient:
    """アプリ専用 (client credentials) 認証で Graph を呼び出す。"""

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        http_client: httpx.Client,
        base_url: str = GRAPH_BASE,
    ) -> None:
        self._token_provider = token_provider
        self._http = http_client
        self._base_url = base_url.rstrip("/")

    def send_mail(
        self,
        message: OutboundMessage,
        *,
        sender: str,
        save_to_sent_items: bool,
    ) -> None:
        """`/users/{upn}/sendMail` を呼ぶ。Graph はメッセージ ID を返さない。"""

        url = f"{self._base_url}/users/{quote(sender)}/sendMail"
        response = self._http.post(
            url,
            json=message.to_graph_payload(save_to_sent_items),
            headers=self._headers(),
        )
        if response.status_code in (200, 202):
            return
        raise GraphApiError(_build_error_message(response), response.status_code)

    def list_messages(
        self,
        mailbox: str,
        *,
        sender: str | None = None,
        subject: str | None = None,
        top: int | None = None,
    ) -> list[MessageSummary]:
        """受信メールを新しい順に取得する。"""

        params: dict[str, str | int] = {
            "$select": _READ_SELECT,
            "$orderby": "receivedDateTime desc",
        }
        if top is not None and top > 0:
            params["$top"] = top
        filters = _build_filters(sender=sender, subject=subject)
        if filters:
            params["$filter"] = filters

        url = f"{self._base_url}/users/{quote(mailbox)}/messages"
        response = self._http.get(url, params=params, headers=self._headers())
        if response.status_code >= 400:
            raise GraphApiError(_build_error_message(response), response.status_code)

        payload = response.json()
        return [_to_summary(raw) for raw in payload.get("value", [])]

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token_provider()}",
            "Content-Type": "application/json",
        }


class MsalTokenProvider:
    """MSAL の ConfidentialClientApplication でアクセストークンを取得する。"""

    def __init__(
        self,
        *,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        scopes: Sequence[str],
    ) -> None:
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._scopes = list(scopes)
        self._app: msal.ConfidentialClientApplication | None = None
        self._lock = threading.Lock()

    def __call__(self) -> str:
        result = self._application().acquire_token_for_client(scopes=self._scopes)
        if not result or "access_token" not in result:
            detail = (result or {}).get("error_description")
            raise RuntimeError(f"Graph トークンを取得できません: {detail}")
        return result["access_token"]

    def _application(self) -> msal.ConfidentialClientApplication:
        # authority 検証で通信が発生するため初回呼び出しまで生成を遅らせる。
        with self._lock:
            if self._app is None:
                self._app = msal.ConfidentialClientApplication(
                    client_id=self._client_id,
                    client_credential=self._client_secret,
                    authority=f"{AUTHORITY_BASE}/{self._tenant_id}",
                )
            return self._app


def client_from_settings(settings: Settings) -> GraphClient:
    """Settings から必要情報を取り出して GraphClient を生成する。"""

    if not (
        settings.graph_tenant_id
        and settings.graph_client_id
        and settings.graph_client_secret
    ):
        raise ValueError("Graph API 用のクライアント資格情報が不足しています。")

    token_provider = MsalTokenProvider(
        tenant_id=settings.graph_tenant_id,
        client_id=settings.graph_client_id,
        client_secret=settings.graph_client_secret,
        scopes=settings.graph_scopes,
    )
    http_client = create_sync_client(timeout=timeout_from_ms(settings.graph_timeout_ms))
    return GraphClient(token_provider=token_provider, http_client=http_client)


def _build_filters(*, sender: str | None, subject: str | None) -> str:
    clauses: list[str] = []
    if sender and sender.strip():
        clauses.append(f"from/emailAddress/address eq '{_odata_quote(sender)}'")
    if subject and subject.strip():
        clauses.append(f"contains(subject, '{_odata_quote(subject)}')")
    return " and ".join(clauses)


def _odata_quote(value: str) -> str:
    return value.replace("'", "''")


def _to_summary(raw: dict[str, Any]) -> MessageSummary:
    sender = ((raw.get("from") or {}).get("emailAddress") or {}).get("address", "")
    received_raw = raw.get("receivedDateTime")
    return MessageSummary(
        message_id=raw.get("internetMessageId"),
        subject=raw.get("subject"),
        sender=sender,
        received_at=_parse_graph_datetime(received_raw) if received_raw else None,
        body_preview=raw.get("bodyPreview"),
        is_read=bool(raw.get("isRead")),
        has_attachments=bool(raw.get("hasAttachments")),
    )


def _parse_graph_datetime(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _build_error_message(response: httpx.Response) -> str:
    try:
        body: dict[str, Any] = response.json()
    except json.JSONDecodeError:
        return f"Graph API call failed (Status: {response.status_code})"

    error = body.get("error") or {}
    code = str(error.get("code") or "")
    message = str(error.get("message") or "")
    if code and message:
        return f"Graph API call failed (Status: {response.status_code}): {code}: {message}"
    if message or code:
        return f"Graph API call failed (Status: {response.status_code}): {message or code}"

    return f"Graph API call failed (Status: {response.status_code})"
