"""アプリ全体で共有する設定読み込みロジック。"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable

import boto3
from botocore.exceptions import ClientError
from dotenv import load_dotenv

from graph_mailer.core.models import AllowListConfig


_DEFAULT_REGION = "ap-northeast-1"
_DEFAULT_GRAPH_SCOPE = "https://graph.microsoft.com/.default"
_LOCAL_ENV = "local"
_MODES = ("production", "mock")


@dataclass(slots=True)
class Settings:
    """環境非依存で参照できる設定値の集合。"""

    app_env: str
    app_mode: str
    region: str
    graph_tenant_id: str | None
    graph_client_id: str | None
    graph_client_secret: str | None
    graph_scopes: list[str]
    graph_timeout_ms: int
    allowed_senders: list[str]
    allowed_recipient_domains: list[str]
    max_attachment_bytes: int
    rate_limit_capacity: int = 30
    rate_limit_refill_seconds: float = 60.0
    send_max_attempts: int = 3
    send_retry_delay_ms: int = 300
    send_retry_multiplier: float = 2.0
    ssm_path_prefix: str | None = None

    @property
    def is_local(self) -> bool:
        return self.app_env == _LOCAL_ENV

    @property
    def is_mock(self) -> bool:
        return self.app_mode == "mock"

    def allow_list(self) -> AllowListConfig:
        """起動時に一度だけ組み立てる不変の許可リスト。"""

        return AllowListConfig(
            allowed_sender_addresses=frozenset(self.allowed_senders),
            allowed_recipient_domains=frozenset(
                domain.strip().lower() for domain in self.allowed_recipient_domains
            ),
            max_attachment_bytes=self.max_attachment_bytes,
        )


def _load_json_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("JSON 文字列のパースに失敗しました。") from exc
    if not isinstance(parsed, list):
        raise ValueError("JSON 文字列は配列である必要があります。")
    return [str(item) for item in parsed]


def _load_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"環境変数 {name} は整数である必要があります。") from exc
    if value <= 0:
        raise ValueError(f"環境変数 {name} は正の値である必要があります。")
    return value


def _load_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"環境変数 {name} は数値である必要があります。") from exc
    if value <= 0:
        raise ValueError(f"環境変数 {name} は正の値である必要があります。")
    return value


def _load_mode() -> str:
    mode = os.getenv("APP_MODE", "production").strip().lower()
    if mode not in _MODES:
        raise ValueError(f"APP_MODE は {' / '.join(_MODES)} のいずれかです: {mode}")
    return mode


def _load_scopes(raw: str | None) -> list[str]:
    if not raw:
        return [_DEFAULT_GRAPH_SCOPE]
    return [scope.strip() for scope in raw.split(",") if scope.strip()]


def _fetch_ssm_parameters(
    region: str, names: Iterable[str], prefix: str
) -> dict[str, str]:
    name_list = [f"{prefix}/{name}" for name in names]
    client = boto3.client("ssm", region_name=region)
    try:
        resp = client.get_parameters(Names=name_list, WithDecryption=True)
    except ClientError as exc:  # pragma: no cover - boto3 例外ラップ
        raise RuntimeError("SSM パラメータ取得に失敗しました。") from exc

    found = {item["Name"]: item["Value"] for item in resp.get("Parameters", [])}
    missing = {name for name in name_list if name not in found}
    if missing:
        raise ValueError(f"SSM パラメータ未設定: {', '.join(sorted(missing))}")
    return found


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """環境に応じて `.env` または SSM から設定を構築する。"""

    app_env = os.getenv("APP_ENV", _LOCAL_ENV)
    if app_env == _LOCAL_ENV:
        # 既存の環境変数を優先し、`.env` は未設定分だけ補う。
        load_dotenv(override=False)

    region = os.getenv("REGION", _DEFAULT_REGION)
    common = dict(
        app_env=app_env,
        app_mode=_load_mode(),
        region=region,
        graph_scopes=_load_scopes(os.getenv("GRAPH_SCOPES")),
        graph_timeout_ms=_load_int("GRAPH_TIMEOUT_MS", 30000),
        max_attachment_bytes=_load_int("MAIL_MAX_ATTACHMENT_BYTES", 5 * 1024 * 1024),
        rate_limit_capacity=_load_int("RATE_LIMIT_CAPACITY", 30),
        rate_limit_refill_seconds=_load_float("RATE_LIMIT_REFILL_SECONDS", 60.0),
        send_max_attempts=_load_int("SEND_MAX_ATTEMPTS", 3),
        send_retry_delay_ms=_load_int("SEND_RETRY_DELAY_MS", 300),
        send_retry_multiplier=_load_float("SEND_RETRY_MULTIPLIER", 2.0),
    )

    if app_env == _LOCAL_ENV:
        return Settings(
            graph_tenant_id=os.getenv("GRAPH_TENANT_ID"),
            graph_client_id=os.getenv("GRAPH_CLIENT_ID"),
            graph_client_secret=os.getenv("GRAPH_CLIENT_SECRET"),
            allowed_senders=_load_json_list(os.getenv("MAIL_ALLOWED_SENDERS")),
            allowed_recipient_domains=_load_json_list(
                os.getenv("MAIL_ALLOWED_RECIPIENT_DOMAINS")
            ),
            ssm_path_prefix=None,
            **common,
        )

    prefix = os.getenv("SSM_PATH_PREFIX", "/app/prod")
    required_keys = [
        "graph/tenant_id",
        "graph/client_id",
        "graph/client_secret",
        "mail/allowed_senders",
        "mail/allowed_recipient_domains",
    ]
    values = _fetch_ssm_parameters(region=region, names=required_keys, prefix=prefix)

    def from_ssm(key: str) -> str:
        return values[f"{prefix}/{key}"]

    return Settings(
        graph_tenant_id=from_ssm("graph/tenant_id"),
        graph_client_id=from_ssm("graph/client_id"),
        graph_client_secret=from_ssm("graph/client_secret"),
        allowed_senders=_load_json_list(from_ssm("mail/allowed_senders")),
        allowed_recipient_domains=_load_json_list(
            from_ssm("mail/allowed_recipient_domains")
        ),
        ssm_path_prefix=prefix,
        **common,
    )
