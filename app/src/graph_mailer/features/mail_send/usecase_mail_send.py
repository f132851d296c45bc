"""メール送信ユースケース: 検証 → 組み立て → Graph 呼び出し (リトライ付き)。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from langchain_core.runnables import RunnableLambda
from langchain_core.runnables.retry import ExponentialJitterParams

from graph_mailer.clients.mail_provider import MailProvider
from graph_mailer.core.errors import InternalError, MailSendFailure, MailValidationError
from graph_mailer.core.logging import log_event, log_mail_failed, log_mail_sent
from graph_mailer.core.models import (
    AllowListConfig,
    OutboundMessage,
    SendRequest,
    SendResult,
    new_identifier,
)
from graph_mailer.core.settings import Settings
from graph_mailer.features.mail_send import builder_mail_send, validator_mail_send

MAIL_SEND_FAILED = "MAIL_SEND_FAILED"
INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """送信リトライの設定。待ち時間は initial × multiplier^(n-1)。"""

    max_attempts: int = 3
    initial_delay_seconds: float = 0.3
    multiplier: float = 2.0
    max_delay_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.send_max_attempts,
            initial_delay_seconds=settings.send_retry_delay_ms / 1000,
            multiplier=settings.send_retry_multiplier,
        )

    def jitter_params(self) -> ExponentialJitterParams:
        return ExponentialJitterParams(
            initial=self.initial_delay_seconds,
            max=self.max_delay_seconds,
            exp_base=self.multiplier,
            jitter=0,
        )


def send_mail(
    request: SendRequest,
    *,
    correlation_id: str,
    provider: MailProvider,
    allow_list: AllowListConfig,
    retry_policy: RetryPolicy | None = None,
) -> SendResult:
    """メールを送信し、成否にかかわらず SendResult を返す。例外は外へ出さない。"""

    policy = retry_policy or RetryPolicy()
    log_event(
        "mail_send_requested",
        correlation_id=correlation_id,
        sender=request.from_upn,
        recipients=request.recipient_count,
    )

    try:
        validator_mail_send.validate(request, allow_list)
    except MailValidationError as exc:
        log_mail_failed(request, reason=exc.reason, correlation_id=correlation_id)
        return SendResult.failed(exc.reason, correlation_id, error_code=exc.kind.value)

    try:
        message = builder_mail_send.build(request)
        _send_with_retry(
            provider,
            message,
            request=request,
            policy=policy,
            correlation_id=correlation_id,
        )
    except MailSendFailure as exc:
        reason = f"Failed to send email: {exc}"
        log_mail_failed(request, reason=reason, correlation_id=correlation_id)
        return SendResult.failed(reason, correlation_id, error_code=MAIL_SEND_FAILED)
    except Exception as exc:
        internal = InternalError(new_identifier())
        log_event(
            "mail_send_internal_error",
            correlation_id=correlation_id,
            level=logging.ERROR,
            error_id=internal.error_id,
            error=repr(exc),
        )
        return SendResult.failed(
            f"{internal} (errorId: {internal.error_id})",
            correlation_id,
            error_code=INTERNAL_ERROR,
        )

    # Graph の sendMail は ID を返さないため、ここで採番する。
    message_id = new_identifier()
    log_mail_sent(request, message_id=message_id, correlation_id=correlation_id)
    return SendResult.success(message_id, correlation_id)


def _send_with_retry(
    provider: MailProvider,
    message: OutboundMessage,
    *,
    request: SendRequest,
    policy: RetryPolicy,
    correlation_id: str,
) -> None:
    attempts = {"count": 0}

    def _attempt(_: Any) -> None:
        attempts["count"] += 1
        try:
            provider.send_mail(
                message,
                sender=request.from_upn,
                save_to_sent_items=request.save_to_sent_items,
            )
        except Exception as exc:
            log_event(
                "mail_send_attempt_failed",
                correlation_id=correlation_id,
                level=logging.WARNING,
                attempt=attempts["count"],
                max_attempts=policy.max_attempts,
                error=str(exc),
            )
            raise

    runnable = RunnableLambda(_attempt).with_retry(
        retry_if_exception_type=(Exception,),
        wait_exponential_jitter=True,
        exponential_jitter_params=policy.jitter_params(),
        stop_after_attempt=policy.max_attempts,
    )
    try:
        runnable.invoke(None)
    except Exception as exc:
        raise MailSendFailure(str(exc)) from exc
