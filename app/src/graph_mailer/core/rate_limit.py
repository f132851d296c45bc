"""クライアント IP 単位のトークンバケット。"""

from __future__ import annotations

import threading
import time
from typing import Callable, Mapping

Clock = Callable[[], float]


class TokenBucket:
    """一定間隔ごとにまとめて補充されるトークンバケット。

    経過した補充間隔 1 回につき `refill_tokens` 個を足し、`capacity` で頭打ちにする。
    `refill_tokens == capacity` の場合は間隔ごとに満タンへ戻る。
    """

    def __init__(
        self,
        capacity: int,
        interval_seconds: float,
        *,
        refill_tokens: int | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        if capacity <= 0 or interval_seconds <= 0:
            raise ValueError("capacity と interval_seconds は正の値である必要があります。")
        self.capacity = capacity
        self.interval_seconds = interval_seconds
        self.refill_tokens = capacity if refill_tokens is None else refill_tokens
        self._clock = clock
        self._tokens = capacity
        self._last_refill = clock()
        self._lock = threading.Lock()

    @property
    def available_tokens(self) -> int:
        with self._lock:
            self._refill()
            return self._tokens

    def try_consume(self, tokens: int = 1) -> bool:
        with self._lock:
            self._refill()
            if self._tokens < tokens:
                return False
            self._tokens -= tokens
            return True

    def _refill(self) -> None:
        elapsed = self._clock() - self._last_refill
        periods = int(elapsed // self.interval_seconds)
        if periods <= 0:
            return
        self._tokens = min(self.capacity, self._tokens + periods * self.refill_tokens)
        self._last_refill += periods * self.interval_seconds


class RateLimiter:
    """クライアント ID ごとのバケットを遅延生成して保持するレジストリ。

    バケットは削除しないため、異なるクライアント ID の数だけメモリが増え続ける。
    """

    def __init__(
        self,
        capacity: int = 30,
        interval_seconds: float = 60.0,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self.capacity = capacity
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def allow(self, client_id: str) -> bool:
        return self._bucket_for(client_id).try_consume(1)

    def __len__(self) -> int:
        return len(self._buckets)

    def _bucket_for(self, client_id: str) -> TokenBucket:
        bucket = self._buckets.get(client_id)
        if bucket is not None:
            return bucket
        with self._lock:
            bucket = self._buckets.get(client_id)
            if bucket is None:
                bucket = TokenBucket(
                    self.capacity, self.interval_seconds, clock=self._clock
                )
                self._buckets[client_id] = bucket
            return bucket


def resolve_client_id(headers: Mapping[str, str], peer: str | None) -> str:
    """X-Forwarded-For 先頭 → X-Real-IP → ソケットの接続元の順で決める。"""

    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip

    return peer or "unknown"
