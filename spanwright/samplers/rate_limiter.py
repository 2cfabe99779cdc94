"""Rate limited sampling."""

from __future__ import annotations

import threading
import time
from typing import Optional

from spanwright import tags
from spanwright.samplers.sampler import SAMPLER_TYPE_RATE_LIMITING, Sampler, SamplingResult


class RateLimiter:
    """
    Token bucket rate limiter. Never blocks: a call either takes a credit or fails.

    Thread-safe.
    """

    def __init__(self, credits_per_second: float, max_balance: Optional[float] = None) -> None:
        self.credits_per_second = credits_per_second
        self.max_balance = max_balance if max_balance is not None else max(credits_per_second, 1.0)
        self._balance = self.max_balance
        self._last_tick = time.monotonic()
        self._lock = threading.Lock()

    def check_credit(self, cost: float = 1.0) -> bool:
        with self._lock:
            self._refill()
            if self._balance >= cost:
                self._balance -= cost
                return True
            return False

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_tick
        if elapsed > 0:
            self._balance = min(self.max_balance, self._balance + elapsed * self.credits_per_second)
            self._last_tick = now


class RateLimitingSampler(Sampler):
    """Samples at most ``max_traces_per_second`` new traces."""

    def __init__(self, max_traces_per_second: float) -> None:
        if max_traces_per_second < 0:
            raise ValueError("max_traces_per_second must not be negative")
        self.max_traces_per_second = max_traces_per_second
        self._rate_limiter = RateLimiter(
            credits_per_second=max_traces_per_second,
            max_balance=max(max_traces_per_second, 1.0) if max_traces_per_second else 0.0,
        )
        self._tags = {
            tags.SAMPLER_TYPE: SAMPLER_TYPE_RATE_LIMITING,
            tags.SAMPLER_PARAM: max_traces_per_second,
        }

    def should_sample(self, trace_id: int, operation_name: str) -> SamplingResult:
        return SamplingResult(sampled=self._rate_limiter.check_credit(1.0), tags=dict(self._tags))

    def __repr__(self) -> str:
        return f"RateLimitingSampler(max_traces_per_second={self.max_traces_per_second})"
