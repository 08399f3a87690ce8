"""Retry policies for idempotent Request Layer calls."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from audioctl.config.const import RETRY_BASE_DELAY_MS, RETRY_MAX_ATTEMPTS, RETRY_MAX_DELAY_MS

from .errors import ApiError, PairingError, RateLimitedError, SessionAuthError

__all__ = ["RetryDecision", "RetryPolicy", "ExponentialBackoff", "NoRetry", "DEFAULT_RETRY_POLICY"]


@dataclass(frozen=True, slots=True)
class RetryDecision:
    retry: bool
    delay_ms: int = 0


STOP = RetryDecision(retry=False)


class RetryPolicy(Protocol):
    def __call__(self, attempt: int, error: ApiError) -> RetryDecision: ...


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """``attempt`` counts failures so far (1 after the first one)."""

    max_attempts: int = RETRY_MAX_ATTEMPTS
    base_delay_ms: int = RETRY_BASE_DELAY_MS
    max_delay_ms: int = RETRY_MAX_DELAY_MS

    def __call__(self, attempt: int, error: ApiError) -> RetryDecision:
        # rate limits, credential failures and pairing outcomes are final
        if isinstance(error, (RateLimitedError, SessionAuthError, PairingError)):
            return STOP
        if attempt >= self.max_attempts:
            return STOP
        delay = min(self.base_delay_ms * 2 ** (attempt - 1), self.max_delay_ms)
        return RetryDecision(retry=True, delay_ms=delay)


@dataclass(frozen=True, slots=True)
class NoRetry:
    def __call__(self, attempt: int, error: ApiError) -> RetryDecision:
        return STOP


DEFAULT_RETRY_POLICY = ExponentialBackoff()
