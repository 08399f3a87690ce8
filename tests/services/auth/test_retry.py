from __future__ import annotations

from audioctl.services.auth.errors import (
    GenericApiError,
    NetworkUnreachableError,
    PairingCodeInvalidError,
    RateLimitedError,
    UnauthorizedError,
)
from audioctl.services.auth.retry import ExponentialBackoff, NoRetry, RetryDecision


def test_backoff_doubles_until_attempts_exhausted():
    policy = ExponentialBackoff()
    error = NetworkUnreachableError("down")
    assert policy(1, error) == RetryDecision(retry=True, delay_ms=1000)
    assert policy(2, error) == RetryDecision(retry=True, delay_ms=2000)
    assert policy(3, error).retry is False


def test_backoff_is_capped():
    policy = ExponentialBackoff(max_attempts=10, base_delay_ms=1000, max_delay_ms=30_000)
    assert policy(6, GenericApiError("HTTP 500")).delay_ms == 30_000


def test_final_errors_are_never_retried():
    policy = ExponentialBackoff(max_attempts=10)
    assert policy(1, RateLimitedError("slow down")).retry is False
    assert policy(1, UnauthorizedError("no")).retry is False
    assert policy(1, PairingCodeInvalidError("bad code")).retry is False


def test_no_retry():
    assert NoRetry()(1, NetworkUnreachableError("down")).retry is False
