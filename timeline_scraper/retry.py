from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, Mapping, TypeVar

import requests

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff for page requests.

    - max_attempts counts the initial attempt (max_attempts=3 => 1 try + 2 retries).
    - jitter_ratio multiplies each delay by a factor in [1-jitter, 1+jitter].
    - retry_after_cap_seconds caps server-requested waits (0 disables the cap).
    """

    max_attempts: int = 4
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    jitter_ratio: float = 0.25
    retry_after_cap_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay_seconds < 0 or self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("delays must satisfy 0 <= base_delay_seconds <= max_delay_seconds")
        if not (0.0 <= self.jitter_ratio <= 1.0):
            raise ValueError("jitter_ratio must be between 0 and 1")


@dataclass(frozen=True)
class RetryEvent:
    operation: str
    failure_attempt: int
    max_attempts: int
    delay_seconds: float
    reason: str | None
    error_type: str
    error_message: str


IsRetryableFn = Callable[[BaseException], tuple[bool, float | None, str | None]]
OnRetryFn = Callable[[RetryEvent], None]
SleepFn = Callable[[float], None]


def _backoff_seconds(failure_attempt: int, policy: RetryPolicy) -> float:
    delay = policy.base_delay_seconds * (2 ** max(0, failure_attempt - 1))
    delay = min(policy.max_delay_seconds, max(0.0, float(delay)))
    if delay == 0.0 or policy.jitter_ratio <= 0:
        return delay
    return delay * random.uniform(1.0 - policy.jitter_ratio, 1.0 + policy.jitter_ratio)


def _retry_after_seconds(headers: Mapping[str, str], *, now: float | None = None) -> float | None:
    raw = (headers.get("Retry-After") or "").strip()
    if raw:
        try:
            return max(0.0, float(raw))
        except ValueError:
            pass

    # Rate-limit windows are reported as an epoch second at which they reset.
    reset = (headers.get("x-rate-limit-reset") or "").strip()
    if reset:
        try:
            current = time.time() if now is None else now
            return max(0.0, float(reset) - current)
        except ValueError:
            return None
    return None


def is_retryable_http_exception(exc: BaseException) -> tuple[bool, float | None, str | None]:
    """
    Retry connection errors, timeouts, HTTP 429 and HTTP 5xx.

    Returns (retryable, retry_after_seconds, reason).
    """
    if isinstance(exc, requests.HTTPError):
        response = exc.response
        code = response.status_code if response is not None else None
        reason = f"http_{code}" if code is not None else "http_status"
        if code == 429:
            headers = response.headers if response is not None else {}
            return True, _retry_after_seconds(headers), reason
        if isinstance(code, int) and code >= 500:
            return True, None, reason
        return False, None, reason

    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True, None, "network_error"

    return False, None, None


def call_with_retries(
    fn: Callable[[], T],
    *,
    policy: RetryPolicy,
    is_retryable: IsRetryableFn = is_retryable_http_exception,
    operation: str = "request",
    on_retry: OnRetryFn | None = None,
    sleep_fn: SleepFn | None = None,
) -> T:
    """Call fn() and retry it while is_retryable says so, re-raising the last failure."""
    sleeper = sleep_fn or time.sleep
    attempt = 0

    while True:
        attempt += 1
        try:
            return fn()
        except Exception as exc:
            retryable, retry_after, reason = is_retryable(exc)
            if not retryable or attempt >= policy.max_attempts:
                raise

            delay = _backoff_seconds(attempt, policy)
            if retry_after is not None:
                if policy.retry_after_cap_seconds > 0:
                    retry_after = min(retry_after, policy.retry_after_cap_seconds)
                delay = max(delay, retry_after)

            if on_retry is not None:
                on_retry(
                    RetryEvent(
                        operation=operation,
                        failure_attempt=attempt,
                        max_attempts=policy.max_attempts,
                        delay_seconds=float(delay),
                        reason=reason,
                        error_type=type(exc).__name__,
                        error_message=(str(exc) or "").strip(),
                    )
                )

            if delay > 0:
                sleeper(float(delay))
