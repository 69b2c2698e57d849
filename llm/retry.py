"""Transport-level retry with exponential backoff for provider calls.

Only the provider uses this. The optimizer and evaluation loops never retry:
a failure that survives the policy propagates and aborts the sweep.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Auth and malformed-request errors will not improve on retry.
_FAIL_FAST_NAMES = frozenset(
    {
        "AuthenticationError",
        "PermissionDeniedError",
        "BadRequestError",
        "UnprocessableEntityError",
        "NotFoundError",
    }
)

_TRANSIENT_NAMES = frozenset(
    {
        "RateLimitError",
        "APITimeoutError",
        "APIConnectionError",
        "InternalServerError",
        "ServiceUnavailableError",
    }
)


def _status_code(exc: BaseException) -> int | None:
    for source in (exc, getattr(exc, "response", None)):
        value = getattr(source, "status_code", None)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str) and value.isdigit():
            return int(value)
    return None


def is_transient(exc: BaseException) -> bool:
    """Return True when ``exc`` looks like a rate limit, timeout or 5xx."""
    name = type(exc).__name__
    if isinstance(exc, ValueError) or name in _FAIL_FAST_NAMES:
        return False
    if isinstance(exc, (TimeoutError, ConnectionError)) or name in _TRANSIENT_NAMES:
        return True
    if name == "APIStatusError":
        status = _status_code(exc)
        return status is not None and (status >= 500 or status == 429)
    return False


class RetryPolicy:
    """Exponential backoff: 1s, 2s, 4s, ... capped at ``max_delay``."""

    max_retries: int
    max_delay: float
    sleep_fn: Callable[[float], None]

    def __init__(
        self,
        max_retries: int = 3,
        max_delay: float = 8.0,
        sleep_fn: Callable[[float], None] | None = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        self.max_retries = max_retries
        self.max_delay = max_delay
        self.sleep_fn = sleep_fn or time.sleep

    def backoff_seconds(self, attempt_index: int) -> float:
        return min(float(1 << attempt_index), self.max_delay)

    def execute(self, operation: Callable[[], T]) -> T:
        attempt = 0
        while True:
            try:
                return operation()
            except Exception as exc:  # noqa: BLE001
                if attempt >= self.max_retries or not is_transient(exc):
                    raise
                delay = self.backoff_seconds(attempt)
                attempt += 1
                logger.warning(
                    "Transient provider error (%s), retry %d/%d in %.0fs",
                    type(exc).__name__,
                    attempt,
                    self.max_retries,
                    delay,
                )
                self.sleep_fn(delay)
