"""Retry wrapper shared by every outbound provider call.

A rate-limited call is attempted up to three times with capped exponential
backoff. Any other failure is logged once. In every failure case the
caller gets its default value back instead of an exception.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from storefront.providers.errors import ErrorClass

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 0.1  # seconds
    max_delay: float = 1.0

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return min(2**attempt * self.base_delay, self.max_delay)


DEFAULT_POLICY = RetryPolicy()


def backoff_delay(attempt: int, policy: RetryPolicy = DEFAULT_POLICY) -> float:
    return policy.delay(attempt)


_FAILURE_MESSAGES = {
    ErrorClass.RATE_LIMIT: "Provider rate limit exceeded after retries",
    ErrorClass.API: "Provider API error",
    ErrorClass.UNEXPECTED: "Unexpected error calling provider",
}


def execute_with_error_handling(
    method: str,
    callback: Callable[[], Any],
    default: Any = None,
    *,
    classify: Callable[[Exception], ErrorClass],
    policy: RetryPolicy = DEFAULT_POLICY,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """Run ``callback`` and map every failure to ``default``.

    Args:
        method: Name of the driver operation, used as log context.
        callback: Zero-argument callable performing the provider call.
        default: Value returned when the call cannot be completed.
        classify: Maps an exception to an ``ErrorClass``.
        policy: Attempt limit and backoff curve.
        sleep: Blocking wait used between rate-limited attempts.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return callback()
        except Exception as exc:
            error_class = classify(exc)
            if error_class is ErrorClass.RATE_LIMIT and attempt < policy.max_attempts:
                delay = policy.delay(attempt)
                logger.warning(
                    "Provider rate limit hit, backing off",
                    method=method,
                    attempt=attempt,
                    delay=delay,
                    error=str(exc),
                )
                sleep(delay)
                continue

            logger.error(
                _FAILURE_MESSAGES[error_class],
                method=method,
                error=str(exc),
                classification=error_class.value,
                attempts=attempt,
            )
            return default
