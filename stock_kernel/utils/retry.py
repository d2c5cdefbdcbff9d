"""
Bounded retry for storage calls.

Used in two places:
    - transient failures of the conditional decrement (lock timeouts,
      serialization failures) before any mutation is visible;
    - restoring stock after a committed decrement or reversal flag flip,
      where giving up means InconsistentStateError.
"""

import time
from typing import Callable, TypeVar

from stock_kernel.logging_config import get_logger

logger = get_logger("utils.retry")

T = TypeVar("T")


class RetryExhaustedError(Exception):
    """All attempts failed; ``last_error`` holds the final exception."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempt(s): {last_error!r}"
        )


def retry_call(
    fn: Callable[[], T],
    *,
    operation: str,
    attempts: int,
    retry_on: tuple[type[BaseException], ...],
    should_retry: Callable[[BaseException], bool] | None = None,
    backoff_seconds: float = 0.05,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``fn`` until it returns, at most ``attempts`` times.

    Only exceptions in ``retry_on`` for which ``should_retry`` (when given)
    returns True are retried; anything else propagates immediately.
    Backoff is linear: ``backoff_seconds * attempt``.

    Raises:
        ValueError: attempts < 1.
        RetryExhaustedError: every attempt raised a retryable exception.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    last_error: BaseException | None = None
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except retry_on as exc:
            if should_retry is not None and not should_retry(exc):
                raise
            last_error = exc
            if attempt < attempts:
                logger.warning(
                    "storage_call_retry",
                    extra={
                        "operation": operation,
                        "attempt": attempt,
                        "max_attempts": attempts,
                        "error": repr(exc),
                    },
                )
                if backoff_seconds > 0:
                    sleep(backoff_seconds * attempt)

    assert last_error is not None
    raise RetryExhaustedError(operation, attempts, last_error)
