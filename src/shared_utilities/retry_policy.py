"""
Bounded retry with backoff, shared by every flow that talks to the store.

A policy is an immutable value: the same instance can be reused by
concurrent callers because all per-call state lives on the stack of
``RetryPolicy.call``.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from loguru import logger

T = TypeVar("T")


class RetryExhaustedError(Exception):
    """Raised when every attempt of an operation raised."""

    def __init__(self, label: str, attempts: int, last_error: BaseException):
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{label} failed after {attempts} attempts: {last_error}")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry an operation a bounded number of times with growing delays."""

    max_attempts: int = 3
    delay_seconds: float = 2.0
    backoff_factor: float = 1.0
    max_delay_seconds: float = 60.0
    sleep: Callable[[float], None] = field(
        default=time.sleep, compare=False, repr=False
    )

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")

    def delay_for(self, attempt: int) -> float:
        """
        Delay to wait after a failed attempt.

        Args:
            attempt: 1-based number of the attempt that just failed

        Returns:
            Delay in seconds, capped at max_delay_seconds
        """
        delay = self.delay_seconds * (self.backoff_factor ** (attempt - 1))
        return min(delay, self.max_delay_seconds)

    def call(
        self,
        operation: Callable[[int], T],
        should_retry: Callable[[T], bool] | None = None,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        label: str = "operation",
    ) -> T:
        """
        Run ``operation`` until it succeeds or attempts run out.

        The operation receives the 1-based attempt number. A returned value
        for which ``should_retry`` is true counts as a failed attempt; when
        the last attempt still yields such a value it is returned as-is so
        the caller can report it. Exceptions in ``retry_on`` are retried and
        re-raised as RetryExhaustedError after the final attempt.

        Args:
            operation: Callable performing one attempt
            should_retry: Predicate marking a returned value as a failure
            retry_on: Exception types that trigger another attempt
            label: Human-readable name used in logs and errors

        Returns:
            The value of the last attempt
        """
        for attempt in range(1, self.max_attempts + 1):
            is_last = attempt == self.max_attempts
            try:
                result = operation(attempt)
            except retry_on as e:
                logger.warning(
                    f"{label} raised on attempt {attempt}/{self.max_attempts}: {e}",
                    attempt=attempt,
                )
                if is_last:
                    raise RetryExhaustedError(label, attempt, e) from e
            else:
                if should_retry is None or not should_retry(result) or is_last:
                    return result
                logger.warning(
                    f"{label} failed on attempt {attempt}/{self.max_attempts}",
                    attempt=attempt,
                )

            delay = self.delay_for(attempt)
            if delay > 0:
                logger.debug(f"Waiting {delay:.1f}s before retrying {label}")
                self.sleep(delay)

        # Unreachable: the loop either returns or raises on the last attempt
        raise AssertionError("retry loop exited without a result")
