"""
Bounded retry policy with exponential backoff.

Used by the Bedrock adapters to retry throttled calls. The sleep function is
injectable so tests can run the policy against a fake clock.

Example:
    >>> policy = RetryPolicy(max_attempts=3, base_delay=0.5)
    >>> policy.delay_for(1), policy.delay_for(2)
    (0.5, 1.0)
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar

from CRB.core.exceptions import BackendError
from CRB.core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """
    Retry a callable while it raises a retryable BackendError.

    Attributes:
        max_attempts (int): Total attempts including the first call
        base_delay (float): Delay in seconds after the first failure
        max_delay (float): Backoff ceiling in seconds
        multiplier (float): Growth factor between consecutive delays
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 4.0,
        multiplier: float = 2.0,
        sleep: Callable[[float], None] = time.sleep
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.multiplier = multiplier
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings, sleep: Callable[[float], None] = time.sleep) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_sec,
            max_delay=settings.retry_max_delay_sec,
            sleep=sleep,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given (1-based) failed attempt."""
        return min(self.max_delay, self.base_delay * (self.multiplier ** (attempt - 1)))

    def call(self, fn: Callable[[], T], operation: str = "call") -> T:
        """
        Invoke fn, retrying retryable BackendErrors.

        Non-retryable errors propagate immediately; the last retryable error
        propagates once attempts are exhausted.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return fn()
            except BackendError as e:
                if not e.retryable:
                    raise
                if attempt >= self.max_attempts:
                    logger.warning(
                        f"{operation} still throttled after {attempt} attempts, giving up"
                    )
                    raise
                delay = self.delay_for(attempt)
                logger.info(
                    f"{operation} throttled (attempt {attempt}/{self.max_attempts}), "
                    f"retrying in {delay:.2f}s"
                )
                self._sleep(delay)
        # Unreachable: the loop either returns or raises
        raise RuntimeError("retry loop exited without result")
