"""Bounded exponential backoff for transient storage failures."""

import logging
import random
import time
from typing import Any, Callable, Optional

from .exceptions import StorageTransientError

log = logging.getLogger(__name__)


class RetryPolicy:
    """
    Retries an operation while it raises StorageTransientError.

    Any other exception propagates immediately. Once the attempts are used up
    the last StorageTransientError is re-raised, so callers see the same
    error class whether or not retries happened.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 0.2,
        max_delay: float = 5.0,
        backoff_factor: float = 2.0,
        jitter: float = 0.1,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Initialize the retry policy.

        Args:
            max_attempts: Total number of attempts, including the first one
            initial_delay: Delay before the second attempt in seconds
            max_delay: Upper bound for a single delay in seconds
            backoff_factor: Exponential backoff multiplier
            jitter: Maximum random seconds added to each delay
            sleep: Sleep function, replaceable in tests
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter
        self._sleep = sleep or time.sleep

    def delays(self) -> list[float]:
        """Return the base delays (without jitter) between consecutive attempts."""
        delays = []
        delay = self.initial_delay
        for _ in range(self.max_attempts - 1):
            delays.append(min(delay, self.max_delay))
            delay *= self.backoff_factor
        return delays

    def call(self, operation: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Execute an operation with retry logic.

        Returns:
            Result of the operation

        Raises:
            StorageTransientError: After all attempts fail transiently
        """
        delays = self.delays()
        for attempt in range(1, self.max_attempts + 1):
            try:
                return operation(*args, **kwargs)
            except StorageTransientError as e:
                if attempt >= self.max_attempts:
                    log.error(
                        "All %d attempts exhausted. Last error: %s", self.max_attempts, e
                    )
                    raise
                delay = delays[attempt - 1] + random.uniform(0, self.jitter)
                log.warning(
                    "Transient error on attempt %d/%d, retrying in %.2fs: %s",
                    attempt,
                    self.max_attempts,
                    delay,
                    e,
                )
                self._sleep(delay)

