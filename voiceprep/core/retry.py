"""
Bounded retry policy for external calls.

Each attempt is capped by a timeout and, optionally, the whole call by a
deadline; failed attempts wait according to a backoff schedule before
the next one. Non-retryable provider errors stop immediately.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from voiceprep.core.exceptions import ExternalServiceError, ExternalTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Retry settings for one logical external call.

    Attributes:
        max_attempts: Total attempts including the first one
        backoff_seconds: Delay before attempt n+1 is backoff_seconds[n-1];
            the last entry repeats when the schedule is shorter
        attempt_timeout: Upper bound for a single attempt in seconds
        deadline: Optional ceiling in seconds for all attempts and delays
            together; each attempt is cut to the time that remains
    """

    max_attempts: int = 3
    backoff_seconds: list[float] = field(default_factory=lambda: [3.0, 6.0])
    attempt_timeout: float = 120.0
    deadline: float | None = None
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.attempt_timeout <= 0:
            raise ValueError("attempt_timeout must be positive")
        if self.deadline is not None and self.deadline <= 0:
            raise ValueError("deadline must be positive")

    @classmethod
    def single_attempt(cls, timeout: float) -> "RetryPolicy":
        """A policy that only enforces the timeout."""
        return cls(max_attempts=1, backoff_seconds=[], attempt_timeout=timeout)

    def delay_before(self, attempt: int) -> float:
        """Delay to wait before the given 2-based attempt number."""
        if not self.backoff_seconds:
            return 0.0
        index = min(attempt - 2, len(self.backoff_seconds) - 1)
        return self.backoff_seconds[index]

    async def run(self, operation: Callable[[], Awaitable[T]], description: str = "external call") -> T:
        """
        Run an operation under this policy.

        Args:
            operation: Zero-argument factory producing a fresh awaitable per attempt
            description: Name used in logs and timeout messages

        Returns:
            The operation's result

        Raises:
            ExternalServiceError: The last failure once attempts are exhausted
                or the deadline leaves no room for another attempt
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        last_error: ExternalServiceError | None = None

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                delay = self.delay_before(attempt)
                if self.deadline is not None and self.deadline - (loop.time() - started) <= delay:
                    logger.warning(f"{description} deadline of {self.deadline:.0f}s reached; not retrying")
                    break
                logger.info(f"Retrying {description} in {delay:.1f}s (attempt {attempt}/{self.max_attempts})")
                await self.sleep(delay)

            timeout = self.attempt_timeout
            if self.deadline is not None:
                timeout = min(timeout, self.deadline - (loop.time() - started))
                if timeout <= 0:
                    break

            try:
                return await asyncio.wait_for(operation(), timeout=timeout)
            except asyncio.TimeoutError:
                last_error = ExternalTimeoutError(description, timeout)
            except ExternalServiceError as e:
                last_error = e

            logger.warning(f"{description} failed (attempt {attempt}/{self.max_attempts}): {last_error}")
            if not last_error.retryable:
                break

        if last_error is None:
            last_error = ExternalTimeoutError(description, self.deadline or self.attempt_timeout)
        raise last_error
