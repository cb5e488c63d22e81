"""
Retry Policy
============

Caller-level retry around generation calls.

The generation client never retries on its own. Callers wrap it in a
RetryPolicy, which re-attempts only errors whose kind is retryable
(transport failures, quota exhaustion, server errors) with exponential
backoff, then re-raises the last error.

Backoff:
    delay(n) = min(max_delay, base_delay * 2^(n-1))   for retry n = 1, 2, ...
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from prettynails.models.errors import PipelineError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """
    Bounded exponential-backoff retry.

    Attributes:
        max_attempts: Total attempts including the first
        base_delay: Delay before the first retry (seconds)
        max_delay: Upper bound for any single delay (seconds)
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    def delay_for(self, retry_number: int) -> float:
        """Backoff before the given retry (1-based)."""
        return min(self.max_delay, self.base_delay * (2 ** (retry_number - 1)))

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run an async operation with retries.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt

        Returns:
            The operation's result

        Raises:
            PipelineError: The last error once attempts are exhausted, or
                immediately for non-retryable kinds
        """
        attempt = 1
        while True:
            try:
                return await operation()
            except PipelineError as e:
                if not e.retryable or attempt >= self.max_attempts:
                    if e.retryable:
                        logger.warning(
                            f"Giving up after {attempt} attempt(s): {e.kind.value}"
                        )
                    raise

                delay = self.delay_for(attempt)
                logger.warning(
                    f"Attempt {attempt}/{self.max_attempts} failed "
                    f"({e.kind.value}), retrying in {delay:.1f}s"
                )
                await self._sleep(delay)
                attempt += 1
