"""
Retry/Backoff Executor

Generic resilience wrapper shared by the external API clients and the
durable record store. It knows nothing about what it wraps: it receives a
zero-argument callable returning an awaitable and a label for logging.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Tuple, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration."""
    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    jitter: Tuple[float, float] = (0.85, 1.15)

    def backoff(self, attempt: int) -> float:
        """
        Delay before the attempt following ``attempt`` (1-based).

        Args:
            attempt: Number of the attempt that just failed

        Returns:
            Wait time in seconds
        """
        low, high = self.jitter
        return self.base_delay * (2 ** (attempt - 1)) * random.uniform(low, high)


DEFAULT_POLICY = RetryPolicy()


def is_retryable(error: BaseException) -> bool:
    """Whether another attempt may succeed after ``error``."""
    if isinstance(error, (asyncio.TimeoutError, ConnectionResetError)):
        return True
    return bool(getattr(error, "retryable", False))


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    label: str,
    policy: RetryPolicy = DEFAULT_POLICY
) -> T:
    """
    Run ``operation`` until it succeeds or the attempt budget is spent.

    Only retryable errors trigger another attempt; anything else is
    raised immediately. After the last attempt the last error is raised
    unchanged.

    Args:
        operation: Zero-argument callable returning an awaitable
        label: Operation name used in log events
        policy: Attempt budget and backoff settings

    Returns:
        Result of the first successful attempt
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as e:
            retryable = is_retryable(e)
            logger.warning(
                "Operation attempt failed",
                operation=label,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                retryable=retryable,
                error=str(e),
                error_type=type(e).__name__
            )
            if not retryable or attempt >= policy.max_attempts:
                raise

            wait_time = policy.backoff(attempt)
            logger.debug(
                "Backing off before retry",
                operation=label,
                attempt=attempt,
                delay=round(wait_time, 3)
            )
            await asyncio.sleep(wait_time)
            attempt += 1
