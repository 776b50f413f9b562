"""
Unified Rate Limiter

Token bucket admission control for the external signal providers.
Each provider gets its own bucket so one slow source never eats
another source's quota.
"""

import asyncio
import time
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)

# Observed provider limit: 5 requests per second, refilled continuously
DEFAULT_CALLS_PER_SECOND = 5.0


class UnifiedRateLimiter:
    """
    Token bucket rate limiter.

    Tokens refill continuously at ``calls_per_second``; the bucket holds at
    most ``burst_size`` tokens. A caller without a token suspends until one
    becomes available.
    """

    def __init__(
        self,
        calls_per_second: float = DEFAULT_CALLS_PER_SECOND,
        burst_size: Optional[int] = None,
        service_name: str = "api"
    ):
        """
        Initialize rate limiter.

        Args:
            calls_per_second: Token refill rate
            burst_size: Bucket capacity (defaults to calls_per_second)
            service_name: Service name for logging
        """
        if calls_per_second <= 0:
            raise ValueError("calls_per_second must be positive")

        self.calls_per_second = calls_per_second
        self.burst_size = burst_size or max(int(calls_per_second), 1)
        self.service_name = service_name

        self.tokens = float(self.burst_size)
        self.last_refill = time.monotonic()
        self.total_requests = 0
        self.total_wait_time = 0.0
        self.lock = asyncio.Lock()

        self.logger = logger.bind(service=f"RateLimiter-{service_name}")
        self.logger.debug(
            "Rate limiter initialized",
            calls_per_second=calls_per_second,
            burst_size=self.burst_size
        )

    @classmethod
    def for_lastfm(cls, calls_per_second: float = DEFAULT_CALLS_PER_SECOND) -> "UnifiedRateLimiter":
        """Create rate limiter configured for the Last.fm API."""
        return cls(calls_per_second=calls_per_second, service_name="LastFM")

    @classmethod
    def for_genius(cls, calls_per_second: float = DEFAULT_CALLS_PER_SECOND) -> "UnifiedRateLimiter":
        """Create rate limiter configured for the Genius API."""
        return cls(calls_per_second=calls_per_second, service_name="Genius")

    @classmethod
    def for_deepseek(cls, calls_per_second: float = DEFAULT_CALLS_PER_SECOND) -> "UnifiedRateLimiter":
        """Create rate limiter configured for the DeepSeek completion API."""
        return cls(calls_per_second=calls_per_second, service_name="DeepSeek")

    def _refill(self, current_time: float) -> None:
        elapsed = current_time - self.last_refill
        self.tokens = min(self.burst_size, self.tokens + elapsed * self.calls_per_second)
        self.last_refill = current_time

    def _time_until_token(self) -> float:
        if self.tokens >= 1:
            return 0.0
        return (1.0 - self.tokens) / self.calls_per_second

    async def wait_if_needed(self) -> None:
        """
        Wait until a token is available, then consume it.

        Must be called before every outbound request.
        """
        async with self.lock:
            self._refill(time.monotonic())
            wait_time = self._time_until_token()

            if wait_time > 0:
                self.logger.debug(
                    "Rate limit wait required",
                    wait_time=round(wait_time, 4),
                    tokens=round(self.tokens, 3)
                )
                await asyncio.sleep(wait_time)
                self.total_wait_time += wait_time
                self._refill(time.monotonic())

            self.tokens = max(0.0, self.tokens - 1)
            self.total_requests += 1

    def get_current_usage(self) -> dict:
        """
        Get current rate limit usage statistics.

        Returns:
            Dictionary with current usage information
        """
        return {
            "service": self.service_name,
            "tokens_available": self.tokens,
            "burst_capacity": self.burst_size,
            "calls_per_second_limit": self.calls_per_second,
            "total_requests": self.total_requests,
            "total_wait_seconds": round(self.total_wait_time, 3),
        }

    def reset(self) -> None:
        """Reset rate limiter state (useful for testing)."""
        self.tokens = float(self.burst_size)
        self.last_refill = time.monotonic()
        self.total_requests = 0
        self.total_wait_time = 0.0
        self.logger.info("Rate limiter reset")
