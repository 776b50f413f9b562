"""
Tests for the token bucket rate limiter.
"""

from unittest.mock import AsyncMock, patch

import pytest

from tunemood.api.rate_limiter import UnifiedRateLimiter


class TestUnifiedRateLimiter:
    """Test token accounting and waits."""

    def test_defaults_match_provider_limit(self):
        limiter = UnifiedRateLimiter.for_lastfm()

        assert limiter.calls_per_second == 5.0
        assert limiter.burst_size == 5
        assert limiter.service_name == "LastFM"

    def test_invalid_rate(self):
        with pytest.raises(ValueError):
            UnifiedRateLimiter(calls_per_second=0)

    @pytest.mark.asyncio
    async def test_burst_passes_without_waiting(self):
        limiter = UnifiedRateLimiter(calls_per_second=5.0, service_name="test")

        with patch("tunemood.api.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            for _ in range(5):
                await limiter.wait_if_needed()

        mock_sleep.assert_not_awaited()
        assert limiter.total_requests == 5

    @pytest.mark.asyncio
    async def test_empty_bucket_waits_for_refill(self):
        limiter = UnifiedRateLimiter(calls_per_second=5.0, service_name="test")
        limiter.tokens = 0.0

        with patch("tunemood.api.rate_limiter.time.monotonic", return_value=limiter.last_refill), \
             patch("tunemood.api.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await limiter.wait_if_needed()

        wait = mock_sleep.await_args.args[0]
        assert wait == pytest.approx(0.2)
        assert limiter.total_requests == 1

    def test_refill_is_capped_at_burst(self):
        limiter = UnifiedRateLimiter(calls_per_second=5.0, service_name="test")
        limiter.tokens = 0.0

        limiter._refill(limiter.last_refill + 10.0)

        assert limiter.tokens == 5.0

    def test_usage_and_reset(self):
        limiter = UnifiedRateLimiter.for_genius(2.0)
        limiter.tokens = 0.5
        limiter.total_requests = 7

        usage = limiter.get_current_usage()
        assert usage["service"] == "Genius"
        assert usage["total_requests"] == 7

        limiter.reset()
        assert limiter.tokens == 2.0
        assert limiter.total_requests == 0
