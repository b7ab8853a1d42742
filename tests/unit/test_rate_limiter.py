"""
Unit tests for per-source rate limiting and backoff
"""

import pytest

from dex_arbitrage.rate_limiter import (
    BACKOFF_MAX_SECONDS,
    RateLimit,
    RateLimiter,
    backoff_delay_for,
)


@pytest.fixture
def limiter(time_provider):
    return RateLimiter({"test": RateLimit(2, 10.0)}, time_provider=time_provider)


class TestBackoffDelay:
    @pytest.mark.parametrize(
        "errors,expected", [(0, 0.0), (1, 0.2), (2, 0.4), (3, 0.8), (8, 25.6)]
    )
    def test_exponential(self, errors, expected):
        assert backoff_delay_for(errors) == pytest.approx(expected)

    def test_capped(self):
        assert backoff_delay_for(20) == BACKOFF_MAX_SECONDS


class TestRateLimit:
    @pytest.mark.parametrize("args", [(0, 60.0), (5, 0.0), (-1, 10.0)])
    def test_invalid_limits(self, args):
        with pytest.raises(ValueError):
            RateLimit(*args)


class TestRateLimiter:
    @pytest.mark.asyncio
    async def test_window_admits_max_requests(self, limiter, time_provider):
        await limiter.acquire("test")
        await limiter.acquire("test")
        assert time_provider.sleeps == []

        await limiter.acquire("test")
        # Third call waits for the oldest slot to leave the window
        assert time_provider.sleeps == [pytest.approx(10.0)]

    @pytest.mark.asyncio
    async def test_sources_are_independent(self, limiter, time_provider):
        await limiter.acquire("test")
        await limiter.acquire("test")
        await limiter.acquire("other")
        assert time_provider.sleeps == []

    @pytest.mark.asyncio
    async def test_failures_add_backoff(self, limiter, time_provider):
        limiter.record_failure("test")
        limiter.record_failure("test")
        assert limiter.consecutive_errors("test") == 2
        assert limiter.backoff_delay("test") == pytest.approx(0.4)

        await limiter.acquire("test")
        assert time_provider.sleeps == [pytest.approx(0.4)]

    def test_success_resets_errors(self, limiter):
        limiter.record_failure("test")
        limiter.record_success("test")
        assert limiter.consecutive_errors("test") == 0
        assert limiter.backoff_delay("test") == 0.0

    def test_errors_expire_after_quiet_minute(self, limiter, time_provider):
        limiter.record_failure("test")
        limiter.record_failure("test")
        time_provider.advance_time(60)
        assert limiter.consecutive_errors("test") == 0

    def test_failure_after_quiet_period_starts_over(self, limiter, time_provider):
        limiter.record_failure("test")
        limiter.record_failure("test")
        time_provider.advance_time(61)
        limiter.record_failure("test")
        assert limiter.consecutive_errors("test") == 1

    def test_default_limits(self, time_provider):
        limiter = RateLimiter(time_provider=time_provider)
        assert limiter.limit_for("uniswap").max_requests == 100
        assert limiter.limit_for("brand-new").max_requests == 30

    @pytest.mark.asyncio
    async def test_snapshot(self, limiter):
        await limiter.acquire("test")
        limiter.record_failure("test")
        snap = limiter.snapshot()["test"]
        assert snap.requests_in_window == 1
        assert snap.max_requests == 2
        assert snap.consecutive_errors == 1
        assert snap.backoff_seconds == pytest.approx(0.2)

    @pytest.mark.asyncio
    async def test_backoff_beyond_max_wait_refused(self, limiter, time_provider):
        for _ in range(6):
            limiter.record_failure("test")

        assert await limiter.acquire("test", max_wait=4.5) is False
        # Refusal neither sleeps, takes a slot nor counts as another failure
        assert time_provider.sleeps == []
        assert limiter.snapshot()["test"].requests_in_window == 0
        assert limiter.consecutive_errors("test") == 6

    @pytest.mark.asyncio
    async def test_backoff_within_max_wait_admitted(self, limiter, time_provider):
        limiter.record_failure("test")
        assert await limiter.acquire("test", max_wait=4.5) is True
        assert time_provider.sleeps == [pytest.approx(0.2)]

    @pytest.mark.asyncio
    async def test_window_wait_beyond_max_wait_refused(self, limiter, time_provider):
        assert await limiter.acquire("test")
        assert await limiter.acquire("test")
        assert await limiter.acquire("test", max_wait=5.0) is False
        assert time_provider.sleeps == []
