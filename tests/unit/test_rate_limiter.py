"""Unit tests for the commit pacing token bucket and rate limit header parsing."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import pytest

from docgen.scaffold.rate_limiter import TokenBucket, parse_rate_limit_headers


class TestTokenBucket:
    """Tests for TokenBucket class."""

    def test_initialize(self) -> None:
        bucket = TokenBucket(rate=10.0, capacity=20.0)
        assert bucket.available_tokens() == 20.0

    def test_invalid_arguments(self) -> None:
        with pytest.raises(ValueError):
            TokenBucket(rate=0)
        with pytest.raises(ValueError):
            TokenBucket(rate=1.0, capacity=0)

    def test_try_acquire_success(self) -> None:
        bucket = TokenBucket(rate=10.0, capacity=20.0)
        assert bucket.try_acquire(5.0) is True
        # Allow small tolerance for timing precision
        assert 14.9 <= bucket.available_tokens() <= 15.1

    def test_try_acquire_failure(self) -> None:
        bucket = TokenBucket(rate=10.0, capacity=20.0)
        assert bucket.try_acquire(25.0) is False
        assert bucket.available_tokens() == 20.0

    def test_from_interval(self) -> None:
        bucket = TokenBucket.from_interval(0.1)
        assert bucket.try_acquire() is True
        assert bucket.try_acquire() is False

    @pytest.mark.asyncio
    async def test_acquire_immediate(self) -> None:
        bucket = TokenBucket(rate=10.0, capacity=20.0)
        wait_time = await bucket.acquire(10.0)
        assert wait_time == 0.0

    @pytest.mark.asyncio
    async def test_acquire_more_than_capacity(self) -> None:
        bucket = TokenBucket(rate=10.0, capacity=1.0)
        with pytest.raises(ValueError):
            await bucket.acquire(2.0)

    @pytest.mark.asyncio
    async def test_acquire_with_wait(self) -> None:
        """A drained bucket makes the next caller wait for the refill."""
        bucket = TokenBucket(rate=10.0, capacity=10.0)
        await bucket.acquire(10.0)

        start = time.monotonic()
        wait_time = await bucket.acquire(5.0)
        elapsed = time.monotonic() - start

        # 5 tokens at 10 per second
        assert 0.4 <= wait_time <= 0.7
        assert 0.4 <= elapsed <= 0.9

    @pytest.mark.asyncio
    async def test_interval_spacing(self) -> None:
        """Consecutive acquires are spaced by the interval."""
        bucket = TokenBucket.from_interval(0.05)

        start = time.monotonic()
        for _ in range(4):
            await bucket.acquire()
        elapsed = time.monotonic() - start

        # First is free, then three intervals
        assert elapsed >= 0.14

    @pytest.mark.asyncio
    async def test_concurrent_callers_do_not_deadlock(self) -> None:
        bucket = TokenBucket.from_interval(0.02)

        waits = await asyncio.wait_for(
            asyncio.gather(*(bucket.acquire() for _ in range(5))),
            timeout=2.0,
        )

        assert len(waits) == 5
        assert sum(1 for w in waits if w == 0.0) == 1


class TestParseRateLimitHeaders:
    """Tests for parse_rate_limit_headers."""

    def test_retry_after_seconds(self) -> None:
        info = parse_rate_limit_headers(429, {"Retry-After": "30"})
        assert info.status_code == 429
        assert info.retry_after_seconds == 30.0

    def test_retry_after_http_date(self) -> None:
        future = datetime.now(timezone.utc) + timedelta(seconds=60)
        info = parse_rate_limit_headers(429, {"Retry-After": format_datetime(future, usegmt=True)})
        assert info.retry_after_seconds is not None
        assert 55 <= info.retry_after_seconds <= 61

    def test_unparseable_retry_after(self) -> None:
        info = parse_rate_limit_headers(429, {"Retry-After": "soon"})
        assert info.retry_after_seconds is None

    def test_exhausted_window_uses_reset(self) -> None:
        reset_at = int(datetime.now(timezone.utc).timestamp()) + 120
        info = parse_rate_limit_headers(
            403,
            {"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": str(reset_at)},
        )
        assert info.rate_limit_remaining == 0
        assert info.rate_limit_reset_at == reset_at
        assert info.retry_after_seconds is not None
        assert 115 <= info.retry_after_seconds <= 121

    def test_remaining_window_has_no_wait(self) -> None:
        info = parse_rate_limit_headers(
            500,
            {"x-ratelimit-remaining": "42", "x-ratelimit-reset": "1700000000"},
        )
        assert info.rate_limit_remaining == 42
        assert info.retry_after_seconds is None

    def test_no_headers(self) -> None:
        info = parse_rate_limit_headers(502, {})
        assert info.retry_after_seconds is None
        assert info.rate_limit_remaining is None
        assert info.rate_limit_reset_at is None
