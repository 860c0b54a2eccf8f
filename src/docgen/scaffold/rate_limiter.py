"""Commit pacing and rate limit header parsing for the repository host.

Key Components:
- TokenBucket: Token bucket used to space consecutive commits
- RateLimitInfo / parse_rate_limit_headers: Reads Retry-After and
  X-RateLimit-* headers from a failed response
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


class TokenBucket:
    """Token bucket rate limiter.

    With capacity 1 and rate ``1 / interval`` the bucket lets the first
    caller through immediately and then spaces callers ``interval`` seconds
    apart. Safe for concurrent callers on one event loop.

    Args:
        rate: Token refill rate (tokens per second)
        capacity: Maximum token capacity (burst capacity)
    """

    def __init__(self, rate: float, capacity: float = 1.0) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._rate = rate
        self._capacity = capacity
        self._tokens = capacity
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()

        logger.debug("token_bucket_initialized", rate=rate, capacity=capacity)

    @classmethod
    def from_interval(cls, interval_seconds: float) -> TokenBucket:
        """Bucket admitting one caller per ``interval_seconds``."""
        return cls(rate=1.0 / interval_seconds, capacity=1.0)

    def _refill(self) -> None:
        """Refill tokens based on elapsed time since last refill."""
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._last_refill = now

    async def acquire(self, tokens: float = 1.0) -> float:
        """Acquire tokens, waiting if necessary.

        Args:
            tokens: Number of tokens to acquire

        Returns:
            Total time spent waiting, in seconds
        """
        if tokens > self._capacity:
            raise ValueError(f"cannot acquire {tokens} tokens from a bucket of {self._capacity}")

        waited = 0.0
        while True:
            async with self._lock:
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    if waited:
                        logger.debug("tokens_acquired_after_wait", tokens=tokens, wait_time=waited)
                    return waited
                wait_time = (tokens - self._tokens) / self._rate

            # Sleep outside the lock so other callers can refill and check
            await asyncio.sleep(wait_time)
            waited += wait_time

    def try_acquire(self, tokens: float = 1.0) -> bool:
        """Acquire tokens without waiting; return False if not available."""
        self._refill()
        if self._tokens >= tokens:
            self._tokens -= tokens
            return True
        return False

    def available_tokens(self) -> float:
        self._refill()
        return self._tokens


class RateLimitInfo(BaseModel):
    """Rate limit details read from a response.

    Attributes:
        status_code: HTTP status code
        retry_after_seconds: Seconds to wait before retrying, if advertised
        rate_limit_remaining: Remaining requests in the current window
        rate_limit_reset_at: Epoch seconds at which the window resets
    """

    status_code: int
    retry_after_seconds: float | None = None
    rate_limit_remaining: int | None = None
    rate_limit_reset_at: int | None = None


def parse_rate_limit_headers(status_code: int, headers: Mapping[str, str]) -> RateLimitInfo:
    """Parse Retry-After and X-RateLimit-* headers.

    ``Retry-After`` may be seconds or an HTTP date. When it is absent but
    the window is exhausted (``X-RateLimit-Remaining: 0``), the wait is
    derived from ``X-RateLimit-Reset``.

    Args:
        status_code: HTTP status code
        headers: Response headers (any key case)

    Returns:
        Parsed RateLimitInfo
    """
    headers_lower = {k.lower(): v for k, v in headers.items()}
    now = datetime.now(timezone.utc)

    retry_after: float | None = None
    if "retry-after" in headers_lower:
        value = headers_lower["retry-after"]
        try:
            retry_after = max(0.0, float(value))
        except ValueError:
            try:
                retry_after = max(0.0, (parsedate_to_datetime(value) - now).total_seconds())
            except (ValueError, TypeError):
                logger.warning("failed_to_parse_retry_after", value=value)

    remaining: int | None = None
    if "x-ratelimit-remaining" in headers_lower:
        try:
            remaining = int(headers_lower["x-ratelimit-remaining"])
        except ValueError:
            logger.warning(
                "failed_to_parse_x_ratelimit_remaining",
                value=headers_lower["x-ratelimit-remaining"],
            )

    reset_at: int | None = None
    if "x-ratelimit-reset" in headers_lower:
        try:
            reset_at = int(headers_lower["x-ratelimit-reset"])
        except ValueError:
            logger.warning(
                "failed_to_parse_x_ratelimit_reset",
                value=headers_lower["x-ratelimit-reset"],
            )

    if retry_after is None and remaining == 0 and reset_at is not None:
        retry_after = max(0.0, reset_at - now.timestamp())

    return RateLimitInfo(
        status_code=status_code,
        retry_after_seconds=retry_after,
        rate_limit_remaining=remaining,
        rate_limit_reset_at=reset_at,
    )
