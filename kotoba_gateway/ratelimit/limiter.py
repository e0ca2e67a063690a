"""Token bucket rate limiter with in-memory storage."""

import time
import threading
from typing import NamedTuple
from pydantic import BaseModel, Field


class RateLimitConfig(BaseModel):
    """Configuration for rate limiting.

    Attributes:
        max_requests: Requests allowed per window (also the burst size).
        window_seconds: Length of the window in seconds.
    """

    max_requests: int = Field(default=100, gt=0, description="Requests per window")
    window_seconds: float = Field(default=15 * 60, gt=0, description="Window length in seconds")

    @property
    def tokens_per_second(self) -> float:
        """Calculate token refill rate."""
        return self.max_requests / self.window_seconds

    @classmethod
    def from_window_ms(cls, max_requests: int, window_ms: int) -> "RateLimitConfig":
        return cls(max_requests=max_requests, window_seconds=window_ms / 1000.0)


class RateLimitResult(NamedTuple):
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed.
        limit: The rate limit.
        remaining: Remaining requests in window.
        reset_after: Seconds until the bucket is full again.
        retry_after: Seconds to wait if denied (0 if allowed).
    """

    allowed: bool
    limit: int
    remaining: int
    reset_after: int
    retry_after: float = 0.0


class TokenBucket:
    """Thread-safe token bucket rate limiter.

    Tokens are added at a constant rate up to max_requests.
    Each request consumes one token. If no tokens available, request is denied.
    """

    def __init__(self, config: RateLimitConfig):
        self.config = config
        self.tokens = float(config.max_requests)
        self.last_update = time.time()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        """Refill tokens based on elapsed time."""
        now = time.time()
        elapsed = now - self.last_update
        self.tokens = min(
            self.config.max_requests,
            self.tokens + elapsed * self.config.tokens_per_second
        )
        self.last_update = now

    def _seconds_until_full(self) -> int:
        missing = self.config.max_requests - self.tokens
        return int(missing / self.config.tokens_per_second) + (1 if missing > 0 else 0)

    def consume(self, tokens: int = 1) -> RateLimitResult:
        """Try to consume tokens from the bucket.

        Args:
            tokens: Number of tokens to consume.

        Returns:
            RateLimitResult with allow/deny status and metadata.
        """
        with self._lock:
            self._refill()

            if self.tokens >= tokens:
                self.tokens -= tokens
                return RateLimitResult(
                    allowed=True,
                    limit=self.config.max_requests,
                    remaining=int(self.tokens),
                    reset_after=self._seconds_until_full(),
                )

            tokens_needed = tokens - self.tokens
            return RateLimitResult(
                allowed=False,
                limit=self.config.max_requests,
                remaining=0,
                reset_after=self._seconds_until_full(),
                retry_after=tokens_needed / self.config.tokens_per_second,
            )


class RateLimiter:
    """Multi-key rate limiter using token buckets.

    Maintains a separate token bucket per client key.
    Old buckets are cleaned up periodically.
    """

    def __init__(self, config: RateLimitConfig | None = None):
        self.config = config or RateLimitConfig()
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = threading.Lock()
        self._last_cleanup = time.time()
        self._cleanup_interval = 300  # 5 minutes

    def _cleanup_old_buckets(self) -> None:
        """Remove buckets that have refilled completely and gone idle."""
        if time.time() - self._last_cleanup < self._cleanup_interval:
            return

        stale_time = time.time() - max(600, self.config.window_seconds)
        stale_keys = [
            key for key, bucket in self._buckets.items()
            if bucket.last_update < stale_time
        ]
        for key in stale_keys:
            del self._buckets[key]

        self._last_cleanup = time.time()

    def check(self, key: str) -> RateLimitResult:
        """Consume one request for a key.

        Args:
            key: Rate limit key (e.g. client address).

        Returns:
            RateLimitResult with status and header values.
        """
        with self._lock:
            self._cleanup_old_buckets()

            if key not in self._buckets:
                self._buckets[key] = TokenBucket(self.config)

            bucket = self._buckets[key]

        return bucket.consume()
