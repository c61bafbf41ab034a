"""Sliding-window rate limiting for sign-in endpoints.

Six digit passcodes and the shared password are only as strong as the number
of guesses allowed, so every credential-bearing endpoint is limited per client
IP and per submitted email.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum

from fastapi import Request


class RateLimitType(str, Enum):
    """Rate limit categories."""

    SIGN_IN = "sign_in"
    PASSCODE_REQUEST = "passcode_request"
    ACCESS = "access"


@dataclass
class RateLimitConfig:
    """Configuration for a rate limit type."""

    requests: int
    window_seconds: int


CLEANUP_INTERVAL_SECONDS = 60

RATE_LIMIT_CONFIG: dict[RateLimitType, RateLimitConfig] = {
    RateLimitType.SIGN_IN: RateLimitConfig(requests=10, window_seconds=60),
    RateLimitType.PASSCODE_REQUEST: RateLimitConfig(requests=5, window_seconds=300),
    RateLimitType.ACCESS: RateLimitConfig(requests=120, window_seconds=60),
}


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""

    success: bool
    limit: int
    remaining: int
    reset: int  # Unix timestamp in seconds


class InMemoryRateLimiter:
    """In-memory sliding window limiter.

    Counters are per process; run behind a shared limiter when scaling out.
    Expired keys are swept at most once per ``cleanup_interval`` seconds.
    """

    def __init__(self, cleanup_interval: float = CLEANUP_INTERVAL_SECONDS) -> None:
        self._requests: dict[str, list[float]] = {}
        self._lock = asyncio.Lock()
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = time.time()

    async def check(self, identifier: str, limit_type: RateLimitType) -> RateLimitResult:
        """Record a request for ``identifier`` and report whether it is allowed."""
        config = RATE_LIMIT_CONFIG[limit_type]
        key = f"{limit_type.value}:{identifier}"
        now = time.time()
        window_start = now - config.window_seconds

        async with self._lock:
            if now - self._last_cleanup >= self._cleanup_interval:
                self._evict_expired(now)

            timestamps = [t for t in self._requests.get(key, ()) if t > window_start]

            if len(timestamps) >= config.requests:
                self._requests[key] = timestamps
                return RateLimitResult(
                    success=False,
                    limit=config.requests,
                    remaining=0,
                    reset=int(min(timestamps) + config.window_seconds),
                )

            timestamps.append(now)
            self._requests[key] = timestamps
            return RateLimitResult(
                success=True,
                limit=config.requests,
                remaining=config.requests - len(timestamps),
                reset=int(now + config.window_seconds),
            )

    def reset(self) -> None:
        """Reset all rate limit entries. Useful for testing."""
        self._requests.clear()

    def __len__(self) -> int:
        return len(self._requests)

    async def cleanup_old_entries(self) -> int:
        """Remove keys whose timestamps have all left their window.

        Returns:
            Number of keys removed
        """
        async with self._lock:
            return self._evict_expired(time.time())

    def _evict_expired(self, now: float) -> int:
        # Caller holds the lock.
        self._last_cleanup = now
        expired = []
        for key, timestamps in self._requests.items():
            limit_type = RateLimitType(key.split(":", 1)[0])
            window_start = now - RATE_LIMIT_CONFIG[limit_type].window_seconds
            valid = [t for t in timestamps if t > window_start]
            if valid:
                self._requests[key] = valid
            else:
                expired.append(key)

        for key in expired:
            del self._requests[key]
        return len(expired)


_rate_limiter = InMemoryRateLimiter()


def get_rate_limiter() -> InMemoryRateLimiter:
    """Get the global rate limiter instance."""
    return _rate_limiter


def get_client_ip(request: Request) -> str | None:
    """Extract client IP, honoring common proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return None


async def check_rate_limit(
    request: Request,
    limit_type: RateLimitType,
    email: str | None = None,
) -> RateLimitResult:
    """Check the IP bucket and, when given, the email bucket.

    The request is refused if either bucket is exhausted.
    """
    limiter = get_rate_limiter()
    result = await limiter.check(f"ip:{get_client_ip(request) or 'unknown'}", limit_type)
    if not result.success or not email:
        return result
    return await limiter.check(f"email:{email}", limit_type)


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Headers describing the rate limit state."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset),
    }

    if not result.success:
        headers["Retry-After"] = str(max(0, result.reset - int(time.time())))

    return headers
