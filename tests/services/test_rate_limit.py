"""Rate limiter tests."""

from unittest.mock import MagicMock, patch

from scopegate.services.rate_limit import (
    RATE_LIMIT_CONFIG,
    InMemoryRateLimiter,
    RateLimitType,
    check_rate_limit,
    get_client_ip,
    rate_limit_headers,
)


def make_request(headers: dict[str, str] | None = None, host: str = "10.0.0.1") -> MagicMock:
    request = MagicMock()
    request.headers = headers or {}
    request.client.host = host
    return request


class TestInMemoryRateLimiter:
    async def test_allows_until_limit(self):
        limiter = InMemoryRateLimiter()
        limit = RATE_LIMIT_CONFIG[RateLimitType.SIGN_IN].requests

        for i in range(limit):
            result = await limiter.check("ip:1", RateLimitType.SIGN_IN)
            assert result.success is True
            assert result.remaining == limit - i - 1

        blocked = await limiter.check("ip:1", RateLimitType.SIGN_IN)
        assert blocked.success is False
        assert blocked.remaining == 0

    async def test_identifiers_are_independent(self):
        limiter = InMemoryRateLimiter()
        limit = RATE_LIMIT_CONFIG[RateLimitType.PASSCODE_REQUEST].requests

        for _ in range(limit):
            await limiter.check("ip:1", RateLimitType.PASSCODE_REQUEST)

        assert (await limiter.check("ip:1", RateLimitType.PASSCODE_REQUEST)).success is False
        assert (await limiter.check("ip:2", RateLimitType.PASSCODE_REQUEST)).success is True
        assert (await limiter.check("ip:1", RateLimitType.SIGN_IN)).success is True

    async def test_reset(self):
        limiter = InMemoryRateLimiter()
        limit = RATE_LIMIT_CONFIG[RateLimitType.PASSCODE_REQUEST].requests
        for _ in range(limit):
            await limiter.check("ip:1", RateLimitType.PASSCODE_REQUEST)

        limiter.reset()

        assert (await limiter.check("ip:1", RateLimitType.PASSCODE_REQUEST)).success is True


class TestClientIp:
    def test_forwarded_for(self):
        request = make_request({"x-forwarded-for": "203.0.113.5, 10.0.0.1"})

        assert get_client_ip(request) == "203.0.113.5"

    def test_real_ip(self):
        assert get_client_ip(make_request({"x-real-ip": " 203.0.113.9 "})) == "203.0.113.9"

    def test_client_host(self):
        assert get_client_ip(make_request()) == "10.0.0.1"


async def test_email_bucket_limits_across_ips():
    """Guessing one email's passcode from many IPs is still limited."""
    limit = RATE_LIMIT_CONFIG[RateLimitType.SIGN_IN].requests

    for i in range(limit):
        result = await check_rate_limit(
            make_request(host=f"10.0.1.{i}"), RateLimitType.SIGN_IN, "admin@example.com"
        )
        assert result.success is True

    result = await check_rate_limit(
        make_request(host="10.0.2.1"), RateLimitType.SIGN_IN, "admin@example.com"
    )
    assert result.success is False


def test_headers_include_retry_after_when_blocked():
    limiter_result = MagicMock(success=False, limit=10, remaining=0, reset=0)

    headers = rate_limit_headers(limiter_result)

    assert headers["X-RateLimit-Limit"] == "10"
    assert headers["Retry-After"] == "0"


class TestEviction:
    async def test_cleanup_removes_expired_keys(self):
        limiter = InMemoryRateLimiter()
        with patch("scopegate.services.rate_limit.time.time", return_value=1000.0):
            for i in range(50):
                await limiter.check(f"email:user{i}@example.org", RateLimitType.SIGN_IN)
        assert len(limiter) == 50

        with patch("scopegate.services.rate_limit.time.time", return_value=1061.0):
            removed = await limiter.cleanup_old_entries()

        assert removed == 50
        assert len(limiter) == 0

    async def test_cleanup_keeps_keys_inside_their_window(self):
        limiter = InMemoryRateLimiter()
        with patch("scopegate.services.rate_limit.time.time", return_value=1000.0):
            await limiter.check("ip:1", RateLimitType.SIGN_IN)
            await limiter.check("ip:1", RateLimitType.PASSCODE_REQUEST)

        with patch("scopegate.services.rate_limit.time.time", return_value=1100.0):
            removed = await limiter.cleanup_old_entries()

        assert removed == 1
        assert len(limiter) == 1

    async def test_check_sweeps_stale_keys(self):
        with patch("scopegate.services.rate_limit.time.time", return_value=1000.0):
            limiter = InMemoryRateLimiter(cleanup_interval=60)
            for i in range(5000):
                await limiter.check(f"email:user{i}@example.org", RateLimitType.SIGN_IN)
        assert len(limiter) == 5000

        with patch("scopegate.services.rate_limit.time.time", return_value=1120.0):
            await limiter.check("email:fresh@example.org", RateLimitType.SIGN_IN)

        assert len(limiter) == 1
