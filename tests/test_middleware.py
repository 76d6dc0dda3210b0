"""Tests for security headers and the /api/ rate limit."""

import pytest
from fastapi.testclient import TestClient

from emporio.middleware import RATE_LIMIT_MESSAGE, RateLimiter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestRateLimiter:
    def test_blocks_after_limit(self):
        limiter = RateLimiter(2, 60, clock=FakeClock())

        assert limiter.hit("a")[:2] == (True, 1)
        assert limiter.hit("a")[:2] == (True, 0)
        allowed, remaining, reset = limiter.hit("a")

        assert allowed is False
        assert remaining == 0
        assert reset == 60

    def test_keys_are_independent(self):
        limiter = RateLimiter(1, 60, clock=FakeClock())

        assert limiter.hit("a")[0] is True
        assert limiter.hit("b")[0] is True
        assert limiter.hit("a")[0] is False

    def test_window_slides(self):
        clock = FakeClock()
        limiter = RateLimiter(1, 60, clock=clock)
        limiter.hit("a")

        clock.now += 30
        assert limiter.hit("a")[0] is False
        clock.now += 31
        assert limiter.hit("a")[0] is True

    def test_reset(self):
        limiter = RateLimiter(1, 60, clock=FakeClock())
        limiter.hit("a")

        limiter.reset()

        assert limiter.hit("a")[0] is True


class TestSecurityHeaders:
    @pytest.mark.parametrize("path", ["/health", "/api/orders"])
    def test_headers_on_every_response(self, client, path):
        response = client.get(path)

        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "SAMEORIGIN"
        assert response.headers["referrer-policy"] == "no-referrer"
        assert "content-security-policy" not in response.headers


class TestRateLimitMiddleware:
    @pytest.fixture
    def limited_client(self, settings):
        from emporio.main import create_app

        settings.RATE_LIMIT_MAX = 2
        with TestClient(create_app(settings)) as c:
            yield c

    def test_api_requests_are_limited(self, limited_client):
        first = limited_client.get("/api/orders")
        assert first.status_code == 200
        assert first.headers["ratelimit-limit"] == "2"
        assert first.headers["ratelimit-remaining"] == "1"
        assert limited_client.get("/api/orders").status_code == 200

        blocked = limited_client.get("/api/stats")

        assert blocked.status_code == 429
        assert blocked.json() == {"error": RATE_LIMIT_MESSAGE}
        assert int(blocked.headers["retry-after"]) > 0
        assert blocked.headers["x-content-type-options"] == "nosniff"

    def test_health_is_not_limited(self, limited_client):
        for _ in range(5):
            assert limited_client.get("/health").status_code == 200
