"""
Tests for the rate limiter and its middleware.

The limiter takes an injectable clock, so windows are advanced by hand
instead of sleeping.
"""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from tracker_sms.rate_limit import RateLimiter, RateLimitMiddleware


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestRateLimiter:
    """Unit tests for RateLimiter."""

    def test_allows_up_to_max(self):
        limiter = RateLimiter(max_requests=3, window_seconds=60, clock=FakeClock())

        results = [limiter.hit("10.0.0.1")[0] for _ in range(4)]

        assert results == [True, True, True, False]

    def test_retry_after_counts_down(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.hit("10.0.0.1")

        clock.advance(15)
        allowed, retry_after = limiter.hit("10.0.0.1")

        assert allowed is False
        assert retry_after == 45

    def test_window_resets(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.hit("10.0.0.1")
        assert limiter.hit("10.0.0.1")[0] is False

        clock.advance(60)

        assert limiter.hit("10.0.0.1") == (True, None)

    def test_keys_are_independent(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        limiter.hit("10.0.0.1")

        assert limiter.hit("10.0.0.2")[0] is True
        assert limiter.hit("10.0.0.1")[0] is False

    def test_sweep_drops_expired_entries(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
        limiter.hit("a")
        limiter.hit("b")
        clock.advance(30)
        limiter.hit("c")

        clock.advance(31)
        removed = limiter.sweep()

        assert removed == 2
        assert len(limiter) == 1

    def test_periodic_sweep_on_hit(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
        for key in ["a", "b", "c"]:
            limiter.hit(key)

        clock.advance(61)
        limiter.hit("d")

        assert len(limiter) == 1

    def test_map_is_bounded(self):
        limiter = RateLimiter(max_requests=5, window_seconds=60, max_entries=3, clock=FakeClock())

        for i in range(10):
            limiter.hit(f"10.0.0.{i}")

        assert len(limiter) == 3

    def test_oldest_entry_evicted_first(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, max_entries=2, clock=FakeClock())
        limiter.hit("first")
        limiter.hit("second")

        limiter.hit("third")

        # "first" was evicted, so it starts a fresh window
        assert limiter.hit("first")[0] is True
        assert limiter.hit("third")[0] is False

    def test_reset(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        limiter.hit("10.0.0.1")

        limiter.reset()

        assert len(limiter) == 0
        assert limiter.hit("10.0.0.1")[0] is True


def make_app(limiter: RateLimiter) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=limiter, exempt_prefixes=("/health",))

    @app.get("/api/ping")
    async def ping():
        return {"pong": True}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


class TestRateLimitMiddleware:
    """Test the 429 response."""

    def test_over_limit_returns_429(self):
        client = TestClient(make_app(RateLimiter(max_requests=2, window_seconds=60, clock=FakeClock())))

        assert client.get("/api/ping").status_code == 200
        assert client.get("/api/ping").status_code == 200
        response = client.get("/api/ping")

        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "error": "Too many requests",
            "message": "Rate limit exceeded. Please try again later.",
        }
        assert response.headers["retry-after"] == "60"

    def test_exempt_paths_not_counted(self):
        client = TestClient(make_app(RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())))

        for _ in range(5):
            assert client.get("/health").status_code == 200
        assert client.get("/api/ping").status_code == 200
