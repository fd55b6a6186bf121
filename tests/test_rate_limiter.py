"""Tests for the sliding-window rate limiter."""

from chat_relay.services.rate_limiter import SlidingWindowRateLimiter
from tests.conftest import FakeClock


def test_allows_up_to_limit_then_denies():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=3, window_seconds=60, clock=clock)

    results = [limiter.check("1.2.3.4") for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]


def test_clients_are_counted_separately():
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())

    assert limiter.check("a").allowed
    assert not limiter.check("a").allowed
    assert limiter.check("b").allowed


def test_window_slides():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    limiter.check("a")
    clock.advance(30)
    limiter.check("a")
    assert not limiter.check("a").allowed

    # The first hit leaves the window, the second is still counted.
    clock.advance(31)
    assert limiter.check("a").allowed
    assert not limiter.check("a").allowed


def test_denied_requests_are_not_recorded():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    limiter.check("a")
    for _ in range(10):
        clock.advance(5)
        limiter.check("a")

    clock.advance(11)  # 61s after the only admitted request
    assert limiter.check("a").allowed


def test_headers_report_reset_and_retry_after():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    ok = limiter.check("a")
    assert "Retry-After" not in ok.headers()

    clock.advance(20)
    denied = limiter.check("a")
    headers = denied.headers()
    assert headers["RateLimit-Limit"] == "1"
    assert headers["RateLimit-Remaining"] == "0"
    assert headers["RateLimit-Reset"] == "40"
    assert headers["Retry-After"] == "40"


def test_reset_clears_all_clients():
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())
    limiter.check("a")
    limiter.reset()
    assert limiter.check("a").allowed
