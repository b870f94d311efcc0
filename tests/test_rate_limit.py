"""Tests for the in-memory rate limiter."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait

import pytest

from portfolio_contact.contact.rate_limit import RateLimiter


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_sixth_call_in_window_is_rejected_then_window_resets() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_requests=5, window_seconds=3600, clock=clock)

    assert [limiter.admit("1.2.3.4") for _ in range(5)] == [True] * 5
    assert limiter.admit("1.2.3.4") is False

    clock.advance(3599)
    assert limiter.admit("1.2.3.4") is False

    clock.advance(1)
    assert limiter.admit("1.2.3.4") is True


def test_identities_are_counted_separately() -> None:
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())

    assert limiter.admit("a") is True
    assert limiter.admit("b") is True
    assert limiter.admit("a") is False


def test_check_reports_remaining_budget_and_reset() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_requests=2, window_seconds=100, clock=clock)

    first = limiter.check("client")
    clock.advance(30)
    second = limiter.check("client")
    third = limiter.check("client")

    assert (first.allowed, first.remaining, first.reset_after) == (True, 1, 100)
    assert (second.allowed, second.remaining, second.reset_after) == (True, 0, 70)
    assert (third.allowed, third.remaining) == (False, 0)
    assert third.limit == 2


def test_counts_do_not_carry_over_into_new_window() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_requests=2, window_seconds=10, clock=clock)
    limiter.admit("client")
    limiter.admit("client")
    limiter.admit("client")

    clock.advance(10)
    decision = limiter.check("client")

    assert decision.allowed is True
    assert decision.remaining == 1


def test_cleanup_expired_evicts_stale_windows() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_requests=3, window_seconds=10, clock=clock)
    limiter.admit("old")
    clock.advance(5)
    limiter.admit("new")
    clock.advance(6)

    assert limiter.cleanup_expired() == 1
    assert limiter.size() == 1


def test_reset_clears_state() -> None:
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
    limiter.admit("a")
    limiter.admit("b")

    limiter.reset("a")
    assert limiter.admit("a") is True
    assert limiter.admit("b") is False

    limiter.reset()
    assert limiter.size() == 0


def test_concurrent_admissions_never_exceed_limit() -> None:
    limiter = RateLimiter(max_requests=5, window_seconds=3600)

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda _: limiter.admit("shared"), range(200)))

    assert results.count(True) == 5


def test_size_waits_for_in_flight_updates() -> None:
    limiter = RateLimiter(max_requests=5, window_seconds=3600)
    limiter.admit("a")

    with ThreadPoolExecutor(max_workers=1) as pool:
        with limiter._lock:  # pylint: disable=protected-access
            pending = pool.submit(limiter.size)
            done, _ = wait([pending], timeout=0.05)
            assert not done
        assert pending.result(timeout=1) == 1


def test_size_tracks_concurrent_identities() -> None:
    limiter = RateLimiter(max_requests=5, window_seconds=3600)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda i: limiter.admit(f"client-{i}"), range(50)))
        sizes = list(pool.map(lambda _: limiter.size(), range(20)))

    assert limiter.size() == 50
    assert all(0 <= size <= 50 for size in sizes)


@pytest.mark.parametrize(
    ("max_requests", "window_seconds"), [(0, 60), (5, 0), (5, -1)]
)
def test_invalid_parameters_are_rejected(max_requests: int, window_seconds: float) -> None:
    with pytest.raises(ValueError):
        RateLimiter(max_requests=max_requests, window_seconds=window_seconds)
