# tests/test_ratelimit.py
"""
Tests for the fixed-window RateLimiter.
"""

import pytest

from bosschat.ratelimit import RateLimiter

from .fakes import FakeClock


class TestRateLimiter:

    def test_admits_up_to_cap_then_rejects(self, clock):
        limiter = RateLimiter(max_requests=20, window_seconds=60, clock=clock)

        results = [limiter.admit("10.0.0.1") for _ in range(21)]

        assert results[:20] == [True] * 20
        assert results[20] is False

    def test_rejected_requests_still_count(self, clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)

        assert limiter.admit("a")
        assert not limiter.admit("a")
        assert not limiter.admit("a")
        assert limiter._entries["a"].count == 3

    def test_window_rollover_starts_new_count(self, clock):
        limiter = RateLimiter(max_requests=2, window_seconds=60, clock=clock)
        for _ in range(3):
            limiter.admit("a")

        clock.advance(60)

        assert limiter.admit("a") is True
        assert limiter._entries["a"].count == 1

    def test_request_just_before_reset_is_still_limited(self, clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.admit("a")

        clock.advance(59.9)

        assert limiter.admit("a") is False

    def test_clients_are_counted_independently(self, clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)

        assert limiter.admit("a")
        assert limiter.admit("b")
        assert not limiter.admit("a")

    def test_prune_removes_only_finished_windows(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=10, clock=clock)
        limiter.admit("old")
        clock.advance(5)
        limiter.admit("new")
        clock.advance(5)

        assert limiter.prune() == 1
        assert len(limiter) == 1

    @pytest.mark.parametrize("max_requests,window", [(0, 60), (5, 0)])
    def test_invalid_parameters_rejected(self, max_requests, window):
        with pytest.raises(ValueError):
            RateLimiter(max_requests=max_requests, window_seconds=window)
