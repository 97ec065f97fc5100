"""Tests for RateLimiter."""

from __future__ import annotations

import pytest

from reset_tracker.services.pnw.rate_limiter import RateLimiter


class Recorder:
    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleep() -> Recorder:
    return Recorder()


def make_limiter(sleep, now: float = 1_000.0) -> RateLimiter:
    return RateLimiter(buffer=10, clock=lambda: now, sleep=sleep)


class TestRateLimiter:
    """Tests for update / wait_if_needed / can_make_request."""

    def test_fresh_limiter_never_waits(self, sleep):
        limiter = make_limiter(sleep)
        assert limiter.can_make_request()
        assert limiter.wait_if_needed() == 0.0
        assert sleep.calls == []

    def test_waits_until_reset_when_budget_below_buffer(self, sleep):
        limiter = make_limiter(sleep, now=1_000.0)
        limiter.update(remaining=5, reset_at=1_030.0, limit=1000)

        waited = limiter.wait_if_needed()

        assert waited == pytest.approx(30.0)
        assert sleep.calls == [pytest.approx(30.0)]

    def test_buffer_is_inclusive(self, sleep):
        limiter = make_limiter(sleep)
        limiter.update(remaining=10, reset_at=1_005.0, limit=1000)
        assert not limiter.can_make_request()
        limiter.wait_if_needed()
        assert sleep.calls == [pytest.approx(5.0)]

    def test_unknown_reset_time_does_not_wait(self, sleep):
        limiter = make_limiter(sleep)
        limiter.update(remaining=0, reset_at=None, limit=1000)
        assert limiter.wait_if_needed() == 0.0
        assert sleep.calls == []

    def test_reset_in_the_past_does_not_sleep(self, sleep):
        limiter = make_limiter(sleep, now=1_000.0)
        limiter.update(remaining=1, reset_at=990.0, limit=1000)
        assert limiter.wait_if_needed() == 0.0
        assert sleep.calls == []

    def test_update_overwrites_instead_of_accumulating(self, sleep):
        limiter = make_limiter(sleep)
        limiter.update(remaining=3, reset_at=2_000.0, limit=500)
        limiter.update(remaining=400, reset_at=3_000.0, limit=1000)

        snap = limiter.snapshot()
        assert (snap.remaining, snap.reset_at, snap.limit) == (400, 3_000.0, 1000)
        assert limiter.can_make_request()
        assert limiter.wait_if_needed() == 0.0

    def test_snapshot_dict_has_iso_reset(self, sleep):
        limiter = make_limiter(sleep)
        limiter.update(remaining=42, reset_at=0.0, limit=1000)
        d = limiter.snapshot().to_dict()
        assert d["remaining"] == 42
        assert d["reset_at"].startswith("1970-01-01T00:00:00")
        assert d["limit"] == 1000
