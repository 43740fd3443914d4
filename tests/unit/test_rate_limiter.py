"""
Unit tests for rate limiter.

Tests cover slot spacing, FIFO ordering under concurrency, statistics and
telemetry with deterministic time, plus one real-clock check.
"""
# [CTX:PBI-1:1-3:RL]

import asyncio
import time

import pytest

from gfapi.core.rate_limiter import FakeTimeProvider, RateLimiter
from gfapi.core.telemetry import TelemetryRecorder, set_recorder


@pytest.fixture
def fake_time():
    """Fixture providing fake time provider."""
    return FakeTimeProvider(initial_time=1000.0)


@pytest.fixture
def rate_limiter(fake_time):
    """Fixture providing a 1s rate limiter with fake time."""
    return RateLimiter(interval=1.0, time_provider=fake_time)


@pytest.fixture
def recorder():
    recorder = TelemetryRecorder(collect_stats=True, keep_events=True)
    set_recorder(recorder)
    yield recorder
    set_recorder(None)


class TestSpacing:
    """Test the minimum interval between grants."""

    @pytest.mark.asyncio
    async def test_first_request_not_delayed(self, rate_limiter, fake_time):
        guard = await rate_limiter.acquire()

        assert guard.wait_time == 0.0
        assert guard.granted_at == 1000.0
        assert fake_time.sleep_history == []

    @pytest.mark.asyncio
    async def test_back_to_back_requests_wait_one_interval(self, rate_limiter, fake_time):
        await rate_limiter.acquire()
        guard = await rate_limiter.acquire()

        assert guard.wait_time == pytest.approx(1.0)
        assert guard.granted_at == pytest.approx(1001.0)
        assert fake_time.sleep_history == [pytest.approx(1.0)]

    @pytest.mark.asyncio
    async def test_interval_measured_from_previous_start(self, rate_limiter, fake_time):
        await rate_limiter.acquire()
        fake_time.advance(0.4)

        guard = await rate_limiter.acquire()

        assert guard.wait_time == pytest.approx(0.6)
        assert guard.granted_at == pytest.approx(1001.0)

    @pytest.mark.asyncio
    async def test_idle_period_resets_wait(self, rate_limiter, fake_time):
        await rate_limiter.acquire()
        fake_time.advance(5.0)

        guard = await rate_limiter.acquire()

        assert guard.wait_time == 0.0
        assert guard.granted_at == pytest.approx(1005.0)

    @pytest.mark.asyncio
    async def test_zero_interval_never_waits(self, fake_time):
        limiter = RateLimiter(interval=0.0, time_provider=fake_time)

        for _ in range(5):
            guard = await limiter.acquire()
            assert guard.wait_time == 0.0

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            RateLimiter(interval=-1.0)

    def test_from_milliseconds(self):
        assert RateLimiter.from_milliseconds(250).interval == pytest.approx(0.25)


class TestConcurrency:
    """Test FIFO grants for concurrent callers."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_granted_in_call_order(self, rate_limiter):
        guards = await asyncio.gather(*(rate_limiter.acquire() for _ in range(5)))

        tickets = [g.ticket for g in guards]
        grants = [g.granted_at for g in guards]

        assert tickets == [1, 2, 3, 4, 5]
        assert grants == sorted(grants)
        for earlier, later in zip(grants, grants[1:]):
            assert later - earlier >= 1.0 - 1e-9

    @pytest.mark.asyncio
    async def test_nth_caller_waits_at_most_n_intervals(self, rate_limiter):
        guards = await asyncio.gather(*(rate_limiter.acquire() for _ in range(4)))

        for n, guard in enumerate(guards):
            assert guard.granted_at - 1000.0 <= n * 1.0 + 1e-9

    @pytest.mark.asyncio
    async def test_no_two_callers_share_a_slot(self, rate_limiter):
        guards = await asyncio.gather(*(rate_limiter.acquire() for _ in range(10)))

        assert len({g.granted_at for g in guards}) == 10

    @pytest.mark.asyncio
    async def test_real_clock_spacing_and_order(self):
        limiter = RateLimiter(interval=0.05)
        starts: list[tuple[int, float]] = []

        async def worker(i: int) -> float:
            guard = await limiter.acquire()
            starts.append((i, time.monotonic()))
            return guard.granted_at

        grants = await asyncio.gather(*(worker(i) for i in range(4)))

        assert [i for i, _ in starts] == [0, 1, 2, 3]
        for earlier, later in zip(grants, grants[1:]):
            assert later - earlier == pytest.approx(0.05)
        first = starts[0][1]
        for n, (_, started) in enumerate(starts):
            assert started - first >= n * 0.05 - 0.01


class TestStatsAndTelemetry:
    """Test statistics tracking and telemetry events."""

    @pytest.mark.asyncio
    async def test_stats(self, rate_limiter):
        for _ in range(3):
            await rate_limiter.acquire()

        stats = rate_limiter.get_stats()
        assert stats.requests_total == 3
        assert stats.requests_throttled == 2
        assert stats.total_wait_time == pytest.approx(2.0)

        rate_limiter.reset_stats()
        assert rate_limiter.get_stats().requests_total == 0

    @pytest.mark.asyncio
    async def test_emits_allow_then_throttle(self, rate_limiter, recorder):
        await rate_limiter.acquire("https://example.test/a")
        await rate_limiter.acquire("https://example.test/b")

        events = recorder.get_events()
        assert [e.decision for e in events] == ["allow", "throttle"]
        assert events[0].url == "https://example.test/a"
        assert events[1].sleep_s == pytest.approx(1.0)
