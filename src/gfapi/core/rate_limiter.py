"""
Fixed-interval FIFO rate limiter.
[CTX:PBI-1:1-3:RL]

This module implements the limiter shared by every request of one client:
- At most one request start per interval, measured from the previous grant
- Grant slots assigned atomically in call order (strict FIFO)
- Callers only ever wait; there is no failure or cancellation path
- Emits structured telemetry for every grant
"""
import asyncio
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .telemetry import TelemetryDecision, create_event, get_recorder

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 1000


class TimeProvider(ABC):
    """Source of time for the limiter, allows injection of fake time in tests."""

    @abstractmethod
    def now(self) -> float:
        """Return current time in seconds."""
        pass

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for the given number of seconds."""
        pass


class SystemTimeProvider(TimeProvider):
    """Real time provider using the monotonic clock."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class FakeTimeProvider(TimeProvider):
    """Fake time provider for deterministic tests; sleeping advances the clock."""

    def __init__(self, initial_time: float = 1000.0):
        self._current_time = initial_time
        self._lock = threading.Lock()
        self.sleep_history: list[float] = []

    def now(self) -> float:
        with self._lock:
            return self._current_time

    async def sleep(self, seconds: float) -> None:
        with self._lock:
            self.sleep_history.append(seconds)
            self._current_time += seconds
        # Let other tasks run, like a real sleep would
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        """Advance time by given seconds."""
        with self._lock:
            self._current_time += seconds

    def set(self, time: float) -> None:
        """Set absolute time."""
        with self._lock:
            self._current_time = time


@dataclass
class RateLimiterStats:
    """Statistics for rate limiter telemetry."""

    requests_total: int = 0
    requests_throttled: int = 0
    total_wait_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            "requests_total": self.requests_total,
            "requests_throttled": self.requests_throttled,
            "total_wait_time": self.total_wait_time,
        }


@dataclass
class RateLimitGuard:
    """
    Result of RateLimiter.acquire().

    Attributes:
        granted_at: Time (per the limiter's TimeProvider) the slot starts
        wait_time: Time the caller was suspended
        ticket: Sequence number of the grant, in call order
    """

    granted_at: float = 0.0
    wait_time: float = 0.0
    ticket: int = 0


class RateLimiter:
    """
    Serializes request starts to one per interval.

    Each acquire() reserves the next free slot under a lock before it
    suspends, so two callers can never be handed the same slot and slots
    are handed out in the order acquire() was called. Waiting for the slot
    happens outside the lock.
    """

    def __init__(
        self,
        interval: float = DEFAULT_INTERVAL_MS / 1000.0,
        time_provider: Optional[TimeProvider] = None,
        name: str = "gfapi",
    ):
        """
        Initialize rate limiter.

        Args:
            interval: Minimum seconds between grants
            time_provider: Optional time provider (defaults to system time)
            name: Label used in log lines and telemetry
        """
        if interval < 0:
            raise ValueError(f"interval must not be negative, got {interval}")

        self.interval = interval
        self.time_provider = time_provider or SystemTimeProvider()
        self.name = name

        self._next_slot: Optional[float] = None
        self._tickets = 0
        self._lock = threading.Lock()

        self._stats = RateLimiterStats()
        self._stats_lock = threading.Lock()

    @classmethod
    def from_milliseconds(
        cls,
        interval_ms: float,
        time_provider: Optional[TimeProvider] = None,
        name: str = "gfapi",
    ) -> "RateLimiter":
        return cls(interval_ms / 1000.0, time_provider=time_provider, name=name)

    def _reserve(self) -> tuple[float, float, int]:
        """Claim the next slot. Returns (slot, now, ticket)."""
        with self._lock:
            now = self.time_provider.now()
            slot = now if self._next_slot is None else max(now, self._next_slot)
            self._next_slot = slot + self.interval
            self._tickets += 1
            return slot, now, self._tickets

    async def acquire(self, label: str = "") -> RateLimitGuard:
        """
        Wait until this caller's slot begins.

        Args:
            label: Request description for telemetry (e.g. the URL)

        Returns:
            RateLimitGuard describing the grant
        """
        slot, now, ticket = self._reserve()
        wait_time = max(0.0, slot - now)

        if wait_time > 0:
            logger.debug(
                f"[CTX:PBI-1:1-3:RL] {self.name} ticket {ticket} "
                f"waiting {wait_time:.3f}s"
            )
            await self.time_provider.sleep(wait_time)

        with self._stats_lock:
            self._stats.requests_total += 1
            if wait_time > 0:
                self._stats.requests_throttled += 1
                self._stats.total_wait_time += wait_time

        decision = TelemetryDecision.THROTTLE if wait_time > 0 else TelemetryDecision.ALLOW
        get_recorder().record(
            create_event(
                url=label,
                decision=decision,
                sleep_s=wait_time,
            )
        )

        return RateLimitGuard(granted_at=slot, wait_time=wait_time, ticket=ticket)

    def get_stats(self) -> RateLimiterStats:
        """Get current statistics."""
        with self._stats_lock:
            return RateLimiterStats(
                requests_total=self._stats.requests_total,
                requests_throttled=self._stats.requests_throttled,
                total_wait_time=self._stats.total_wait_time,
            )

    def reset_stats(self) -> None:
        """Reset statistics."""
        with self._stats_lock:
            self._stats = RateLimiterStats()
