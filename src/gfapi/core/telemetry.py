"""
Structured telemetry for the request pipeline.
[CTX:PBI-1:1-6:TELEM]

This module records what happened to each request:
- Rate limiter decisions (allowed immediately or throttled)
- Call outcomes (value, no more data, API failure, transport failure)
- Time spent waiting and on the wire
"""
import json
import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class TelemetryLevel(Enum):
    """Telemetry verbosity levels."""
    INFO = "info"
    DEBUG = "debug"


class TelemetryDecision(Enum):
    """Rate limiter decision types."""
    ALLOW = "allow"        # Slot was free
    THROTTLE = "throttle"  # Caller waited for its slot


class TelemetryOutcome(Enum):
    """How a call finished."""
    SUCCESS = "success"                  # Payload returned
    EMPTY = "empty"                      # Successful, no more data
    SKIPPED = "skipped"                  # Cursor already exhausted, no request sent
    FAIL = "fail"                        # ApiError raised
    TRANSPORT_ERROR = "transport_error"  # TransportError raised
    ERROR = "error"                      # Any other exception


@dataclass
class TelemetryEvent:
    """
    A single telemetry event.

    Attributes:
        timestamp: ISO 8601 timestamp of event
        url: Request URL (or limiter label)
        method: HTTP method, empty for limiter events
        decision: Rate limiter decision, if this is a limiter event
        outcome: Call outcome, if this is a call event
        status: Status code reported for the call
        sleep_s: Time slept waiting for the rate limiter
        elapsed_ms: Request duration in milliseconds
    """
    timestamp: str
    url: str
    method: str = ""
    decision: Optional[str] = None
    outcome: Optional[str] = None
    status: Optional[int] = None
    sleep_s: float = 0.0
    elapsed_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for logging."""
        return {k: v for k, v in asdict(self).items() if v is not None or k == "status"}

    def to_json(self) -> str:
        """Convert event to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def to_keyvalue(self) -> str:
        """Convert event to key=value format."""
        return " ".join(f"{key}={value}" for key, value in self.to_dict().items())


@dataclass
class TelemetryStats:
    """
    Aggregated statistics for telemetry analysis.

    Useful for tests and runtime monitoring.
    """
    total_events: int = 0
    total_sleeps: int = 0
    total_sleep_time: float = 0.0
    total_elapsed_time: float = 0.0
    decisions_by_type: Dict[str, int] = field(default_factory=dict)
    outcomes_by_type: Dict[str, int] = field(default_factory=dict)
    status_codes: Dict[int, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        calls = sum(self.outcomes_by_type.values())
        avg_latency = self.total_elapsed_time / calls if calls > 0 else 0.0

        return {
            "total_events": self.total_events,
            "total_sleeps": self.total_sleeps,
            "total_sleep_time": self.total_sleep_time,
            "avg_latency_ms": round(avg_latency, 2),
            "decisions_by_type": self.decisions_by_type,
            "outcomes_by_type": self.outcomes_by_type,
            "status_codes": self.status_codes,
        }


class TelemetryRecorder:
    """
    Records and emits structured telemetry events.

    Features:
    - Structured logging in JSON or key=value format
    - Configurable verbosity (info/debug)
    - Optional in-memory statistics collection
    - Thread-safe operation
    """

    def __init__(
        self,
        level: TelemetryLevel = TelemetryLevel.INFO,
        format_json: bool = True,
        collect_stats: bool = False,
        keep_events: bool = False,
    ):
        """
        Initialize telemetry recorder.

        Args:
            level: Logging verbosity level
            format_json: If True, log as JSON; otherwise use key=value
            collect_stats: If True, collect in-memory statistics
            keep_events: If True, keep every event for get_events()
        """
        self.level = level
        self.format_json = format_json
        self.collect_stats = collect_stats
        self.keep_events = keep_events

        self._stats = TelemetryStats()
        self._stats_lock = threading.Lock()

        self._events: List[TelemetryEvent] = []
        self._events_lock = threading.Lock()

    def _is_notable(self, event: TelemetryEvent) -> bool:
        return event.decision == TelemetryDecision.THROTTLE.value or event.outcome in (
            TelemetryOutcome.FAIL.value,
            TelemetryOutcome.TRANSPORT_ERROR.value,
            TelemetryOutcome.ERROR.value,
        )

    def record(self, event: TelemetryEvent) -> None:
        """
        Record a telemetry event.

        Args:
            event: Event to record
        """
        if self.format_json:
            log_message = f"[CTX:PBI-1:1-6:TELEM] {event.to_json()}"
        else:
            log_message = f"[CTX:PBI-1:1-6:TELEM] {event.to_keyvalue()}"

        # Throttles and failures at INFO, everything else at DEBUG
        if self.level == TelemetryLevel.INFO and self._is_notable(event):
            logger.info(log_message)
        else:
            logger.debug(log_message)

        if self.collect_stats:
            with self._stats_lock:
                self._stats.total_events += 1
                self._stats.total_elapsed_time += event.elapsed_ms

                if event.sleep_s > 0:
                    self._stats.total_sleeps += 1
                    self._stats.total_sleep_time += event.sleep_s

                if event.decision:
                    self._stats.decisions_by_type[event.decision] = (
                        self._stats.decisions_by_type.get(event.decision, 0) + 1
                    )
                if event.outcome:
                    self._stats.outcomes_by_type[event.outcome] = (
                        self._stats.outcomes_by_type.get(event.outcome, 0) + 1
                    )
                if event.status:
                    self._stats.status_codes[event.status] = (
                        self._stats.status_codes.get(event.status, 0) + 1
                    )

        if self.keep_events:
            with self._events_lock:
                self._events.append(event)

    def get_stats(self) -> TelemetryStats:
        """Get current statistics snapshot."""
        with self._stats_lock:
            return TelemetryStats(
                total_events=self._stats.total_events,
                total_sleeps=self._stats.total_sleeps,
                total_sleep_time=self._stats.total_sleep_time,
                total_elapsed_time=self._stats.total_elapsed_time,
                decisions_by_type=self._stats.decisions_by_type.copy(),
                outcomes_by_type=self._stats.outcomes_by_type.copy(),
                status_codes=self._stats.status_codes.copy(),
            )

    def reset_stats(self) -> None:
        """Reset statistics."""
        with self._stats_lock:
            self._stats = TelemetryStats()

    def get_events(self) -> List[TelemetryEvent]:
        """Get all recorded events (for testing)."""
        with self._events_lock:
            return self._events.copy()

    def clear_events(self) -> None:
        """Clear event history."""
        with self._events_lock:
            self._events.clear()


_global_recorder: Optional[TelemetryRecorder] = None
_recorder_lock = threading.Lock()


def get_recorder() -> TelemetryRecorder:
    """
    Get the global telemetry recorder instance.

    Creates a default recorder if none exists.
    """
    global _global_recorder

    if _global_recorder is None:
        with _recorder_lock:
            if _global_recorder is None:
                _global_recorder = TelemetryRecorder()

    return _global_recorder


def set_recorder(recorder: Optional[TelemetryRecorder]) -> None:
    """
    Set the global telemetry recorder instance.

    Args:
        recorder: Recorder instance to use globally, None to restore the default
    """
    global _global_recorder

    with _recorder_lock:
        _global_recorder = recorder


def create_event(
    url: str,
    method: str = "",
    decision: Optional[TelemetryDecision] = None,
    outcome: Optional[TelemetryOutcome] = None,
    status: Optional[int] = None,
    sleep_s: float = 0.0,
    elapsed_ms: float = 0.0,
) -> TelemetryEvent:
    """
    Helper to create a telemetry event with current timestamp.

    Args:
        url: Request URL or limiter label
        method: HTTP method
        decision: Rate limiter decision
        outcome: Call outcome
        status: Status code
        sleep_s: Time slept due to rate limiting
        elapsed_ms: Request duration in milliseconds

    Returns:
        TelemetryEvent ready for recording
    """
    return TelemetryEvent(
        timestamp=datetime.now(timezone.utc).isoformat(),
        url=url,
        method=method,
        decision=decision.value if decision else None,
        outcome=outcome.value if outcome else None,
        status=status,
        sleep_s=sleep_s,
        elapsed_ms=elapsed_ms,
    )
