"""
Shared pytest fixtures: a scripted in-memory transport, fast clocks and a
telemetry recorder that keeps events.
"""
import base64
from collections import deque
from typing import Any, Dict, List, Optional

import pytest

from gfapi.core.config import ClientConfig
from gfapi.core.errors import TransportError
from gfapi.core.rate_limiter import FakeTimeProvider, RateLimiter
from gfapi.core.telemetry import TelemetryRecorder, set_recorder
from gfapi.core.transport import RawResponse

TEST_SECRET = base64.b32encode(b"12345678901234567890").decode()
TEST_KEY = "test-0123456789abcde"
TEST_BASE_URL = "https://test-gameflip.fingershock.com/api/v1"


class FakeTransport:
    """Transport that replays queued responses and records each call."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses: deque = deque(responses or [])
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def enqueue(self, data: Any, status_code: int = 200, status_message: str = "OK") -> None:
        self.responses.append(RawResponse(data, status_code, status_message))

    async def send(self, method, url, headers, body=None) -> RawResponse:
        self.calls.append({"method": method, "url": url, "headers": dict(headers), "body": body})
        if not self.responses:
            raise AssertionError(f"Unexpected request {method} {url}")
        response = self.responses.popleft()
        if isinstance(response, Exception):
            raise TransportError(method, url, response)
        return response

    async def close(self) -> None:
        self.closed = True

    @property
    def urls(self) -> List[str]:
        return [call["url"] for call in self.calls]


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def fake_time():
    return FakeTimeProvider(initial_time=1000.0)


@pytest.fixture
def fast_limiter(fake_time):
    """1s limiter on fake time, so tests never really sleep."""
    return RateLimiter(interval=1.0, time_provider=fake_time)


@pytest.fixture
def client_config():
    return ClientConfig()


@pytest.fixture
def recorder():
    recorder = TelemetryRecorder(collect_stats=True, keep_events=True)
    set_recorder(recorder)
    yield recorder
    set_recorder(None)
