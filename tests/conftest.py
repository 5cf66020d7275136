"""Pytest configuration for holdings-tracker tests."""

import json
from collections.abc import Callable

import httpx
import pytest

from holdings_tracker.config import Settings
from holdings_tracker.net import NO_RETRY
from holdings_tracker.vault import SecretVault


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTimer:
    """Timer stand-in that only fires when told to."""

    def __init__(self, interval: float, function: Callable[[], None]) -> None:
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.function()


class TimerFactory:
    """Records every timer created so tests can fire them."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, function: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


def json_transport(handler: Callable[[httpx.Request], object]) -> httpx.MockTransport:
    """
    MockTransport whose handler returns a JSON-serializable body.

    A handler may also return an ``httpx.Response`` directly or raise.
    """

    def respond(request: httpx.Request) -> httpx.Response:
        result = handler(request)
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=result)

    return httpx.MockTransport(respond)


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers():
    return TimerFactory()


@pytest.fixture
def settings():
    return Settings(explorer_api_key="test-key", kdf_iterations=1_000)


@pytest.fixture
def vault():
    """Vault with a low iteration count to keep tests fast."""
    return SecretVault(iterations=1_000)


@pytest.fixture
def no_retry():
    return NO_RETRY
