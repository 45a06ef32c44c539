"""Pytest configuration shared across the suite."""

import pytest


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
