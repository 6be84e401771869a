"""Shared fixtures for the riskscope test suite."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest

from riskscope.infrastructure.event_bus import AsyncEventBus, EventStore
from riskscope.services.cache import ResultCache
from riskscope.services.circuit_breaker import CircuitBreaker
from riskscope.services.orchestrator import AnalysisOrchestrator
from riskscope.services.retry import RetryExecutor
from riskscope.testing import ScriptedProvider

FIXED_NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records delays and returns at once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ---------------------------------------------------------------------------
# Primitive fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def retry_executor(recording_sleep: RecordingSleep) -> RetryExecutor:
    """Default 3-attempt executor that never really sleeps."""
    return RetryExecutor(sleep=recording_sleep)


@pytest.fixture
def breaker(fake_clock: FakeClock) -> CircuitBreaker:
    return CircuitBreaker(clock=fake_clock)


@pytest.fixture
def event_store() -> EventStore:
    return EventStore()


@pytest.fixture
def bus(event_store: EventStore) -> AsyncEventBus:
    bus = AsyncEventBus()
    bus.subscribe_all(event_store.append)
    return bus


# ---------------------------------------------------------------------------
# Orchestrator factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_orchestrator(
    retry_executor: RetryExecutor,
    breaker: CircuitBreaker,
    bus: AsyncEventBus,
    fixed_now: datetime,
) -> Callable[..., AnalysisOrchestrator]:
    """Build an orchestrator around a provider with test-friendly defaults."""

    def _make(provider: ScriptedProvider, **kwargs: Any) -> AnalysisOrchestrator:
        kwargs.setdefault("cache", ResultCache())
        kwargs.setdefault("breaker", breaker)
        kwargs.setdefault("retry", retry_executor)
        kwargs.setdefault("bus", bus)
        kwargs.setdefault("clock", lambda: fixed_now)
        return AnalysisOrchestrator(provider, **kwargs)

    return _make
