"""
Pytest configuration for readroute tests.

Async tests are marked explicitly with ``@pytest.mark.asyncio``.
"""

import tempfile
from typing import Generator

import pytest

from readroute.health import (
    CircuitBreaker,
    CircuitBreakerConfig,
    ReplicaHealthStore,
)
from readroute.logging import LoggingConfig
from readroute.store import MemoryStableStore

from tests.unit.mocks import FakeExecutor, ManualClock, RecordingNotifier


@pytest.fixture(autouse=True)
def quiet_logging():
    config = LoggingConfig()
    config.update(log_level="critical")
    yield
    config.update(log_level="info")


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store(clock: ManualClock) -> MemoryStableStore:
    return MemoryStableStore(clock=clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def breaker_config() -> CircuitBreakerConfig:
    return CircuitBreakerConfig(
        failure_threshold=5,
        recovery_timeout=30.0,
        timeout_threshold=10.0,
        failure_window=60.0,
        call_timeout=5.0,
    )


@pytest.fixture
def breaker(
    store: MemoryStableStore,
    clock: ManualClock,
    notifier: RecordingNotifier,
    breaker_config: CircuitBreakerConfig,
) -> CircuitBreaker:
    return CircuitBreaker(store, clock, notifier, config=breaker_config)


@pytest.fixture
def health_store(store: MemoryStableStore, clock: ManualClock) -> ReplicaHealthStore:
    return ReplicaHealthStore(store, clock)


@pytest.fixture
def temp_log_directory() -> Generator[str, None, None]:
    with tempfile.TemporaryDirectory() as temp_directory:
        yield temp_directory
