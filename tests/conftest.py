"""Shared test fixtures for all test modules."""

from collections.abc import Callable, Generator
from typing import Any

import pytest

from gelfmetrics.adapters.registry.in_memory import InMemoryMetricRegistry
from gelfmetrics.adapters.scheduler import PeriodicScheduler
from gelfmetrics.core.config import ReporterConfig
from gelfmetrics.core.models import GelfMessageLevel, TimeUnit
from gelfmetrics.core.reporter import GelfReporter
from tests.fakes import ManualClock, RecordingTransport

FIXED_TIME = 1702300000.75


@pytest.fixture
def transport() -> RecordingTransport:
    """Provide a transport that records every message."""
    return RecordingTransport()


@pytest.fixture
def registry() -> InMemoryMetricRegistry:
    """Provide an empty in-memory registry."""
    return InMemoryMetricRegistry()


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def make_reporter(
    registry: InMemoryMetricRegistry, transport: RecordingTransport
) -> Callable[..., GelfReporter]:
    """Factory fixture building a reporter over the shared registry and transport.

    Defaults mirror a typical deployment: prefix "prefix", DEBUG level,
    source "source" and one static field test=foobar. Keyword arguments
    override any ReporterConfig field, and ``scheduler_factory`` replaces
    the PeriodicScheduler used by start().
    """

    def _make(**overrides: Any) -> GelfReporter:
        settings: dict[str, Any] = {
            "registry": registry,
            "transport": transport,
            "clock": lambda: FIXED_TIME,
            "prefix": "prefix",
            "rate_unit": TimeUnit.SECONDS,
            "duration_unit": TimeUnit.MILLISECONDS,
            "level": GelfMessageLevel.DEBUG,
            "source": "source",
            "additional_fields": {"test": "foobar"},
        }
        scheduler_factory = overrides.pop("scheduler_factory", PeriodicScheduler)
        settings.update(overrides)
        return GelfReporter(
            ReporterConfig(**settings), scheduler_factory=scheduler_factory
        )

    return _make


@pytest.fixture
def reporter(make_reporter: Callable[..., GelfReporter]) -> Generator[GelfReporter]:
    """Reporter with the default test settings, stopped after the test."""
    reporter = make_reporter()
    yield reporter
    reporter.stop()
