"""gelfmetrics - report in-process metrics to Graylog as GELF messages.

Example:
    ```python
    from gelfmetrics import InMemoryMetricRegistry, TimeUnit, for_registry

    registry = InMemoryMetricRegistry()
    reporter = (
        for_registry(registry)
        .host("graylog.example.com", 12201)
        .prefixed_with("web-01")
        .build()
    )
    reporter.start(10, TimeUnit.SECONDS)
    ```
"""

import logging

from gelfmetrics.adapters.logging import GelfLogHandler
from gelfmetrics.adapters.registry.in_memory import InMemoryMetricRegistry
from gelfmetrics.adapters.scheduler import PeriodicScheduler
from gelfmetrics.adapters.transport import GelfTransport, GelfTransports
from gelfmetrics.core.config import ReporterConfig, TransportConfig
from gelfmetrics.core.errors import InvalidConfiguration
from gelfmetrics.core.models import (
    GelfMessage,
    GelfMessageLevel,
    MetricKind,
    Snapshot,
    TimeUnit,
)
from gelfmetrics.core.reporter import GelfReporter
from gelfmetrics.runtime import GelfReporterBuilder, for_registry

logging.getLogger(__name__).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Return a stdlib logger, for symmetry with the library's own modules."""
    return logging.getLogger(name)


__all__ = [
    "GelfLogHandler",
    "GelfMessage",
    "GelfMessageLevel",
    "GelfReporter",
    "GelfReporterBuilder",
    "GelfTransport",
    "GelfTransports",
    "InMemoryMetricRegistry",
    "InvalidConfiguration",
    "MetricKind",
    "PeriodicScheduler",
    "ReporterConfig",
    "Snapshot",
    "TimeUnit",
    "TransportConfig",
    "for_registry",
    "get_logger",
]
