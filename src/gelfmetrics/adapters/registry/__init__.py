"""Registry adapters implementing MetricRegistryPort."""

from gelfmetrics.adapters.registry.in_memory import (
    Counter,
    Gauge,
    Histogram,
    InMemoryMetricRegistry,
    Meter,
    Timer,
)

__all__ = [
    "Counter",
    "Gauge",
    "Histogram",
    "InMemoryMetricRegistry",
    "Meter",
    "Timer",
]
