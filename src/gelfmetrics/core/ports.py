"""Port interfaces for the reporter's collaborators.

These protocols define the contracts that registries, metrics, transports
and schedulers must satisfy. The reporter depends only on these
interfaces, not on concrete implementations.
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from gelfmetrics.core.models import GelfMessage, Snapshot

# Returns the current Unix time in seconds.
Clock = Callable[[], float]

# Decides whether the metric registered under a name is reported.
MetricFilter = Callable[[str, Any], bool]


def accept_all(name: str, metric: Any) -> bool:
    """MetricFilter that reports every metric."""
    return True


@runtime_checkable
class CounterPort(Protocol):
    """An incrementing and decrementing count."""

    @property
    def count(self) -> int: ...


@runtime_checkable
class GaugePort(Protocol):
    """An instantaneous reading of an arbitrary value."""

    @property
    def value(self) -> Any: ...


@runtime_checkable
class HistogramPort(Protocol):
    """A distribution of magnitudes."""

    @property
    def count(self) -> int: ...

    def snapshot(self) -> Snapshot: ...


@runtime_checkable
class MeterPort(Protocol):
    """A throughput measurement. Rates are events per second."""

    @property
    def count(self) -> int: ...

    @property
    def mean_rate(self) -> float: ...

    @property
    def one_minute_rate(self) -> float: ...

    @property
    def five_minute_rate(self) -> float: ...

    @property
    def fifteen_minute_rate(self) -> float: ...


@runtime_checkable
class TimerPort(MeterPort, Protocol):
    """A meter plus a distribution of durations in nanoseconds."""

    def snapshot(self) -> Snapshot: ...


@runtime_checkable
class MetricRegistryPort(Protocol):
    """Port for reading the registered metrics of each kind.

    Every method returns a mapping ordered ascending by metric name,
    containing only metrics accepted by ``metric_filter``.
    """

    def gauges(self, metric_filter: MetricFilter = accept_all) -> Mapping[str, GaugePort]:
        """Return the registered gauges."""
        ...

    def counters(
        self, metric_filter: MetricFilter = accept_all
    ) -> Mapping[str, CounterPort]:
        """Return the registered counters."""
        ...

    def histograms(
        self, metric_filter: MetricFilter = accept_all
    ) -> Mapping[str, HistogramPort]:
        """Return the registered histograms."""
        ...

    def meters(self, metric_filter: MetricFilter = accept_all) -> Mapping[str, MeterPort]:
        """Return the registered meters."""
        ...

    def timers(self, metric_filter: MetricFilter = accept_all) -> Mapping[str, TimerPort]:
        """Return the registered timers."""
        ...


@runtime_checkable
class GelfTransportPort(Protocol):
    """Port for a non-blocking, best-effort GELF sender."""

    def try_send(self, message: GelfMessage) -> bool:
        """Queue a message for delivery without blocking.

        Returns:
            True if the message was accepted, False if it was dropped.
        """
        ...

    def stop(self) -> None:
        """Stop sending and release sockets, queues and threads."""
        ...


@runtime_checkable
class SchedulerPort(Protocol):
    """Port for something that calls a callback periodically."""

    def start(self) -> None: ...

    def stop(self) -> None:
        """Stop calling the callback. Safe to call more than once."""
        ...


# Builds a scheduler calling ``callback`` every ``period`` seconds.
SchedulerFactory = Callable[[Callable[[], object], float], SchedulerPort]
