"""In-memory metric registry and metric types.

Suitable for applications that want to report a handful of metrics
without pulling in a separate metrics library, and for tests. Histograms
keep a bounded window of the most recent samples; meters keep
exponentially-weighted one, five and fifteen minute rates.
"""

import math
import threading
import time
from collections import deque
from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from typing import Any, TypeVar

from gelfmetrics.core.models import Snapshot, TimeUnit
from gelfmetrics.core.ports import MetricFilter, accept_all

DEFAULT_WINDOW_SIZE = 1028
TICK_INTERVAL = 5.0

_M = TypeVar("_M")


def quantile(values: list[int | float], q: float) -> float:
    """Return the ``q`` quantile of sorted ``values`` by linear interpolation."""
    if not values:
        return 0.0
    pos = q * (len(values) + 1)
    index = int(pos)
    if index < 1:
        return float(values[0])
    if index >= len(values):
        return float(values[-1])
    lower, upper = values[index - 1], values[index]
    return lower + (pos - math.floor(pos)) * (upper - lower)


def snapshot_of(samples: Iterable[int | float]) -> Snapshot:
    """Compute a Snapshot over ``samples``.

    The standard deviation is the sample standard deviation; it is zero
    for fewer than two samples.
    """
    values = sorted(samples)
    size = len(values)
    if size == 0:
        return Snapshot()
    mean = sum(values) / size
    if size > 1:
        variance = sum((v - mean) ** 2 for v in values) / (size - 1)
    else:
        variance = 0.0
    return Snapshot(
        size=size,
        min=values[0],
        max=values[-1],
        mean=mean,
        stddev=math.sqrt(variance),
        median=quantile(values, 0.5),
        p75=quantile(values, 0.75),
        p95=quantile(values, 0.95),
        p98=quantile(values, 0.98),
        p99=quantile(values, 0.99),
        p999=quantile(values, 0.999),
    )


class Counter:
    """An integer that can be incremented and decremented."""

    def __init__(self) -> None:
        self._count = 0
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        return self._count

    def inc(self, n: int = 1) -> None:
        with self._lock:
            self._count += n

    def dec(self, n: int = 1) -> None:
        with self._lock:
            self._count -= n


class Gauge:
    """A value read on demand.

    With ``fn`` the gauge calls it on every read; otherwise it returns the
    last value passed to ``set()``, or None before the first ``set()``.
    """

    def __init__(self, fn: Callable[[], Any] | None = None) -> None:
        self._fn = fn
        self._value: Any = None

    @property
    def value(self) -> Any:
        if self._fn is not None:
            return self._fn()
        return self._value

    def set(self, value: Any) -> None:
        if self._fn is not None:
            raise TypeError("Cannot set a gauge backed by a callable")
        self._value = value


class Histogram:
    """Distribution of values over a window of the most recent samples."""

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE) -> None:
        self._samples: deque[int | float] = deque(maxlen=window_size)
        self._count = 0
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        """Number of values ever recorded, not only those in the window."""
        return self._count

    def update(self, value: int | float) -> None:
        with self._lock:
            self._samples.append(value)
            self._count += 1

    def snapshot(self) -> Snapshot:
        with self._lock:
            samples = list(self._samples)
        return snapshot_of(samples)


class _EWMA:
    """Exponentially-weighted moving average of a per-second rate."""

    def __init__(self, minutes: int) -> None:
        self._alpha = 1 - math.exp(-TICK_INTERVAL / 60 / minutes)
        self._uncounted = 0
        self._rate = 0.0
        self._initialized = False

    def update(self, n: int) -> None:
        self._uncounted += n

    def tick(self) -> None:
        instant_rate = self._uncounted / TICK_INTERVAL
        self._uncounted = 0
        if self._initialized:
            self._rate += self._alpha * (instant_rate - self._rate)
        else:
            self._rate = instant_rate
            self._initialized = True

    @property
    def rate(self) -> float:
        return self._rate


class Meter:
    """Counts events and tracks their rate in events per second."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._count = 0
        self._start = clock()
        self._last_tick = self._start
        self._m1 = _EWMA(1)
        self._m5 = _EWMA(5)
        self._m15 = _EWMA(15)
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        return self._count

    def mark(self, n: int = 1) -> None:
        with self._lock:
            self._tick_if_necessary()
            self._count += n
            for ewma in (self._m1, self._m5, self._m15):
                ewma.update(n)

    @property
    def mean_rate(self) -> float:
        if self._count == 0:
            return 0.0
        elapsed = self._clock() - self._start
        if elapsed <= 0:
            return 0.0
        return self._count / elapsed

    @property
    def one_minute_rate(self) -> float:
        return self._rate(self._m1)

    @property
    def five_minute_rate(self) -> float:
        return self._rate(self._m5)

    @property
    def fifteen_minute_rate(self) -> float:
        return self._rate(self._m15)

    def _rate(self, ewma: _EWMA) -> float:
        with self._lock:
            self._tick_if_necessary()
            return ewma.rate

    def _tick_if_necessary(self) -> None:
        age = self._clock() - self._last_tick
        if age < TICK_INTERVAL:
            return
        self._last_tick += age - age % TICK_INTERVAL
        for _ in range(int(age // TICK_INTERVAL)):
            for ewma in (self._m1, self._m5, self._m15):
                ewma.tick()


class Timer:
    """A meter of events plus a histogram of their durations in nanoseconds."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        window_size: int = DEFAULT_WINDOW_SIZE,
    ) -> None:
        self._meter = Meter(clock)
        self._histogram = Histogram(window_size)

    @property
    def count(self) -> int:
        return self._histogram.count

    @property
    def mean_rate(self) -> float:
        return self._meter.mean_rate

    @property
    def one_minute_rate(self) -> float:
        return self._meter.one_minute_rate

    @property
    def five_minute_rate(self) -> float:
        return self._meter.five_minute_rate

    @property
    def fifteen_minute_rate(self) -> float:
        return self._meter.fifteen_minute_rate

    def update(self, duration: float, unit: TimeUnit = TimeUnit.NANOSECONDS) -> None:
        """Record one event that took ``duration`` ``unit``s.

        Negative durations are ignored.
        """
        nanos = round(duration * unit.nanos)
        if nanos < 0:
            return
        self._histogram.update(nanos)
        self._meter.mark()

    @contextmanager
    def time(self) -> Generator[None]:
        """Context manager that records the duration of its block."""
        start = time.perf_counter_ns()
        try:
            yield
        finally:
            self.update(time.perf_counter_ns() - start)

    def snapshot(self) -> Snapshot:
        return self._histogram.snapshot()


class InMemoryMetricRegistry:
    """In-memory implementation of MetricRegistryPort.

    Metrics are created on first use and looked up by name afterwards.
    Asking for an existing name with a different metric type raises
    ValueError.

    Example:
        ```python
        registry = InMemoryMetricRegistry()
        registry.counter("jobs.processed").inc()
        with registry.timer(InMemoryMetricRegistry.name("db", "query")).time():
            run_query()
        ```
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._metrics: dict[str, Any] = {}
        self._lock = threading.Lock()

    @staticmethod
    def name(*parts: str | None) -> str:
        """Join the non-empty ``parts`` with dots."""
        return ".".join(part for part in parts if part)

    def register(self, name: str, metric: _M) -> _M:
        """Add ``metric`` under ``name``.

        Raises:
            ValueError: If a metric with that name already exists.
        """
        with self._lock:
            if name in self._metrics:
                raise ValueError(f"A metric named {name} already exists")
            self._metrics[name] = metric
        return metric

    def remove(self, name: str) -> bool:
        """Remove the metric named ``name``. Returns True if one existed."""
        with self._lock:
            return self._metrics.pop(name, None) is not None

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._metrics)

    def counter(self, name: str) -> Counter:
        return self._get_or_add(name, Counter, Counter)

    def gauge(self, name: str, fn: Callable[[], Any] | None = None) -> Gauge:
        """Return the gauge ``name``, creating it from ``fn`` if missing."""
        return self._get_or_add(name, Gauge, lambda: Gauge(fn))

    def histogram(self, name: str) -> Histogram:
        return self._get_or_add(name, Histogram, Histogram)

    def meter(self, name: str) -> Meter:
        return self._get_or_add(name, Meter, lambda: Meter(self._clock))

    def timer(self, name: str) -> Timer:
        return self._get_or_add(name, Timer, lambda: Timer(self._clock))

    def gauges(self, metric_filter: MetricFilter = accept_all) -> dict[str, Gauge]:
        return self._of_type(Gauge, metric_filter)

    def counters(self, metric_filter: MetricFilter = accept_all) -> dict[str, Counter]:
        return self._of_type(Counter, metric_filter)

    def histograms(
        self, metric_filter: MetricFilter = accept_all
    ) -> dict[str, Histogram]:
        return self._of_type(Histogram, metric_filter)

    def meters(self, metric_filter: MetricFilter = accept_all) -> dict[str, Meter]:
        return self._of_type(Meter, metric_filter)

    def timers(self, metric_filter: MetricFilter = accept_all) -> dict[str, Timer]:
        return self._of_type(Timer, metric_filter)

    def _get_or_add(self, name: str, kind: type[_M], factory: Callable[[], _M]) -> _M:
        with self._lock:
            existing = self._metrics.get(name)
            if existing is None:
                existing = self._metrics[name] = factory()
            elif not isinstance(existing, kind):
                raise ValueError(
                    f"{name} is already registered as a {type(existing).__name__}"
                )
            return existing

    def _of_type(self, kind: type[_M], metric_filter: MetricFilter) -> dict[str, _M]:
        with self._lock:
            items = sorted(self._metrics.items())
        return {
            name: metric
            for name, metric in items
            if isinstance(metric, kind) and metric_filter(name, metric)
        }
