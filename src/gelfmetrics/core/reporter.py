"""Periodic reporter that turns registry snapshots into GELF messages."""

import logging
import threading
from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

from gelfmetrics.core import fields
from gelfmetrics.core.config import ReporterConfig
from gelfmetrics.core.models import GelfMessage, MetricKind, TimeUnit
from gelfmetrics.core.ports import (
    CounterPort,
    GaugePort,
    HistogramPort,
    MeterPort,
    SchedulerFactory,
    SchedulerPort,
    TimerPort,
)

logger = logging.getLogger(__name__)


class GelfReporter:
    """Reports every metric of a registry to a GELF transport.

    Each call to ``report()`` sends one message per metric. All messages of
    one call share a timestamp. Sends are fire-and-forget: whatever the
    transport does with a message is never reported back.

    Example:
        ```python
        reporter = for_registry(registry).prefixed_with("web").build()
        reporter.start(30)
        ...
        reporter.stop()
        ```
    """

    def __init__(
        self,
        config: ReporterConfig,
        scheduler_factory: SchedulerFactory | None = None,
    ) -> None:
        """Initialize the reporter from a validated configuration.

        Args:
            config: Immutable reporter settings, usually produced by
                GelfReporterBuilder.build().
            scheduler_factory: Builds the scheduler used by start(). Without
                one the reporter can only be driven by calling report().
        """
        self._config = config
        self._scheduler_factory = scheduler_factory
        self._scheduler: SchedulerPort | None = None
        self._lock = threading.Lock()
        self._stopped = False

    @property
    def config(self) -> ReporterConfig:
        return self._config

    def report(
        self,
        gauges: Mapping[str, GaugePort] | None = None,
        counters: Mapping[str, CounterPort] | None = None,
        histograms: Mapping[str, HistogramPort] | None = None,
        meters: Mapping[str, MeterPort] | None = None,
        timers: Mapping[str, TimerPort] | None = None,
    ) -> None:
        """Send one message per metric.

        When called without arguments, the metrics are read from the
        configured registry through the configured filter. Explicit mappings
        are reported as given, in name order.
        """
        if all(m is None for m in (gauges, counters, histograms, meters, timers)):
            gauges, counters, histograms, meters, timers = self._read_registry()

        gauges = gauges or {}
        counters = counters or {}
        histograms = histograms or {}
        meters = meters or {}
        timers = timers or {}

        if not (gauges or counters or histograms or meters or timers):
            logger.debug("All metrics are empty, nothing to report.")
            return

        timestamp = int(self._config.clock())
        messages = self.build_messages(
            gauges, counters, histograms, meters, timers, timestamp
        )
        for message in messages:
            self._config.transport.try_send(message)
        logger.debug("Reported %d metrics", len(messages))

    def build_messages(
        self,
        gauges: Mapping[str, GaugePort],
        counters: Mapping[str, CounterPort],
        histograms: Mapping[str, HistogramPort],
        meters: Mapping[str, MeterPort],
        timers: Mapping[str, TimerPort],
        timestamp: int,
    ) -> list[GelfMessage]:
        """Build the messages for one report cycle without sending them.

        Metrics are processed kind by kind in the order gauges, counters,
        histograms, meters, timers, and by ascending name within a kind.
        A metric that raises while being read is logged and skipped.

        Args:
            gauges: Gauges by name. Gauges reading None are skipped.
            counters: Counters by name.
            histograms: Histograms by name.
            meters: Meters by name.
            timers: Timers by name.
            timestamp: Unix timestamp in seconds shared by every message.

        Returns:
            List of GelfMessage objects, one per reported metric.
        """
        config = self._config
        messages: list[GelfMessage] = []

        def collect(
            kind: MetricKind,
            metrics: Mapping[str, Any],
            derive: Callable[[str, Any], dict[str, Any] | None],
        ) -> None:
            for key in sorted(metrics):
                name = fields.full_name(config.prefix, key)
                try:
                    own = derive(name, metrics[key])
                except Exception:
                    logger.exception("Unable to read %s %s", kind.lower(), name)
                    continue
                if own is not None:
                    messages.append(self._message(name, kind, own, timestamp))

        collect(MetricKind.GAUGE, gauges, self._gauge)
        collect(MetricKind.COUNTER, counters, fields.counter_fields)
        collect(MetricKind.HISTOGRAM, histograms, fields.histogram_fields)
        collect(
            MetricKind.METER,
            meters,
            lambda name, meter: fields.meter_fields(name, meter, config.rate_unit),
        )
        collect(
            MetricKind.TIMER,
            timers,
            lambda name, timer: fields.timer_fields(
                name, timer, config.rate_unit, config.duration_unit
            ),
        )
        return messages

    def start(self, period: float, unit: TimeUnit = TimeUnit.SECONDS) -> None:
        """Call ``report()`` every ``period`` units on a background thread.

        Raises:
            RuntimeError: If the reporter was already started or stopped, or
                has no scheduler factory.
        """
        with self._lock:
            if self._stopped:
                raise RuntimeError("Reporter has been stopped")
            if self._scheduler is not None:
                raise RuntimeError("Reporter already started")
            if self._scheduler_factory is None:
                raise RuntimeError("Reporter has no scheduler factory")
            self._scheduler = self._scheduler_factory(
                self.report, unit.to_seconds(period)
            )
            self._scheduler.start()

    def stop(self) -> None:
        """Stop the schedule and the transport. Further calls do nothing."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            scheduler = self._scheduler
        if scheduler is not None:
            scheduler.stop()
        self._config.transport.stop()

    def close(self) -> None:
        """Alias for stop()."""
        self.stop()

    def __enter__(self) -> "GelfReporter":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.stop()

    def _read_registry(
        self,
    ) -> tuple[
        Mapping[str, GaugePort],
        Mapping[str, CounterPort],
        Mapping[str, HistogramPort],
        Mapping[str, MeterPort],
        Mapping[str, TimerPort],
    ]:
        registry = self._config.registry
        metric_filter = self._config.metric_filter
        return (
            registry.gauges(metric_filter),
            registry.counters(metric_filter),
            registry.histograms(metric_filter),
            registry.meters(metric_filter),
            registry.timers(metric_filter),
        )

    @staticmethod
    def _gauge(name: str, gauge: GaugePort) -> dict[str, Any] | None:
        value = gauge.value
        if value is None:
            return None
        return fields.gauge_fields(name, value)

    def _message(
        self, name: str, kind: MetricKind, own: dict[str, Any], timestamp: int
    ) -> GelfMessage:
        config = self._config
        return GelfMessage(
            message=fields.summary(name, kind),
            host=config.source,
            level=config.level,
            timestamp=timestamp,
            fields=fields.merge_fields(
                config.additional_fields, own, config.omit_nan_values
            ),
        )

