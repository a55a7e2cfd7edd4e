"""Fluent builder that wires a GelfReporter to its transport and scheduler."""

import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from gelfmetrics.adapters.scheduler import PeriodicScheduler
from gelfmetrics.adapters.transport import create_transport
from gelfmetrics.core.config import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SOURCE,
    ReporterConfig,
    TransportConfig,
    require,
    require_callable,
    require_instance,
)
from gelfmetrics.core.errors import InvalidConfiguration
from gelfmetrics.core.models import GelfMessageLevel, GelfTransports, TimeUnit
from gelfmetrics.core.ports import (
    Clock,
    GelfTransportPort,
    MetricFilter,
    MetricRegistryPort,
    SchedulerFactory,
    accept_all,
)
from gelfmetrics.core.reporter import GelfReporter


class GelfReporterBuilder:
    """Collects reporter and transport settings, then builds a GelfReporter.

    Setters that take a required value raise InvalidConfiguration right
    away when given None, so mistakes surface while configuring rather than
    on the first report.

    Example:
        ```python
        reporter = (
            for_registry(registry)
            .host("graylog.local", 12201)
            .transport(GelfTransports.TCP)
            .convert_durations_to(TimeUnit.MICROSECONDS)
            .additional_fields({"env": "prod"})
            .build()
        )
        ```
    """

    def __init__(self, registry: MetricRegistryPort) -> None:
        self._registry = require(registry, "registry")
        self._clock: Clock = time.time
        self._prefix: str | None = None
        self._rate_unit = TimeUnit.SECONDS
        self._duration_unit = TimeUnit.MILLISECONDS
        self._filter: MetricFilter = accept_all
        self._host = DEFAULT_HOST
        self._port = DEFAULT_PORT
        self._transport_kind = GelfTransports.UDP
        self._queue_size = 512
        self._tls_enabled = False
        self._tls_trust_cert_chain_file: Path | None = None
        self._tls_cert_verification_enabled = True
        self._reconnect_delay = 500
        self._connect_timeout = 1000
        self._tcp_no_delay = False
        self._tcp_keep_alive = False
        self._send_buffer_size = -1
        self._max_in_flight_sends = 512
        self._level = GelfMessageLevel.INFO
        self._source = DEFAULT_SOURCE
        self._additional_fields: dict[str, Any] = {}
        self._omit_nan_values = False
        self._transport: GelfTransportPort | None = None
        self._scheduler_factory: SchedulerFactory = PeriodicScheduler

    def with_clock(self, clock: Clock) -> "GelfReporterBuilder":
        """Use ``clock`` (returning Unix seconds) to timestamp messages."""
        self._clock = require_callable(clock, "clock")
        return self

    def prefixed_with(self, prefix: str | None) -> "GelfReporterBuilder":
        """Prepend ``prefix`` to every metric name. Useful to identify hosts."""
        self._prefix = prefix
        return self

    def convert_rates_to(self, rate_unit: TimeUnit) -> "GelfReporterBuilder":
        """Report rates per ``rate_unit``. Defaults to seconds."""
        self._rate_unit = require_instance(rate_unit, TimeUnit, "rate_unit")
        return self

    def convert_durations_to(self, duration_unit: TimeUnit) -> "GelfReporterBuilder":
        """Report durations in ``duration_unit``. Defaults to milliseconds."""
        self._duration_unit = require_instance(duration_unit, TimeUnit, "duration_unit")
        return self

    def filter(self, metric_filter: MetricFilter | None) -> "GelfReporterBuilder":
        """Only report metrics for which ``metric_filter(name, metric)`` is true.

        None restores the default of reporting everything.
        """
        if metric_filter is None:
            metric_filter = accept_all
        self._filter = require_callable(metric_filter, "filter")
        return self

    def host(self, host: str, port: int = DEFAULT_PORT) -> "GelfReporterBuilder":
        """Address of the GELF input. Defaults to 127.0.0.1:12201."""
        self._host = require_instance(host, str, "host")
        self._port = require_instance(port, int, "port")
        return self

    def additional_fields(
        self, additional_fields: Mapping[str, Any]
    ) -> "GelfReporterBuilder":
        """Static fields attached to every message.

        Metric fields with the same key take precedence.
        """
        require_instance(additional_fields, Mapping, "additional_fields")
        self._additional_fields = dict(additional_fields)
        return self

    def transport(self, transport: GelfTransports) -> "GelfReporterBuilder":
        """Protocol used to reach the GELF input. Defaults to UDP."""
        self._transport_kind = require_instance(transport, GelfTransports, "transport")
        return self

    def with_transport(self, transport: GelfTransportPort) -> "GelfReporterBuilder":
        """Use an existing transport instead of creating one from the settings."""
        self._transport = require(transport, "transport")
        return self

    def with_scheduler(self, factory: SchedulerFactory) -> "GelfReporterBuilder":
        """Use ``factory(callback, period_seconds)`` to schedule start()."""
        self._scheduler_factory = require_callable(factory, "scheduler")
        return self

    def queue_size(self, size: int) -> "GelfReporterBuilder":
        """Capacity of the transport's outgoing queue."""
        self._queue_size = size
        return self

    def tls_enabled(self, enabled: bool) -> "GelfReporterBuilder":
        self._tls_enabled = enabled
        return self

    def tls_trust_cert_chain_file(
        self, path: str | Path | None
    ) -> "GelfReporterBuilder":
        """CA bundle used to verify the server. None means the system store."""
        self._tls_trust_cert_chain_file = None if path is None else Path(path)
        return self

    def tls_cert_verification_enabled(self, enabled: bool) -> "GelfReporterBuilder":
        self._tls_cert_verification_enabled = enabled
        return self

    def reconnect_delay(self, delay_ms: int) -> "GelfReporterBuilder":
        """Milliseconds to wait between reconnect attempts."""
        self._reconnect_delay = delay_ms
        return self

    def connect_timeout(self, timeout_ms: int) -> "GelfReporterBuilder":
        """Milliseconds to wait for a TCP connection."""
        self._connect_timeout = timeout_ms
        return self

    def tcp_no_delay(self, enabled: bool) -> "GelfReporterBuilder":
        """Disable Nagle's algorithm on TCP connections."""
        self._tcp_no_delay = enabled
        return self

    def tcp_keep_alive(self, enabled: bool) -> "GelfReporterBuilder":
        self._tcp_keep_alive = enabled
        return self

    def send_buffer_size(self, size: int) -> "GelfReporterBuilder":
        """Socket send buffer in bytes. -1 keeps the OS default."""
        self._send_buffer_size = size
        return self

    def max_in_flight_sends(self, count: int) -> "GelfReporterBuilder":
        """Maximum number of messages written in one batch."""
        self._max_in_flight_sends = count
        return self

    def level(self, level: GelfMessageLevel | int) -> "GelfReporterBuilder":
        """Severity of every metric message. Defaults to INFO."""
        require(level, "level")
        try:
            self._level = GelfMessageLevel(level)
        except ValueError:
            raise InvalidConfiguration(f"unknown GELF level: {level!r}") from None
        return self

    def source(self, source: str) -> "GelfReporterBuilder":
        """Host name written to every message. Defaults to "metrics"."""
        self._source = require_instance(source, str, "source")
        return self

    def omit_nan_values(self, omit: bool) -> "GelfReporterBuilder":
        """Drop None, NaN and infinite fields from every message."""
        self._omit_nan_values = bool(require(omit, "omit_nan_values"))
        return self

    def build_transport_config(self) -> TransportConfig:
        """Return the transport settings collected so far."""
        return TransportConfig(
            host=self._host,
            port=self._port,
            transport=self._transport_kind,
            queue_size=self._queue_size,
            tls_enabled=self._tls_enabled,
            tls_trust_cert_chain_file=self._tls_trust_cert_chain_file,
            tls_cert_verification_enabled=self._tls_cert_verification_enabled,
            reconnect_delay=self._reconnect_delay,
            connect_timeout=self._connect_timeout,
            tcp_no_delay=self._tcp_no_delay,
            tcp_keep_alive=self._tcp_keep_alive,
            send_buffer_size=self._send_buffer_size,
            max_in_flight_sends=self._max_in_flight_sends,
        )

    def build(self) -> GelfReporter:
        """Build a GelfReporter with the collected settings.

        Setters validate their values and the transport settings are checked
        before the transport is created, so a configuration error never
        leaves a socket or worker thread behind. The transport is stopped
        again should the reporter settings still be rejected.

        Raises:
            InvalidConfiguration: If any setting is invalid.
        """
        transport_config = self.build_transport_config()
        transport = self._transport or create_transport(transport_config)
        try:
            config = ReporterConfig(
                registry=self._registry,
                transport=transport,
                clock=self._clock,
                prefix=self._prefix,
                rate_unit=self._rate_unit,
                duration_unit=self._duration_unit,
                metric_filter=self._filter,
                level=self._level,
                source=self._source,
                additional_fields=self._additional_fields,
                omit_nan_values=self._omit_nan_values,
            )
        except InvalidConfiguration:
            if self._transport is None:
                transport.stop()
            raise
        return GelfReporter(config, scheduler_factory=self._scheduler_factory)


def for_registry(registry: MetricRegistryPort) -> GelfReporterBuilder:
    """Start configuring a reporter for ``registry``."""
    return GelfReporterBuilder(registry)
