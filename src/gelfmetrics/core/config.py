"""Immutable configuration values for the reporter and its transport.

Both dataclasses validate themselves on construction, so an instance that
exists is always usable. The fluent builder in ``gelfmetrics.runtime``
is the usual way to create them.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from gelfmetrics.core.errors import InvalidConfiguration
from gelfmetrics.core.models import GelfMessageLevel, GelfTransports, TimeUnit
from gelfmetrics.core.ports import (
    Clock,
    GelfTransportPort,
    MetricFilter,
    MetricRegistryPort,
    accept_all,
)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 12201
DEFAULT_SOURCE = "metrics"


def require(value: Any, name: str) -> Any:
    """Return ``value`` or raise InvalidConfiguration if it is None."""
    if value is None:
        raise InvalidConfiguration(f"{name} must not be None")
    return value


def require_instance(value: Any, expected: type | tuple[type, ...], name: str) -> Any:
    """Return ``value`` if it is a non-None instance of ``expected``."""
    require(value, name)
    if not isinstance(value, expected):
        raise InvalidConfiguration(
            f"{name} must be {_type_names(expected)}, got {type(value).__name__}"
        )
    return value


def require_callable(value: Any, name: str) -> Any:
    """Return ``value`` if it is a non-None callable."""
    require(value, name)
    if not callable(value):
        raise InvalidConfiguration(f"{name} must be callable")
    return value


def _type_names(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


@dataclass(frozen=True)
class TransportConfig:
    """Network settings for a GELF transport.

    Attributes:
        host: Hostname or IP address of the GELF input.
        port: Port of the GELF input.
        transport: Protocol used to reach the input.
        queue_size: Capacity of the outgoing message queue.
        tls_enabled: Wrap TCP connections in TLS (HTTPS for HTTP).
        tls_trust_cert_chain_file: CA bundle to verify the server against.
            None means the system trust store.
        tls_cert_verification_enabled: Verify the server certificate.
        reconnect_delay: Milliseconds to wait before reconnecting.
        connect_timeout: Milliseconds to wait for a connection.
        tcp_no_delay: Disable Nagle's algorithm on TCP sockets.
        tcp_keep_alive: Enable TCP keepalive probes.
        send_buffer_size: Socket send buffer in bytes, -1 for the OS default.
        max_in_flight_sends: Maximum messages written per batch.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    transport: GelfTransports = GelfTransports.UDP
    queue_size: int = 512
    tls_enabled: bool = False
    tls_trust_cert_chain_file: Path | None = None
    tls_cert_verification_enabled: bool = True
    reconnect_delay: int = 500
    connect_timeout: int = 1000
    tcp_no_delay: bool = False
    tcp_keep_alive: bool = False
    send_buffer_size: int = -1
    max_in_flight_sends: int = 512

    def __post_init__(self) -> None:
        require_instance(self.host, str, "host")
        if not self.host:
            raise InvalidConfiguration("host must not be empty")
        require_instance(self.port, int, "port")
        if not 0 <= self.port <= 65535:
            raise InvalidConfiguration(f"port out of range: {self.port}")
        require_instance(self.transport, GelfTransports, "transport")
        if self.queue_size <= 0:
            raise InvalidConfiguration("queue_size must be positive")
        if self.max_in_flight_sends <= 0:
            raise InvalidConfiguration("max_in_flight_sends must be positive")
        if self.reconnect_delay < 0 or self.connect_timeout < 0:
            raise InvalidConfiguration("delays and timeouts must not be negative")

    @property
    def address(self) -> tuple[str, int]:
        """(host, port) tuple suitable for the socket module."""
        return (self.host, self.port)


@dataclass(frozen=True)
class ReporterConfig:
    """Everything a GelfReporter needs to run.

    ``additional_fields`` is copied into a read-only mapping, so later
    changes to the caller's dict are not seen by the reporter.
    """

    registry: MetricRegistryPort
    transport: GelfTransportPort
    clock: Clock
    prefix: str | None = None
    rate_unit: TimeUnit = TimeUnit.SECONDS
    duration_unit: TimeUnit = TimeUnit.MILLISECONDS
    metric_filter: MetricFilter = accept_all
    level: GelfMessageLevel = GelfMessageLevel.INFO
    source: str = DEFAULT_SOURCE
    additional_fields: Mapping[str, Any] = field(default_factory=dict)
    omit_nan_values: bool = False

    def __post_init__(self) -> None:
        require(self.registry, "registry")
        require(self.transport, "transport")
        require_callable(self.clock, "clock")
        if self.prefix is not None:
            require_instance(self.prefix, str, "prefix")
        require_instance(self.rate_unit, TimeUnit, "rate_unit")
        require_instance(self.duration_unit, TimeUnit, "duration_unit")
        require_callable(self.metric_filter, "metric_filter")
        require_instance(self.level, GelfMessageLevel, "level")
        require_instance(self.source, str, "source")
        require_instance(self.additional_fields, Mapping, "additional_fields")
        object.__setattr__(
            self, "additional_fields", MappingProxyType(dict(self.additional_fields))
        )
