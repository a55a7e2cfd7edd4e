"""Core domain models for metric reporting."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum, StrEnum
from typing import Any


class GelfMessageLevel(IntEnum):
    """Syslog severity levels used by the GELF ``level`` field."""

    EMERGENCY = 0
    ALERT = 1
    CRITICAL = 2
    ERROR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7


class MetricKind(StrEnum):
    """Kind tag written to the ``type`` field of every message."""

    GAUGE = "GAUGE"
    COUNTER = "COUNTER"
    HISTOGRAM = "HISTOGRAM"
    METER = "METER"
    TIMER = "TIMER"


class GelfTransports(StrEnum):
    """Network protocol used to reach the GELF input."""

    UDP = "udp"
    TCP = "tcp"
    HTTP = "http"


class TimeUnit(Enum):
    """Time granularity used to scale rates and durations.

    Each member's value is its length in nanoseconds.
    """

    NANOSECONDS = 1
    MICROSECONDS = 1_000
    MILLISECONDS = 1_000_000
    SECONDS = 1_000_000_000
    MINUTES = 60 * 1_000_000_000
    HOURS = 60 * 60 * 1_000_000_000
    DAYS = 24 * 60 * 60 * 1_000_000_000

    @property
    def nanos(self) -> int:
        """Length of one unit in nanoseconds."""
        return self.value

    def to_seconds(self, amount: float = 1) -> float:
        """Convert ``amount`` of this unit to seconds."""
        return amount * self.value / TimeUnit.SECONDS.value

    def convert_rate(self, rate_per_second: float) -> float:
        """Scale a per-second rate to a per-unit rate."""
        return rate_per_second * self.to_seconds()

    def convert_duration(self, nanos: float) -> float:
        """Scale a nanosecond duration to this unit."""
        return nanos / self.value

    @property
    def label(self) -> str:
        """Plural lower-case name, e.g. ``"milliseconds"``."""
        return self.name.lower()

    @property
    def rate_label(self) -> str:
        """Singular lower-case name used for rates, e.g. ``"second"``."""
        return self.label[:-1]


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time statistics of a histogram or timer.

    Values are computed by the registry. Timers report nanoseconds.

    Attributes:
        size: Number of samples the statistics were computed from.
        min: Smallest sample.
        max: Largest sample.
        mean: Arithmetic mean.
        stddev: Standard deviation.
        median: 50th percentile.
        p75: 75th percentile.
        p95: 95th percentile.
        p98: 98th percentile.
        p99: 99th percentile.
        p999: 99.9th percentile.
    """

    size: int = 0
    min: int | float = 0
    max: int | float = 0
    mean: float = 0.0
    stddev: float = 0.0
    median: float = 0.0
    p75: float = 0.0
    p95: float = 0.0
    p98: float = 0.0
    p99: float = 0.0
    p999: float = 0.0


@dataclass(frozen=True)
class GelfMessage:
    """A single outgoing GELF message.

    Attributes:
        message: Human-readable summary (GELF ``short_message``).
        host: Source identity of the sender.
        level: Syslog severity.
        timestamp: Unix timestamp in seconds.
        fields: Additional structured fields, keyed without the ``_`` prefix.
    """

    message: str
    host: str
    level: GelfMessageLevel = GelfMessageLevel.INFO
    timestamp: float = 0
    fields: dict[str, Any] = field(default_factory=dict)
