"""Field derivation for each metric kind.

Every function here is pure: it reads a metric, returns a field dict,
and performs no I/O.
"""

import math
from collections.abc import Callable, Mapping
from typing import Any

from gelfmetrics.core.models import MetricKind, Snapshot, TimeUnit
from gelfmetrics.core.ports import (
    CounterPort,
    HistogramPort,
    MeterPort,
    TimerPort,
)

_DISTRIBUTION_FIELDS = (
    "min",
    "max",
    "mean",
    "stddev",
    "median",
    "p75",
    "p95",
    "p98",
    "p99",
    "p999",
)


def full_name(prefix: str | None, name: str) -> str:
    """Prepend ``prefix`` to a dotted metric name when it is non-empty.

    Args:
        prefix: Configured prefix, or None.
        name: Dot-delimited metric name (e.g., "foo.bar").

    Returns:
        "prefix.foo.bar" or "foo.bar" when no prefix is set.
    """
    if not prefix:
        return name
    return f"{prefix}.{name}"


def summary(name: str, kind: MetricKind) -> str:
    """Return the human-readable message line for a metric."""
    return f"name={name} type={kind}"


def is_reportable(value: Any) -> bool:
    """Return False for None and non-finite floats."""
    if value is None:
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return True


def drop_non_finite(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``fields`` without None, NaN or infinite values."""
    return {key: value for key, value in fields.items() if is_reportable(value)}


def merge_fields(
    additional: Mapping[str, Any],
    own: Mapping[str, Any],
    omit_nan_values: bool = False,
) -> dict[str, Any]:
    """Merge static additional fields with metric fields.

    The metric's own fields are written last so they always win on a key
    collision. With ``omit_nan_values`` each side is filtered before the
    merge, so a NaN metric field leaves a static field of the same key in
    place.
    """
    if omit_nan_values:
        additional = drop_non_finite(additional)
        own = drop_non_finite(own)
    merged = dict(additional)
    merged.update(own)
    return merged


def _distribution(
    snapshot: Snapshot, convert: Callable[[float], float] | None = None
) -> dict[str, Any]:
    values = {key: getattr(snapshot, key) for key in _DISTRIBUTION_FIELDS}
    if convert is None:
        return values
    return {key: convert(value) for key, value in values.items()}


def _rates(meter: MeterPort, rate_unit: TimeUnit) -> dict[str, Any]:
    return {
        "mean_rate": rate_unit.convert_rate(meter.mean_rate),
        "m1": rate_unit.convert_rate(meter.one_minute_rate),
        "m5": rate_unit.convert_rate(meter.five_minute_rate),
        "m15": rate_unit.convert_rate(meter.fifteen_minute_rate),
        "rate_unit": rate_unit.rate_label,
    }


def gauge_fields(name: str, value: Any) -> dict[str, Any]:
    """Fields for a gauge, given the value already read from it."""
    return {
        "name": name,
        "type": str(MetricKind.GAUGE),
        "value": value,
    }


def counter_fields(name: str, counter: CounterPort) -> dict[str, Any]:
    """Fields for a counter."""
    return {
        "name": name,
        "type": str(MetricKind.COUNTER),
        "count": counter.count,
    }


def histogram_fields(name: str, histogram: HistogramPort) -> dict[str, Any]:
    """Fields for a histogram, in the histogram's own units."""
    return {
        "name": name,
        "type": str(MetricKind.HISTOGRAM),
        "count": histogram.count,
        **_distribution(histogram.snapshot()),
    }


def meter_fields(name: str, meter: MeterPort, rate_unit: TimeUnit) -> dict[str, Any]:
    """Fields for a meter, with rates scaled to ``rate_unit``."""
    return {
        "name": name,
        "type": str(MetricKind.METER),
        "count": meter.count,
        **_rates(meter, rate_unit),
    }


def timer_fields(
    name: str,
    timer: TimerPort,
    rate_unit: TimeUnit,
    duration_unit: TimeUnit,
) -> dict[str, Any]:
    """Fields for a timer.

    Durations are converted from nanoseconds to ``duration_unit`` and
    rates from per-second to ``rate_unit``.
    """
    return {
        "name": name,
        "type": str(MetricKind.TIMER),
        "count": timer.count,
        **_distribution(timer.snapshot(), duration_unit.convert_duration),
        "duration_unit": duration_unit.label,
        **_rates(timer, rate_unit),
    }
