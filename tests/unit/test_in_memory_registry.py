"""Unit tests for InMemoryMetricRegistry and its metric types."""

import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from gelfmetrics.adapters.registry.in_memory import (
    Counter,
    Gauge,
    Histogram,
    InMemoryMetricRegistry,
    Meter,
    Timer,
    quantile,
    snapshot_of,
)
from gelfmetrics.core.models import Snapshot, TimeUnit
from tests.fakes import ManualClock

pytestmark = pytest.mark.registry


class TestRegistryLookup:
    """Tests for get-or-create lookups."""

    @pytest.mark.tra("Registry.Lookup.SameInstance")
    @pytest.mark.tier(0)
    def test_same_name_returns_same_metric(self) -> None:
        registry = InMemoryMetricRegistry()

        assert registry.counter("jobs") is registry.counter("jobs")

    @pytest.mark.tra("Registry.Lookup.TypeMismatch")
    @pytest.mark.tier(0)
    def test_type_mismatch_raises_valueerror(self) -> None:
        registry = InMemoryMetricRegistry()
        registry.counter("jobs")

        with pytest.raises(ValueError, match="already registered as a Counter"):
            registry.timer("jobs")

    @pytest.mark.tra("Registry.Register.Duplicate")
    @pytest.mark.tier(0)
    def test_register_duplicate_raises_valueerror(self) -> None:
        registry = InMemoryMetricRegistry()
        registry.register("queue.depth", Gauge(lambda: 3))

        with pytest.raises(ValueError, match="already exists"):
            registry.register("queue.depth", Gauge(lambda: 4))

    @pytest.mark.tra("Registry.Remove")
    @pytest.mark.tier(0)
    def test_remove(self) -> None:
        registry = InMemoryMetricRegistry()
        registry.counter("jobs")

        assert registry.remove("jobs") is True
        assert registry.remove("jobs") is False
        assert registry.names() == []

    @pytest.mark.tra("Registry.Name")
    @pytest.mark.tier(0)
    def test_name_skips_empty_parts(self) -> None:
        assert InMemoryMetricRegistry.name("db", None, "", "query") == "db.query"


class TestRegistryReaders:
    """Tests for the per-kind reader methods."""

    @pytest.mark.tra("Registry.Readers.ByKind")
    @pytest.mark.tier(0)
    def test_readers_partition_by_kind(self) -> None:
        registry = InMemoryMetricRegistry()
        registry.counter("c")
        registry.gauge("g", lambda: 1)
        registry.histogram("h")
        registry.meter("m")
        registry.timer("t")

        assert list(registry.counters()) == ["c"]
        assert list(registry.gauges()) == ["g"]
        assert list(registry.histograms()) == ["h"]
        assert list(registry.meters()) == ["m"]
        assert list(registry.timers()) == ["t"]

    @pytest.mark.tra("Registry.Readers.Sorted")
    @pytest.mark.tier(0)
    def test_readers_sorted_by_name(self) -> None:
        registry = InMemoryMetricRegistry()
        for name in ("zeta", "alpha", "mu"):
            registry.counter(name)

        assert list(registry.counters()) == ["alpha", "mu", "zeta"]

    @pytest.mark.tra("Registry.Readers.Filter")
    @pytest.mark.tier(0)
    def test_filter_receives_name_and_metric(self) -> None:
        registry = InMemoryMetricRegistry()
        registry.counter("a").inc(5)
        registry.counter("b")

        counters = registry.counters(lambda name, metric: metric.count > 0)

        assert list(counters) == ["a"]

    @given(names=st.lists(st.text(min_size=1, max_size=20), unique=True, max_size=20))
    @pytest.mark.tra("Registry.Readers.Sorted.Property")
    @pytest.mark.tier(1)
    def test_counters_always_sorted(self, names: list[str]) -> None:
        registry = InMemoryMetricRegistry()
        for name in names:
            registry.counter(name)

        assert list(registry.counters()) == sorted(names)


class TestCounterAndGauge:
    @pytest.mark.tra("Registry.Counter")
    @pytest.mark.tier(0)
    def test_counter_inc_dec(self) -> None:
        counter = Counter()
        counter.inc()
        counter.inc(10)
        counter.dec(3)

        assert counter.count == 8

    @pytest.mark.tra("Registry.Gauge.Callable")
    @pytest.mark.tier(0)
    def test_gauge_reads_callable_each_time(self) -> None:
        readings = iter([1, 2])
        gauge = Gauge(lambda: next(readings))

        assert gauge.value == 1
        assert gauge.value == 2

    @pytest.mark.tra("Registry.Gauge.Set")
    @pytest.mark.tier(0)
    def test_gauge_set(self) -> None:
        gauge = Gauge()
        assert gauge.value is None

        gauge.set(0.75)

        assert gauge.value == 0.75

    @pytest.mark.tra("Registry.Gauge.SetCallable")
    @pytest.mark.tier(0)
    def test_set_on_callable_gauge_raises(self) -> None:
        with pytest.raises(TypeError):
            Gauge(lambda: 1).set(2)


class TestSnapshots:
    """Tests for histogram statistics."""

    @pytest.mark.tra("Registry.Snapshot.Empty")
    @pytest.mark.tier(0)
    def test_empty_snapshot(self) -> None:
        assert snapshot_of([]) == Snapshot()

    @pytest.mark.tra("Registry.Snapshot.Values")
    @pytest.mark.tier(0)
    def test_snapshot_of_five_values(self) -> None:
        snapshot = snapshot_of([5, 3, 1, 4, 2])

        assert snapshot.size == 5
        assert snapshot.min == 1
        assert snapshot.max == 5
        assert snapshot.mean == 3.0
        assert snapshot.stddev == pytest.approx(math.sqrt(2.5))
        assert snapshot.median == 3.0
        assert snapshot.p75 == 4.5
        assert snapshot.p99 == 5.0

    @pytest.mark.tra("Registry.Snapshot.Single")
    @pytest.mark.tier(0)
    def test_single_value_has_zero_stddev(self) -> None:
        snapshot = snapshot_of([42])

        assert snapshot.stddev == 0.0
        assert snapshot.median == 42.0
        assert snapshot.p999 == 42.0

    @pytest.mark.tra("Registry.Quantile.Low")
    @pytest.mark.tier(0)
    def test_low_quantile_clamps_to_min(self) -> None:
        assert quantile([1, 2, 3, 4, 5], 0.1) == 1.0

    @pytest.mark.tra("Registry.Histogram.Window")
    @pytest.mark.tier(0)
    def test_histogram_window_keeps_latest_samples(self) -> None:
        histogram = Histogram(window_size=3)
        for value in range(10):
            histogram.update(value)

        snapshot = histogram.snapshot()
        assert histogram.count == 10
        assert snapshot.size == 3
        assert snapshot.min == 7

    @given(values=st.lists(st.integers(-10_000, 10_000), min_size=1, max_size=200))
    @pytest.mark.tra("Registry.Snapshot.Ordering")
    @pytest.mark.tier(1)
    def test_quantiles_are_ordered(self, values: list[int]) -> None:
        """min <= median <= p75 <= p95 <= p98 <= p99 <= p999 <= max."""
        s = snapshot_of(values)

        ordered = [s.min, s.median, s.p75, s.p95, s.p98, s.p99, s.p999, s.max]
        assert ordered == sorted(ordered)
        assert s.min <= s.mean <= s.max


class TestMeter:
    """Tests for meter rates, driven by a manual clock."""

    @pytest.mark.tra("Registry.Meter.MeanRate")
    @pytest.mark.tier(0)
    def test_mean_rate(self, manual_clock: ManualClock) -> None:
        meter = Meter(manual_clock)
        meter.mark(10)
        manual_clock.advance(5)

        assert meter.count == 10
        assert meter.mean_rate == pytest.approx(2.0)

    @pytest.mark.tra("Registry.Meter.Unmarked")
    @pytest.mark.tier(0)
    def test_unmarked_meter_reports_zero(self, manual_clock: ManualClock) -> None:
        meter = Meter(manual_clock)
        manual_clock.advance(60)

        assert meter.mean_rate == 0.0
        assert meter.one_minute_rate == 0.0

    @pytest.mark.tra("Registry.Meter.FirstTick")
    @pytest.mark.tier(0)
    def test_first_tick_sets_rates(self, manual_clock: ManualClock) -> None:
        meter = Meter(manual_clock)
        meter.mark(10)
        manual_clock.advance(5)

        assert meter.one_minute_rate == pytest.approx(2.0)
        assert meter.five_minute_rate == pytest.approx(2.0)
        assert meter.fifteen_minute_rate == pytest.approx(2.0)

    @pytest.mark.tra("Registry.Meter.Decay")
    @pytest.mark.tier(0)
    def test_one_minute_rate_decays(self, manual_clock: ManualClock) -> None:
        """After a quiet minute the one-minute rate has decayed by 1/e."""
        meter = Meter(manual_clock)
        meter.mark(10)
        manual_clock.advance(5)
        assert meter.one_minute_rate == pytest.approx(2.0)

        manual_clock.advance(60)

        assert meter.one_minute_rate == pytest.approx(2.0 * math.exp(-1))
        assert meter.fifteen_minute_rate > meter.one_minute_rate


class TestTimer:
    @pytest.mark.tra("Registry.Timer.Update")
    @pytest.mark.tier(0)
    def test_update_records_nanoseconds(self, manual_clock: ManualClock) -> None:
        timer = Timer(manual_clock)
        timer.update(2, TimeUnit.MILLISECONDS)
        timer.update(500, TimeUnit.MICROSECONDS)

        snapshot = timer.snapshot()
        assert timer.count == 2
        assert snapshot.max == 2_000_000
        assert snapshot.min == 500_000

    @pytest.mark.tra("Registry.Timer.Negative")
    @pytest.mark.tier(0)
    def test_negative_duration_ignored(self) -> None:
        timer = Timer()
        timer.update(-1)

        assert timer.count == 0

    @pytest.mark.tra("Registry.Timer.Context")
    @pytest.mark.tier(0)
    def test_time_context_manager(self) -> None:
        timer = Timer()

        with timer.time():
            pass

        assert timer.count == 1
        assert timer.snapshot().max >= 0

    @pytest.mark.tra("Registry.Timer.RecordsOnError")
    @pytest.mark.tier(0)
    def test_time_records_when_block_raises(self) -> None:
        timer = Timer()

        with pytest.raises(KeyError), timer.time():
            raise KeyError("missing")

        assert timer.count == 1

    @pytest.mark.tra("Registry.Timer.Clock")
    @pytest.mark.tier(0)
    def test_registry_clock_reaches_timers(self, manual_clock: ManualClock) -> None:
        registry = InMemoryMetricRegistry(clock=manual_clock)
        timer = registry.timer("db.query")
        timer.update(1, TimeUnit.SECONDS)
        manual_clock.advance(10)

        assert timer.mean_rate == pytest.approx(0.1)
