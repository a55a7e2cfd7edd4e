"""BDD step definitions for metric reporting features."""

import math
from dataclasses import dataclass, field
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from gelfmetrics.adapters.registry.in_memory import InMemoryMetricRegistry
from gelfmetrics.core.models import GelfMessage, TimeUnit
from gelfmetrics.core.ports import MetricFilter, accept_all
from gelfmetrics.core.reporter import GelfReporter
from gelfmetrics.runtime import for_registry
from tests.fakes import RecordingTransport


@dataclass
class ReportingScenarioContext:
    """Settings collected by Given steps; the reporter is built on When."""

    registry: InMemoryMetricRegistry = field(default_factory=InMemoryMetricRegistry)
    transport: RecordingTransport = field(default_factory=RecordingTransport)
    prefix: str | None = None
    additional_fields: dict[str, Any] = field(default_factory=dict)
    omit_nan_values: bool = False
    metric_filter: MetricFilter = accept_all

    def build(self) -> GelfReporter:
        return (
            for_registry(self.registry)
            .prefixed_with(self.prefix)
            .additional_fields(self.additional_fields)
            .omit_nan_values(self.omit_nan_values)
            .filter(self.metric_filter)
            .with_clock(lambda: 1702300000.0)
            .with_transport(self.transport)
            .build()
        )

    @property
    def sent(self) -> list[GelfMessage]:
        return self.transport.sent


@pytest.fixture
def ctx() -> ReportingScenarioContext:
    """Fresh scenario context for each test."""
    return ReportingScenarioContext()


# === Background Steps ===
@given("an in-memory metric registry")
def step_registry(ctx: ReportingScenarioContext) -> None:
    ctx.registry = InMemoryMetricRegistry()


@given(
    parsers.parse(
        'a reporter prefixed with "{prefix}" and the static field '
        '"{key}" set to "{value}"'
    )
)
def step_reporter(
    ctx: ReportingScenarioContext, prefix: str, key: str, value: str
) -> None:
    ctx.prefix = prefix
    ctx.additional_fields[key] = value


@given("the reporter omits NaN values")
def step_omit_nan(ctx: ReportingScenarioContext) -> None:
    ctx.omit_nan_values = True


@given(parsers.parse('the reporter only reports metrics starting with "{start}"'))
def step_filter(ctx: ReportingScenarioContext, start: str) -> None:
    ctx.metric_filter = lambda name, metric: name.startswith(start)


# === Metrics ===
@given(parsers.parse('a counter "{name}" incremented {n:d} times'))
def step_counter(ctx: ReportingScenarioContext, name: str, n: int) -> None:
    counter = ctx.registry.counter(name)
    for _ in range(n):
        counter.inc()


@given(parsers.parse('a gauge "{name}" reading NaN'))
def step_nan_gauge(ctx: ReportingScenarioContext, name: str) -> None:
    ctx.registry.gauge(name, lambda: math.nan)


@given(parsers.parse('a gauge "{name}" reading {value:d}'))
def step_gauge(ctx: ReportingScenarioContext, name: str, value: int) -> None:
    ctx.registry.gauge(name, lambda: value)


@given(parsers.parse('a timer "{name}" that recorded {ms:d} milliseconds'))
def step_timer(ctx: ReportingScenarioContext, name: str, ms: int) -> None:
    ctx.registry.timer(name).update(ms, TimeUnit.MILLISECONDS)


# === Actions ===
@when("the reporter reports")
def when_report(ctx: ReportingScenarioContext) -> None:
    reporter = ctx.build()
    reporter.report()
    reporter.stop()


# === Assertions ===
@then(parsers.parse("{n:d} message is sent"))
@then(parsers.parse("{n:d} messages are sent"))
def then_count(ctx: ReportingScenarioContext, n: int) -> None:
    assert len(ctx.sent) == n


@then(parsers.parse('the message summary is "{summary}"'))
def then_summary(ctx: ReportingScenarioContext, summary: str) -> None:
    assert ctx.sent[0].message == summary


@then(parsers.parse('the message field "{key}" is {value:d}'))
def then_int_field(ctx: ReportingScenarioContext, key: str, value: int) -> None:
    assert ctx.sent[0].fields[key] == value


@then(parsers.parse('the message field "{key}" is "{value}"'))
def then_str_field(ctx: ReportingScenarioContext, key: str, value: str) -> None:
    assert ctx.sent[0].fields[key] == value


@then(parsers.parse('the message has no field "{key}"'))
def then_no_field(ctx: ReportingScenarioContext, key: str) -> None:
    assert key not in ctx.sent[0].fields


@then(parsers.parse('the message names are "{names}"'))
def then_names(ctx: ReportingScenarioContext, names: str) -> None:
    assert [m.fields["name"] for m in ctx.sent] == names.split(", ")
