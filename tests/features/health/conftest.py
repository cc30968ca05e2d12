"""BDD step definitions for health scoring features."""

from dataclasses import dataclass, field

import pytest
from pytest_bdd import given, parsers, then, when

from healthrail.adapters.sinks import InMemorySink
from healthrail.core.encoding.parsing import parse_log_text
from healthrail.core.errors import HealthTotalNotDeclaredError
from healthrail.core.format import FormatDefinition
from healthrail.core.metadata import Metadata
from healthrail.core.models import Identity
from healthrail.logger import Logger


@dataclass
class HealthScenarioContext:
    """Shared state between steps in a health scenario."""

    sink: InMemorySink = field(default_factory=InMemorySink)
    logger: Logger | None = None
    error: Exception | None = None

    @property
    def log(self) -> Logger:
        assert self.logger is not None
        return self.logger


@pytest.fixture
def ctx() -> HealthScenarioContext:
    """Fresh scenario context for each test."""
    return HealthScenarioContext()


# === Background Steps ===
@given(parsers.parse('a logger for the "{component}" component'))
def step_logger(ctx: HealthScenarioContext, component: str) -> None:
    ctx.logger = Logger(
        component,
        sink=ctx.sink,
        clock=lambda: 1_700_000_000.0,
        identity=Identity("tester", "buildhost", 4242),
        context_id=f"{component}-4242-1",
    )


@given(parsers.parse("a declared health total of {total:d}"))
def step_declare_total(ctx: HealthScenarioContext, total: int) -> None:
    ctx.log.declare_health_total(total)


# === Scoring Steps ===
@when(parsers.parse('the check "{label}" passes worth {delta:d}'))
def step_check_passes(ctx: HealthScenarioContext, label: str, delta: int) -> None:
    ctx.log.check(label, True, delta)


@when(
    parsers.parse(
        'the check "{label}" fails worth {delta:d} with automated fix "{strategy}"'
    )
)
def step_check_fails_automated(
    ctx: HealthScenarioContext, label: str, delta: int, strategy: str
) -> None:
    metadata = Metadata(
        error_type="check_failed",
        recovery_hint="automated_fix",
        recovery_strategy=strategy,
    )
    ctx.log.check_with_metadata(label, False, delta, None, metadata)


@when(parsers.parse('the check "{label}" fails worth {delta:d} with a manual fix'))
def step_check_fails_manual(
    ctx: HealthScenarioContext, label: str, delta: int
) -> None:
    metadata = Metadata(error_type="check_failed", recovery_hint="manual")
    ctx.log.check_with_metadata(label, False, delta, None, metadata)


@when(parsers.parse('the operation "{name}" is worth {delta:d}'))
def step_operation(ctx: HealthScenarioContext, name: str, delta: int) -> None:
    ctx.log.operation(name, delta)


@when(parsers.parse('an informational note "{message}" is recorded'))
def step_info(ctx: HealthScenarioContext, message: str) -> None:
    ctx.log.info(message)


@when(parsers.parse('the check "{label}" is attempted worth {delta:d}'))
def step_check_attempted(ctx: HealthScenarioContext, label: str, delta: int) -> None:
    try:
        ctx.log.check(label, True, delta)
    except HealthTotalNotDeclaredError as e:
        ctx.error = e


# === Outcome Steps ===
@then(parsers.parse("the health is {health:d}%"))
def step_health_is(ctx: HealthScenarioContext, health: int) -> None:
    assert ctx.log.health == health


@then(parsers.parse('the health band is "{band}"'))
def step_health_band(ctx: HealthScenarioContext, band: str) -> None:
    assert FormatDefinition().band_for(ctx.log.health).name == band


@then(parsers.parse('the last record shows "{text}"'))
def step_last_record_shows(ctx: HealthScenarioContext, text: str) -> None:
    assert text in ctx.sink.records[-1]


@then("the progress bar is empty")
def step_bar_empty(ctx: HealthScenarioContext) -> None:
    assert "[" + "░" * 20 + "]" in ctx.sink.records[-1]


@then("the progress bar is full")
def step_bar_full(ctx: HealthScenarioContext) -> None:
    assert "[" + "█" * 20 + "]" in ctx.sink.records[-1]


@then(parsers.parse('the recoverable failures are "{labels}"'))
def step_recoverable(ctx: HealthScenarioContext, labels: str) -> None:
    definition = FormatDefinition()
    expected = [
        definition.message("check", label=label) for label in labels.split(", ")
    ]
    assert [entry.event for entry in ctx.log.recoverable_failures()] == expected


@then(parsers.parse('the log text names the recovery strategy "{strategy}"'))
def step_strategy_in_log(ctx: HealthScenarioContext, strategy: str) -> None:
    records = parse_log_text(ctx.sink.text())
    strategies = [r.recovery_strategy for r in records if r.recovery_strategy]
    assert strategies == [strategy]


@then(parsers.parse("the log holds {count:d} records"))
def step_record_count(ctx: HealthScenarioContext, count: int) -> None:
    assert len(ctx.log.entries) == count
    assert len(ctx.sink.records) == count


@then("the logger refuses with a missing total error")
def step_refused(ctx: HealthScenarioContext) -> None:
    assert isinstance(ctx.error, HealthTotalNotDeclaredError)
