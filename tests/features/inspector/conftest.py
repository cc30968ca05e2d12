"""BDD step definitions for inspector divergence features."""

from dataclasses import dataclass, field

import pytest
from pytest_bdd import given, parsers, then, when

from healthrail.adapters.sinks import InMemorySink
from healthrail.core.divergence import Divergence
from healthrail.core.report import InspectionLevel
from healthrail.inspector import Inspector, InspectorState


@dataclass
class InspectorScenarioContext:
    """Shared state between steps in an inspector scenario."""

    sink: InMemorySink = field(default_factory=InMemorySink)
    inspector: Inspector | None = None
    divergence: Divergence | None = None

    @property
    def session(self) -> Inspector:
        assert self.inspector is not None
        return self.inspector


@pytest.fixture
def ctx() -> InspectorScenarioContext:
    """Fresh scenario context for each test."""
    return InspectorScenarioContext()


@given(
    parsers.parse('an inspector for the "{component}" component at level "{level}"')
)
def step_inspector(ctx: InspectorScenarioContext, component: str, level: str) -> None:
    ctx.inspector = Inspector(
        component,
        InspectionLevel[level],
        sink=ctx.sink,
        clock=lambda: 1_700_000_000.0,
        context_id=f"{component}-4242-1",
    )


@given("the inspector is enabled")
def step_enable(ctx: InspectorScenarioContext) -> None:
    ctx.session.enable()


@when(
    parsers.parse(
        'the expected state "{label}" is {expected:d} but was {actual:d}'
    )
)
def step_expected_state(
    ctx: InspectorScenarioContext, label: str, expected: int, actual: int
) -> None:
    ctx.divergence = ctx.session.expected_state(label, expected, actual)


@when("the final state is captured")
def step_final_state(ctx: InspectorScenarioContext) -> None:
    ctx.session.final_snapshot("done")


@then(parsers.parse('the divergence is "{kind}" with severity "{severity}"'))
def step_divergence(ctx: InspectorScenarioContext, kind: str, severity: str) -> None:
    assert ctx.divergence is not None
    assert ctx.divergence.kind.value == kind
    assert ctx.divergence.severity.name == severity


@then(parsers.parse('the rendered report contains "{text}"'))
def step_report_contains(ctx: InspectorScenarioContext, text: str) -> None:
    if ctx.session.state is not InspectorState.RENDERED:
        ctx.session.close()
    assert text in ctx.sink.text()


@then("no events were recorded")
def step_no_events(ctx: InspectorScenarioContext) -> None:
    assert ctx.session.events == ()
    assert ctx.session.expected_checks == ()
