"""Debug inspector: state snapshots, expected-state checks and a final report.

An Inspector records into an in-memory session while the process runs and
renders it once, at the end. Its lifecycle is::

    DISABLED --enable()--> ENABLED --first record--> RECORDING --render()--> RENDERED

Recording calls made while DISABLED are silent no-ops, so instrumentation
can stay in place in production code. Any call after RENDERED is a
programming error.
"""

from __future__ import annotations

import logging
import os
import sys
import time
import traceback
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any

from healthrail.adapters.sinks import FileLogSink, StderrSink
from healthrail.adapters.system import process_memory, system_metrics
from healthrail.config import HealthRailConfig
from healthrail.core.divergence import Divergence, classify_divergence
from healthrail.core.encoding.template import render_report
from healthrail.core.errors import InspectorStateError
from healthrail.core.models import UNKNOWN, Details, Identity, new_context_id
from healthrail.core.ports import LogSinkPort
from healthrail.core.report import (
    DebugReport,
    EventKind,
    ExpectedStateCheck,
    InspectionEvent,
    InspectionLevel,
    StateSnapshot,
)
from healthrail.logger import Logger

_log = logging.getLogger(__name__)

DEFAULT_STACK_DEPTH = 10


class InspectorState(StrEnum):
    DISABLED = "disabled"
    ENABLED = "enabled"
    RECORDING = "recording"
    RENDERED = "rendered"


def state_details(state: Mapping[str, Any] | None) -> Details:
    """Convert arbitrary state into Details, using ``repr`` for other values."""
    if not state:
        return Details()
    pairs: list[tuple[str, object]] = []
    for key, value in state.items():
        if isinstance(value, (str, int, float, bool, Details)):
            pairs.append((str(key), value))
        elif isinstance(value, Mapping):
            pairs.append((str(key), state_details(value)))
        else:
            pairs.append((str(key), repr(value)))
    return Details(pairs)


class Inspector:
    """Debug session for one component of one process run.

    Args:
        component: Name of the inspected component.
        level: How much of the session the report includes.
        logger: Logger of the same run; its context id and final health
            are carried into the report.
        config: Settings; defaults to the logger's, then ``HealthRailConfig()``.
        sink: Destination of the rendered report. Defaults to a per-run file
            under the configured debug directory.
        clock: Source of Unix timestamps.
        context_id: Id of the run; defaults to the logger's.
    """

    def __init__(
        self,
        component: str,
        level: InspectionLevel = InspectionLevel.BASIC,
        *,
        logger: Logger | None = None,
        config: HealthRailConfig | None = None,
        sink: LogSinkPort | None = None,
        clock: Callable[[], float] = time.time,
        context_id: str | None = None,
    ) -> None:
        self._component = component
        self._level = InspectionLevel(level)
        self._logger = logger
        if config is None:
            config = logger.config if logger is not None else HealthRailConfig()
        self._config = config
        self._sink = sink
        self._clock = clock
        self._identity = logger.identity if logger is not None else Identity.current()
        if context_id is None:
            context_id = (
                logger.context_id
                if logger is not None
                else new_context_id(component, self._identity.pid)
            )
        self._context_id = context_id

        self._state = InspectorState.DISABLED
        self._started: float | None = None
        self._context = Details()
        self._initial: StateSnapshot | None = None
        self._final: StateSnapshot | None = None
        self._events: list[InspectionEvent] = []
        self._checks: list[ExpectedStateCheck] = []

    @classmethod
    def for_logger(
        cls, logger: Logger, level: InspectionLevel = InspectionLevel.BASIC
    ) -> Inspector:
        """Create an inspector sharing the logger's component and run."""
        return cls(logger.component, level, logger=logger)

    @property
    def component(self) -> str:
        return self._component

    @property
    def context_id(self) -> str:
        return self._context_id

    @property
    def level(self) -> InspectionLevel:
        return self._level

    @property
    def state(self) -> InspectorState:
        return self._state

    @property
    def is_enabled(self) -> bool:
        return self._state in (InspectorState.ENABLED, InspectorState.RECORDING)

    @property
    def initial_state(self) -> StateSnapshot | None:
        return self._initial

    @property
    def final_state(self) -> StateSnapshot | None:
        return self._final

    @property
    def events(self) -> tuple[InspectionEvent, ...]:
        return tuple(self._events)

    @property
    def expected_checks(self) -> tuple[ExpectedStateCheck, ...]:
        return tuple(self._checks)

    def enable(self) -> None:
        """Start the session. Enabling an active session does nothing.

        Raises:
            InspectorStateError: If the session was already rendered.
        """
        # @tra: Inspector.Enable
        if self._state is InspectorState.RENDERED:
            raise InspectorStateError("cannot enable an inspector after render")
        if self._state is not InspectorState.DISABLED:
            return
        self._state = InspectorState.ENABLED
        self._started = self._clock()
        self._context = Details(
            (
                ("cwd", os.getcwd()),
                ("python", sys.version.split()[0]),
                ("argv", " ".join(sys.argv)),
            )
        )

    def snapshot(self, label: str, state: Mapping[str, Any] | None = None) -> None:
        """Capture a named state; the first capture is the initial state."""
        # @tra: Inspector.Snapshot
        if not self._recording("snapshot"):
            return
        snapshot = StateSnapshot(self._clock(), label, state_details(state))
        if self._initial is None:
            self._initial = snapshot
        else:
            self._add_event(
                EventKind.SNAPSHOT, label, snapshot.state, snapshot.timestamp
            )

    def final_snapshot(
        self, label: str, state: Mapping[str, Any] | None = None
    ) -> None:
        """Capture the final state.

        Raises:
            InspectorStateError: If the final state was already captured.
        """
        if not self._recording("final_snapshot"):
            return
        if self._final is not None:
            raise InspectorStateError("final state already captured")
        self._final = StateSnapshot(self._clock(), label, state_details(state))

    def expected_state(
        self,
        label: str,
        expected: Any,
        actual: Any,
        context: Mapping[str, Any] | None = None,
        equivalent: Callable[[Any, Any], bool] | None = None,
    ) -> Divergence:
        """Compare an expected value with the observed one and record the result.

        The classification is returned even when the inspector is disabled;
        it is only recorded while the session is active.
        """
        # @tra: Inspector.ExpectedState
        divergence = classify_divergence(expected, actual, equivalent)
        if not self._recording("expected_state"):
            return divergence
        now = self._clock()
        context_details = state_details(context)
        self._checks.append(
            ExpectedStateCheck(
                now, label, expected, actual, context_details, divergence
            )
        )
        kind = EventKind.EXPECTED_STATE if divergence.matches else EventKind.DIVERGENCE
        data = state_details({"expected": expected, "actual": actual})
        data = data.with_items(
            ("matches", divergence.matches),
            ("divergence", divergence.describe()),
        )
        if context_details:
            data = data.with_items(("context", context_details))
        self._add_event(kind, label, data, now)
        return divergence

    def checkpoint(self, label: str, state: Mapping[str, Any] | None = None) -> None:
        """Mark an execution waypoint."""
        if self._recording("checkpoint"):
            self._add_event(EventKind.CHECKPOINT, label, state_details(state))

    def conditional_snapshot(
        self, label: str, condition: bool, state: Mapping[str, Any] | None = None
    ) -> bool:
        """Capture state only when ``condition`` holds; returns ``condition``."""
        if not self._recording("conditional_snapshot") or not condition:
            return bool(condition)
        data = state_details(state).with_items(("condition_met", True))
        self._add_event(EventKind.CONDITIONAL, label, data)
        return True

    def timing(self, label: str, duration: float, expected: float) -> bool:
        """Record a duration against its budget, both in seconds.

        Returns:
            True if the duration stayed within the budget.
        """
        within = duration <= expected
        if self._recording("timing"):
            duration_ms = int(round(duration * 1000))
            expected_ms = int(round(expected * 1000))
            data = Details(
                (
                    ("duration_ms", duration_ms),
                    ("expected_ms", expected_ms),
                    ("variance_ms", duration_ms - expected_ms),
                    ("within_expected", within),
                )
            )
            kind = EventKind.TIMING if within else EventKind.SLOW_TIMING
            self._add_event(kind, label, data)
        return within

    def counter(self, label: str, count: int, expected: int) -> Divergence:
        """Record how often something happened against how often it should have."""
        divergence = classify_divergence(expected, count)
        if not self._recording("counter"):
            return divergence
        now = self._clock()
        data = Details(
            (
                ("count", count),
                ("expected", expected),
                ("variance", count - expected),
                ("matches", divergence.matches),
                ("divergence", divergence.describe()),
            )
        )
        self._checks.append(
            ExpectedStateCheck(now, label, expected, count, Details(), divergence)
        )
        kind = EventKind.COUNTER if divergence.matches else EventKind.COUNT_DIVERGENCE
        self._add_event(kind, label, data, now)
        return divergence

    def flow(self, label: str, branch: str, expected: str | None = None) -> bool:
        """Record which branch ran, optionally against the branch that should have.

        A branch compared with an expected one also takes part in the
        analysis as a state check.

        Returns:
            False only when an expected branch was given and another ran.
        """
        matches = expected is None or branch == expected
        if not self._recording("flow"):
            return matches
        now = self._clock()
        data = Details((("branch_taken", branch),))
        if expected is not None:
            data = data.with_items(
                ("expected_branch", expected), ("matches_expected", matches)
            )
            self._checks.append(
                ExpectedStateCheck(
                    now,
                    label,
                    expected,
                    branch,
                    Details(),
                    classify_divergence(expected, branch),
                )
            )
        kind = EventKind.FLOW if matches else EventKind.UNEXPECTED_FLOW
        self._add_event(kind, label, data, now)
        return matches

    def call_stack(self, label: str, depth: int = DEFAULT_STACK_DEPTH) -> None:
        """Record the caller's stack, innermost frame first."""
        if not self._recording("call_stack"):
            return
        if depth <= 0:
            depth = DEFAULT_STACK_DEPTH
        frames = traceback.extract_stack()[:-1][-depth:]
        stack = [
            f"{frame.name} ({os.path.basename(frame.filename)}:{frame.lineno})"
            for frame in reversed(frames)
        ]
        data = Details((("depth", len(stack)), ("stack", " <- ".join(stack))))
        self._add_event(EventKind.CALL_STACK, label, data)

    def memory(self, label: str, state: Mapping[str, Any] | None = None) -> None:
        """Record process memory and allocation counters with optional state."""
        if self._recording("memory"):
            data = process_memory().with_items(*state_details(state).items())
            self._add_event(EventKind.MEMORY, label, data)

    def system_context(self, label: str) -> None:
        """Record who and where the process runs and how loaded the host is."""
        if not self._recording("system_context"):
            return
        cwd = os.getcwd()
        data = Details(
            (
                ("user", self._identity.user),
                ("host", self._identity.host),
                ("shell", os.environ.get("SHELL", UNKNOWN)),
                ("home", os.path.expanduser("~")),
                ("cwd", cwd),
                ("python", sys.version.split()[0]),
                ("cpus", os.cpu_count() or UNKNOWN),
            )
        )
        data = data.with_items(*system_metrics(cwd).items())
        self._add_event(EventKind.SYSTEM_CONTEXT, label, data)

    def report(self) -> DebugReport:
        """Frozen view of the session so far.

        Raises:
            InspectorStateError: If the inspector was never enabled.
        """
        if self._started is None:
            raise InspectorStateError("inspector was never enabled")
        final_health = None
        if self._logger is not None and self._logger.declared_total is not None:
            final_health = self._logger.health
        return DebugReport(
            component=self._component,
            context_id=self._context_id,
            identity=self._identity,
            level=self._level,
            started=self._started,
            finished=self._clock(),
            context=self._context,
            initial_state=self._initial,
            final_state=self._final,
            events=tuple(self._events),
            expected_checks=tuple(self._checks),
            final_health=final_health,
        )

    def render(self) -> str:
        """Render the session once, gated by the inspection level.

        Raises:
            InspectorStateError: If the inspector is disabled or already rendered.
        """
        # @tra: Inspector.Render
        if self._state is InspectorState.RENDERED:
            raise InspectorStateError("inspector already rendered")
        if self._state is InspectorState.DISABLED:
            raise InspectorStateError("cannot render a disabled inspector")
        text = render_report(self.report(), self._config.format)
        self._state = InspectorState.RENDERED
        return text

    def close(self) -> None:
        """Render the session and append it to the debug sink.

        Does nothing when the inspector is disabled or already rendered.
        """
        if self._state in (InspectorState.DISABLED, InspectorState.RENDERED):
            return
        text = self.render()
        sink = self._sink
        if sink is None:
            assert self._started is not None
            path = self._config.debug_path_for(self._component, self._started)
            sink = FileLogSink(path)
        try:
            sink.write(text)
        except Exception as e:
            _log.warning("debug sink %r failed, writing to stderr: %s", sink, e)
            StderrSink().write(text)

    def _recording(self, operation: str) -> bool:
        if self._state is InspectorState.RENDERED:
            raise InspectorStateError(f"{operation} called after render")
        if self._state is InspectorState.DISABLED:
            return False
        self._state = InspectorState.RECORDING
        return True

    def _add_event(
        self,
        kind: EventKind,
        label: str,
        data: Details,
        timestamp: float | None = None,
    ) -> None:
        if timestamp is None:
            timestamp = self._clock()
        self._events.append(InspectionEvent(timestamp, kind, label, data))
