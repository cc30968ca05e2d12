"""Data captured by an Inspector and handed to the template layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Any

from healthrail.core.divergence import Divergence
from healthrail.core.models import Details, Identity


class InspectionLevel(IntEnum):
    """How much of a debug session is rendered."""

    BASIC = 1
    DETAILED = 2
    VERBOSE = 3


class EventKind(StrEnum):
    """Kind of a timeline event."""

    SNAPSHOT = "SNAPSHOT"
    EXPECTED_STATE = "EXPECTED_STATE"
    DIVERGENCE = "DIVERGENCE"
    CHECKPOINT = "CHECKPOINT"
    CONDITIONAL = "CONDITIONAL"
    TIMING = "TIMING"
    SLOW_TIMING = "SLOW_TIMING"
    COUNTER = "COUNTER"
    COUNT_DIVERGENCE = "COUNT_DIVERGENCE"
    FLOW = "FLOW"
    UNEXPECTED_FLOW = "UNEXPECTED_FLOW"
    CALL_STACK = "CALL_STACK"
    MEMORY = "MEMORY"
    SYSTEM_CONTEXT = "SYSTEM_CONTEXT"


@dataclass(frozen=True)
class StateSnapshot:
    """A named point-in-time state."""

    timestamp: float
    label: str
    state: Details = field(default_factory=Details)


@dataclass(frozen=True)
class InspectionEvent:
    """One entry of the chronological timeline."""

    timestamp: float
    kind: EventKind
    label: str
    data: Details = field(default_factory=Details)


@dataclass(frozen=True)
class ExpectedStateCheck:
    """An explicit expected-versus-actual comparison."""

    timestamp: float
    label: str
    expected: Any
    actual: Any
    context: Details
    divergence: Divergence

    @property
    def passed(self) -> bool:
        return self.divergence.matches


@dataclass(frozen=True)
class DebugReport:
    """Frozen view of a finished debug session."""

    component: str
    context_id: str
    identity: Identity
    level: InspectionLevel
    started: float
    finished: float
    context: Details
    initial_state: StateSnapshot | None
    final_state: StateSnapshot | None
    events: tuple[InspectionEvent, ...] = ()
    expected_checks: tuple[ExpectedStateCheck, ...] = ()
    final_health: int | None = None

    @property
    def duration_ms(self) -> int:
        return max(0, int(round((self.finished - self.started) * 1000)))
