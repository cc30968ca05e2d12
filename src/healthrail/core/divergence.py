"""Divergence classification for expected versus actual values.

Numeric comparisons are graded by the size of the gap relative to the
expected value::

    ratio = |actual - expected| / max(|expected|, 1)

Under-performance (actual below expected):

    ratio < 0.25  LOW
    ratio < 0.50  MEDIUM
    ratio < 1.00  HIGH
    otherwise     CRITICAL   (everything expected was lost, or worse)

Over-performance (actual above expected) is its own kind and never reaches
CRITICAL:

    ratio < 0.50  LOW
    ratio < 2.00  MEDIUM
    otherwise     HIGH

Non-numeric values that differ are a MISMATCH of HIGH severity.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum, StrEnum
from typing import Any


class DivergenceKind(StrEnum):
    """Direction of a divergence."""

    NONE = "none"
    UNDER = "under-performance"
    OVER = "over-performance"
    MISMATCH = "mismatch"


class Severity(IntEnum):
    """Ordered severity of a divergence (higher is worse)."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        return "no divergence" if self is Severity.NONE else self.name.lower()


UNDER_BANDS: tuple[tuple[float, Severity], ...] = (
    (0.25, Severity.LOW),
    (0.50, Severity.MEDIUM),
    (1.00, Severity.HIGH),
)
OVER_BANDS: tuple[tuple[float, Severity], ...] = (
    (0.50, Severity.LOW),
    (2.00, Severity.MEDIUM),
)


@dataclass(frozen=True)
class Divergence:
    """Result of comparing an expected and an actual value.

    Attributes:
        kind: Direction of the gap.
        severity: Graded size of the gap.
        gap: ``actual - expected`` for numeric values, None otherwise.
        ratio: Gap relative to the expected value, None for non-numeric values.
    """

    kind: DivergenceKind
    severity: Severity
    gap: float | None = None
    ratio: float | None = None

    @property
    def matches(self) -> bool:
        return self.kind is DivergenceKind.NONE

    def describe(self) -> str:
        """Short text such as "over-performance, medium" or "no divergence"."""
        if self.matches:
            return Severity.NONE.label
        return f"{self.kind.value}, {self.severity.label}"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _grade(
    ratio: float, bands: tuple[tuple[float, Severity], ...], top: Severity
) -> Severity:
    for limit, severity in bands:
        if ratio < limit:
            return severity
    return top


def classify_divergence(
    expected: Any,
    actual: Any,
    equivalent: Callable[[Any, Any], bool] | None = None,
) -> Divergence:
    """Classify the gap between ``expected`` and ``actual``.

    Args:
        expected: The value the caller expected.
        actual: The value that was observed.
        equivalent: Optional equality predicate replacing ``==``.

    Returns:
        A Divergence carrying kind and severity.
    """
    # @tra: Core.Divergence.Classify
    same = equivalent(expected, actual) if equivalent else expected == actual
    if same:
        if _is_number(expected) and _is_number(actual):
            gap = actual - expected
            return Divergence(DivergenceKind.NONE, Severity.NONE, gap, 0.0)
        return Divergence(DivergenceKind.NONE, Severity.NONE)

    if not (_is_number(expected) and _is_number(actual)):
        return Divergence(DivergenceKind.MISMATCH, Severity.HIGH)

    gap = actual - expected
    ratio = abs(gap) / max(abs(expected), 1)
    if gap < 0:
        severity = _grade(ratio, UNDER_BANDS, Severity.CRITICAL)
        return Divergence(DivergenceKind.UNDER, severity, gap, ratio)
    if gap > 0:
        severity = _grade(ratio, OVER_BANDS, Severity.HIGH)
        return Divergence(DivergenceKind.OVER, severity, gap, ratio)
    # Numerically equal but rejected by the caller's predicate.
    return Divergence(DivergenceKind.MISMATCH, Severity.LOW, 0, 0.0)
