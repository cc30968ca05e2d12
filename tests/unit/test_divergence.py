"""Tests for divergence classification."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from healthrail.core.divergence import (
    Divergence,
    DivergenceKind,
    Severity,
    classify_divergence,
)


@pytest.mark.core
class TestClassifyDivergence:
    """Tests for classify_divergence()."""

    @pytest.mark.tra("Core.Divergence.Classify")
    def test_total_loss_is_critical(self) -> None:
        """Expected 40, got 0: critical under-performance."""
        result = classify_divergence(40, 0)

        assert result.kind is DivergenceKind.UNDER
        assert result.severity is Severity.CRITICAL
        assert result.gap == -40
        assert result.ratio == 1.0

    @pytest.mark.tra("Core.Divergence.Classify")
    def test_equal_values_do_not_diverge(self) -> None:
        """Expected 15, got 15: no divergence."""
        result = classify_divergence(15, 15)

        assert result.kind is DivergenceKind.NONE
        assert result.severity is Severity.NONE
        assert result.matches is True
        assert result.describe() == "no divergence"

    @pytest.mark.tra("Core.Divergence.Classify")
    def test_over_performance_medium(self) -> None:
        """Expected 10, got 25: medium over-performance."""
        result = classify_divergence(10, 25)

        assert result.kind is DivergenceKind.OVER
        assert result.severity is Severity.MEDIUM
        assert result.describe() == "over-performance, medium"

    @pytest.mark.parametrize(
        ("expected", "actual", "severity"),
        [
            (100, 80, Severity.LOW),
            (100, 75, Severity.MEDIUM),
            (100, 51, Severity.MEDIUM),
            (100, 50, Severity.HIGH),
            (100, 1, Severity.HIGH),
            (100, 0, Severity.CRITICAL),
            (100, -50, Severity.CRITICAL),
        ],
    )
    def test_under_performance_bands(
        self, expected: int, actual: int, severity: Severity
    ) -> None:
        """Under-performance is graded by the lost fraction of expected."""
        result = classify_divergence(expected, actual)

        assert result.kind is DivergenceKind.UNDER
        assert result.severity is severity

    @pytest.mark.parametrize(
        ("expected", "actual", "severity"),
        [
            (100, 149, Severity.LOW),
            (100, 150, Severity.MEDIUM),
            (100, 299, Severity.MEDIUM),
            (100, 300, Severity.HIGH),
            (100, 10_000, Severity.HIGH),
        ],
    )
    def test_over_performance_bands(
        self, expected: int, actual: int, severity: Severity
    ) -> None:
        """Over-performance tops out at HIGH."""
        result = classify_divergence(expected, actual)

        assert result.kind is DivergenceKind.OVER
        assert result.severity is severity

    def test_zero_expected_uses_unit_denominator(self) -> None:
        """A zero expectation does not divide by zero."""
        result = classify_divergence(0, 3)

        assert result.kind is DivergenceKind.OVER
        assert result.ratio == 3.0
        assert result.severity is Severity.HIGH

    def test_floats_are_numeric(self) -> None:
        """Floats are graded like ints."""
        result = classify_divergence(2.0, 1.0)

        assert result.kind is DivergenceKind.UNDER
        assert result.severity is Severity.HIGH

    def test_non_numeric_mismatch(self) -> None:
        """Differing non-numeric values are a high mismatch."""
        result = classify_divergence("running", "stopped")

        assert result.kind is DivergenceKind.MISMATCH
        assert result.severity is Severity.HIGH
        assert result.gap is None

    def test_bools_are_not_numeric(self) -> None:
        """True versus False is a mismatch, not a gap of one."""
        result = classify_divergence(True, False)

        assert result.kind is DivergenceKind.MISMATCH

    def test_equivalent_predicate_replaces_equality(self) -> None:
        """A caller predicate can accept values that are not equal."""
        result = classify_divergence(
            "Running", "running", equivalent=lambda a, b: a.lower() == b.lower()
        )

        assert result.matches is True

    def test_predicate_rejecting_equal_numbers(self) -> None:
        """Equal numbers rejected by the predicate are a low mismatch."""
        result = classify_divergence(5, 5, equivalent=lambda a, b: False)

        assert result.kind is DivergenceKind.MISMATCH
        assert result.severity is Severity.LOW


@pytest.mark.core
class TestSeverity:
    """Tests for Severity ordering and labels."""

    def test_severities_are_ordered(self) -> None:
        """Severity compares by how bad it is."""
        assert Severity.NONE < Severity.LOW < Severity.MEDIUM
        assert Severity.MEDIUM < Severity.HIGH < Severity.CRITICAL

    def test_labels(self) -> None:
        """Labels are lowercase names, NONE reads as no divergence."""
        assert Severity.CRITICAL.label == "critical"
        assert Severity.NONE.label == "no divergence"

    def test_describe_includes_kind_and_severity(self) -> None:
        """describe() joins kind and severity."""
        divergence = Divergence(DivergenceKind.UNDER, Severity.CRITICAL, -40, 1.0)

        assert divergence.describe() == "under-performance, critical"


@pytest.mark.core
class TestClassifyDivergenceProperties:
    """Property tests for classify_divergence()."""

    @pytest.mark.tra("Core.Divergence.Property.Direction")
    @pytest.mark.tier(0)
    @given(
        expected=st.integers(min_value=-10_000, max_value=10_000),
        actual=st.integers(min_value=-10_000, max_value=10_000),
    )
    def test_direction_follows_gap(self, expected: int, actual: int) -> None:
        """The kind follows the sign of the gap and NONE means no gap."""
        result = classify_divergence(expected, actual)

        assert result.gap == actual - expected
        if actual < expected:
            assert result.kind is DivergenceKind.UNDER
        elif actual > expected:
            assert result.kind is DivergenceKind.OVER
        else:
            assert result.kind is DivergenceKind.NONE
        assert (result.severity is Severity.NONE) == result.matches
