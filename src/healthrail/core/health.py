"""Health accumulator: declared total, running score, normalized percentage."""

from __future__ import annotations

from healthrail.core.errors import (
    HealthTotalAlreadyDeclaredError,
    HealthTotalError,
    HealthTotalNotDeclaredError,
)


def normalize(score: int, total: int) -> int:
    """Express ``score`` as a rounded percentage of ``total``.

    The result is not clamped: over-performance yields values above 100 and
    net damage yields negative values.
    """
    return round(score / total * 100)


class HealthSession:
    """Running health score for one process.

    The total must be declared exactly once, before the first delta is
    applied. Deltas are summed as given; they are never clamped to the
    declared total.
    """

    def __init__(self) -> None:
        self._declared_total: int | None = None
        self._cumulative = 0
        self._records = 0

    def declare_total(self, total: int) -> None:
        """Declare the total achievable health points.

        Raises:
            HealthTotalError: If ``total`` is not a positive integer.
            HealthTotalAlreadyDeclaredError: If a total was already declared.
        """
        # @tra: Core.Health.DeclareOnce
        if self._declared_total is not None:
            raise HealthTotalAlreadyDeclaredError(
                f"health total already declared as {self._declared_total}"
            )
        if isinstance(total, bool) or not isinstance(total, int):
            raise HealthTotalError(
                f"health total must be an int, got {type(total).__name__}"
            )
        if total <= 0:
            raise HealthTotalError(f"health total must be positive, got {total}")
        self._declared_total = total

    def apply(self, delta: int) -> int:
        """Add a signed delta and return the new cumulative score.

        Raises:
            HealthTotalNotDeclaredError: If no total has been declared yet.
        """
        # @tra: Core.Health.Accumulate
        if self._declared_total is None:
            raise HealthTotalNotDeclaredError(
                "declare the health total before recording scored entries"
            )
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise TypeError(f"health delta must be an int, got {type(delta).__name__}")
        self._cumulative += delta
        self._records += 1
        return self._cumulative

    @property
    def is_declared(self) -> bool:
        return self._declared_total is not None

    @property
    def declared_total(self) -> int | None:
        return self._declared_total

    @property
    def cumulative_score(self) -> int:
        return self._cumulative

    @property
    def records(self) -> int:
        """Number of scored records applied so far."""
        return self._records

    @property
    def normalized(self) -> int:
        """Current score as a percentage of the declared total (0 if undeclared)."""
        if self._declared_total is None:
            return 0
        return normalize(self._cumulative, self._declared_total)
