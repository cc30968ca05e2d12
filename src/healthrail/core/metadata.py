"""Failure classification and recovery hints attached to records.

Metadata answers "what broke and how might it be fixed"; the health score
answers "how healthy was this run". A single record may carry both. A
separate analysis process reads records whose recovery hint is
``automated_fix`` and dispatches the routine named by ``recovery_strategy``
with ``recovery_params``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from healthrail.core.errors import MetadataError
from healthrail.core.models import Details, DetailsInput


class RecoveryHint(StrEnum):
    """Whether a failure is believed remediable, and by whom."""

    NONE = "none"
    MANUAL = "manual"
    AUTOMATED_FIX = "automated_fix"


@dataclass(frozen=True)
class Metadata:
    """Structured annotation for a failing or noteworthy record.

    Attributes:
        operation_type: Coarse classification (e.g. "file_validation").
        operation_subtype: Fine classification (e.g. "permission_check").
        error_type: Error classification, set on failures only.
        error_details: Structured error context.
        recovery_hint: Whether and how the failure can be remediated.
        recovery_strategy: Name of the remediation routine (automated_fix only).
        recovery_params: Parameters for that routine (automated_fix only).
        expected: Expected state, when the failure is a state mismatch.
        actual: Observed state, when the failure is a state mismatch.
    """

    operation_type: str = ""
    operation_subtype: str = ""
    error_type: str = ""
    error_details: Details = field(default_factory=Details)
    recovery_hint: RecoveryHint = RecoveryHint.NONE
    recovery_strategy: str = ""
    recovery_params: Details = field(default_factory=Details)
    expected: Details = field(default_factory=Details)
    actual: Details = field(default_factory=Details)

    def __post_init__(self) -> None:
        # Accept plain mappings for the structured fields.
        for name in ("error_details", "recovery_params", "expected", "actual"):
            value = getattr(self, name)
            if not isinstance(value, Details):
                object.__setattr__(self, name, Details.of(value))
        if not isinstance(self.recovery_hint, RecoveryHint):
            try:
                hint = RecoveryHint(self.recovery_hint)
            except ValueError as e:
                raise MetadataError(
                    f"unknown recovery hint {self.recovery_hint!r}"
                ) from e
            object.__setattr__(self, "recovery_hint", hint)

        if self.recovery_hint is RecoveryHint.AUTOMATED_FIX:
            if not self.recovery_strategy:
                raise MetadataError("automated_fix requires a recovery_strategy")
        elif self.recovery_strategy or self.recovery_params:
            raise MetadataError(
                "recovery_strategy and recovery_params are only valid "
                f"with automated_fix, not {self.recovery_hint.value}"
            )

    @property
    def is_auto_recoverable(self) -> bool:
        """True when a remediation routine can be dispatched for this failure."""
        return self.recovery_hint is RecoveryHint.AUTOMATED_FIX

    def to_details(self) -> Details:
        """Flatten the populated fields into ordered Details for rendering."""
        pairs: list[tuple[str, object]] = []
        for name in ("operation_type", "operation_subtype", "error_type"):
            value = getattr(self, name)
            if value:
                pairs.append((name, value))
        if self.error_details:
            pairs.append(("error_details", self.error_details))
        pairs.append(("recovery_hint", self.recovery_hint.value))
        if self.recovery_strategy:
            pairs.append(("recovery_strategy", self.recovery_strategy))
        if self.recovery_params:
            pairs.append(("recovery_params", self.recovery_params))
        if self.expected:
            pairs.append(("expected", self.expected))
        if self.actual:
            pairs.append(("actual", self.actual))
        return Details(pairs)

    @classmethod
    def from_details(cls, data: DetailsInput) -> Metadata:
        """Rebuild Metadata from the mapping produced by ``to_details``."""
        details = Details.of(data)

        def _nested(key: str) -> Details:
            value = details.get(key)
            return value if isinstance(value, Details) else Details()

        return cls(
            operation_type=str(details.get("operation_type", "")),
            operation_subtype=str(details.get("operation_subtype", "")),
            error_type=str(details.get("error_type", "")),
            error_details=_nested("error_details"),
            recovery_hint=RecoveryHint(str(details.get("recovery_hint", "none"))),
            recovery_strategy=str(details.get("recovery_strategy", "")),
            recovery_params=_nested("recovery_params"),
            expected=_nested("expected"),
            actual=_nested("actual"),
        )
