"""Exceptions raised for contract violations.

Only programmer errors are raised. Failures to write a record are absorbed
by the sink layer, and failures of the instrumented work are recorded as
data, so neither appears here.
"""


class HealthRailError(Exception):
    """Base class for all healthrail contract violations."""


class HealthTotalError(HealthRailError, ValueError):
    """The declared health total is invalid (not a positive integer)."""


class HealthTotalAlreadyDeclaredError(HealthTotalError):
    """The health total was declared more than once."""


class HealthTotalNotDeclaredError(HealthRailError):
    """A scoring record was applied before the health total was declared."""


class MetadataError(HealthRailError, ValueError):
    """Recovery fields were combined in a way the recovery model forbids."""


class InspectorStateError(HealthRailError):
    """An Inspector operation was called in a state that does not allow it."""


class FormatDefinitionError(HealthRailError, ValueError):
    """A format definition document is malformed."""


class FormatVersionError(FormatDefinitionError):
    """A format definition declares a major version this runtime cannot render."""
