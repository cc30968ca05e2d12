"""Port interfaces for record sinks.

These protocols define the contract that sink adapters must implement.
The core depends only on this interface, not on concrete implementations.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class LogSinkPort(Protocol):
    """Port for appending rendered records.

    Adapters implementing this protocol receive one complete, already
    encoded record per call and must append it as a single unit.
    Examples: FileLogSink, InMemorySink, StderrSink.
    """

    def write(self, record: str) -> None:
        """Append one rendered record."""
        ...
