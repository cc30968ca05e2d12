"""Core domain models for health-scored log records."""

from __future__ import annotations

import getpass
import os
import socket
import time
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from healthrail.core.metadata import Metadata

UNKNOWN = "unknown"

DetailValue = Union[str, int, float, bool, "Details"]
DetailsInput = Union[
    "Details", Mapping[str, object], Iterable[tuple[str, object]], None
]


class LogLevel(StrEnum):
    """Kind of a log record."""

    CHECK = "CHECK"
    OPERATION = "OPERATION"
    CONTEXT = "CONTEXT"
    EVENT = "EVENT"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"


def _coerce_value(key: str, value: object) -> DetailValue:
    if isinstance(value, (str, bool, int, float, Details)):
        return value
    if isinstance(value, Mapping):
        return Details.of(value)
    raise TypeError(
        f"detail {key!r} has unsupported type {type(value).__name__}; "
        "expected str, int, float, bool or a nested mapping"
    )


class Details(Mapping[str, DetailValue]):
    """Ordered, immutable key/value pairs attached to a record.

    Values are limited to str, int, float, bool and nested Details so that
    every record renders deterministically. Re-assigning a key keeps its
    first position and the last value.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[tuple[str, object]] = ()) -> None:
        ordered: dict[str, DetailValue] = {}
        for key, value in items:
            if not isinstance(key, str):
                raise TypeError(f"detail keys must be str, got {type(key).__name__}")
            ordered[key] = _coerce_value(key, value)
        self._items: tuple[tuple[str, DetailValue], ...] = tuple(ordered.items())

    @classmethod
    def of(cls, data: DetailsInput = None) -> Details:
        """Build Details from a mapping, an iterable of pairs, or None."""
        if data is None:
            return cls()
        if isinstance(data, Details):
            return data
        if isinstance(data, Mapping):
            return cls(data.items())
        return cls(data)

    def with_items(self, *pairs: tuple[str, object]) -> Details:
        """Return a copy with the given pairs appended (or replaced)."""
        return Details((*self._items, *pairs))

    def to_dict(self) -> dict[str, object]:
        """Plain nested dict, suitable for JSON encoding."""
        return {
            key: value.to_dict() if isinstance(value, Details) else value
            for key, value in self._items
        }

    def __getitem__(self, key: str) -> DetailValue:
        for item_key, value in self._items:
            if item_key == key:
                return value
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return (key for key, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __hash__(self) -> int:
        # Mapping equality ignores order, so the hash must too.
        return hash(frozenset(self._items))

    def __repr__(self) -> str:
        return f"Details({list(self._items)!r})"


@dataclass(frozen=True)
class Identity:
    """Who produced a record: user, host and process id."""

    user: str
    host: str
    pid: int

    @classmethod
    def current(cls) -> Identity:
        """Capture the identity of the running process."""
        try:
            user = getpass.getuser()
        except (KeyError, OSError):
            user = os.environ.get("USER") or UNKNOWN
        try:
            host = socket.gethostname() or UNKNOWN
        except OSError:
            host = UNKNOWN
        return cls(user=user, host=host, pid=os.getpid())

    @classmethod
    def parse(cls, text: str) -> Identity:
        """Parse the ``user@host:pid`` form produced by ``str()``."""
        user, _, rest = text.strip().partition("@")
        host, _, pid = rest.rpartition(":")
        try:
            return cls(user=user, host=host, pid=int(pid))
        except ValueError:
            return cls(user=user, host=rest, pid=0)

    def __str__(self) -> str:
        return f"{self.user}@{self.host}:{self.pid}"


def new_context_id(component: str, pid: int | None = None) -> str:
    """Create an id unique to one process invocation of a component."""
    if pid is None:
        pid = os.getpid()
    return f"{component}-{pid}-{time.time_ns()}"


@dataclass(frozen=True)
class LogEntry:
    """A structured, health-scored log record.

    Attributes:
        timestamp: Unix timestamp in seconds.
        level: Kind of record.
        component: Name of the component that emitted the record.
        identity: user@host:pid of the emitting process.
        context_id: Id shared by every record of one process run.
        event: Human description of what happened.
        delta: Signed health points attributed to this record.
        raw_health: Cumulative score after this record.
        normalized_health: Percentage of the declared total after this record.
        details: Ordered structured fields.
        metadata: Optional failure classification and recovery hints.
        passed: Outcome for checks and failures, None for other records.
    """

    timestamp: float
    level: LogLevel
    component: str
    identity: Identity
    context_id: str
    event: str
    delta: int = 0
    raw_health: int = 0
    normalized_health: int = 0
    details: Details = field(default_factory=Details)
    metadata: Metadata | None = None
    passed: bool | None = None
