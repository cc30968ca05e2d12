"""Health-scored logger.

A Logger belongs to one component of one process run. Every scoring call
contributes a signed delta to the run's health score, and every call appends
one complete record to the configured sink.

Example:
    ```python
    from healthrail import Logger, Metadata

    logger = Logger("validate")
    logger.declare_health_total(100)
    logger.check("config file present", True, 40)
    logger.failure_with_metadata(
        "log directory writable",
        "permission denied",
        -90,
        {"path": "/var/log/app"},
        Metadata(
            operation_type="file_validation",
            error_type="permission_denied",
            recovery_hint="automated_fix",
            recovery_strategy="fix_permissions",
            recovery_params={"mode": "0755"},
        ),
    )
    print(logger.health)
    ```
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
import traceback
from collections.abc import Callable

from healthrail.adapters.sinks import FileLogSink, StderrSink
from healthrail.config import HealthRailConfig
from healthrail.core.encoding.ndjson import encode_entry
from healthrail.core.encoding.template import render_entry
from healthrail.core.health import HealthSession
from healthrail.core.metadata import Metadata
from healthrail.core.models import (
    Details,
    DetailsInput,
    Identity,
    LogEntry,
    LogLevel,
    new_context_id,
)
from healthrail.core.ports import LogSinkPort

_log = logging.getLogger(__name__)

ANNOTATION_LEVELS = frozenset(
    {LogLevel.INFO, LogLevel.WARNING, LogLevel.ERROR, LogLevel.DEBUG}
)


def _require_bool(name: str, value: object) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be a bool, got {type(value).__name__}")
    return value


def _require_metadata(value: object) -> Metadata:
    if not isinstance(value, Metadata):
        raise TypeError(f"metadata must be Metadata, got {type(value).__name__}")
    return value


def _output_text(output: str | bytes | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        output = output.decode("utf-8", errors="replace")
    return output.rstrip("\n")


class Logger:
    """Structured, health-scored logger for one component.

    Args:
        component: Name of the emitting component; also selects the log file.
        config: Settings; defaults to ``HealthRailConfig()``.
        sink: Destination for rendered records. Defaults to the component's
            routed log file.
        clock: Source of Unix timestamps.
        identity: user@host:pid to stamp on records; defaults to this process.
        context_id: Id shared by every record of this run.
    """

    def __init__(
        self,
        component: str,
        *,
        config: HealthRailConfig | None = None,
        sink: LogSinkPort | None = None,
        clock: Callable[[], float] = time.time,
        identity: Identity | None = None,
        context_id: str | None = None,
    ) -> None:
        self._component = component
        self._config = config if config is not None else HealthRailConfig()
        self._definition = self._config.format
        if sink is None:
            sink = FileLogSink(
                self._config.log_path_for(component),
                rotation=self._config.rotation.policy(),
            )
        self._sink = sink
        self._fallback = StderrSink()
        self._clock = clock
        self._identity = identity if identity is not None else Identity.current()
        self._context_id = context_id or new_context_id(component, self._identity.pid)
        self._health = HealthSession()
        self._entries: list[LogEntry] = []

    @property
    def component(self) -> str:
        return self._component

    @property
    def context_id(self) -> str:
        return self._context_id

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def config(self) -> HealthRailConfig:
        return self._config

    @property
    def sink(self) -> LogSinkPort:
        return self._sink

    @property
    def health(self) -> int:
        """Current normalized health; may exceed 100 or drop below 0."""
        return self._health.normalized

    def get_health(self) -> int:
        return self._health.normalized

    @property
    def raw_health(self) -> int:
        return self._health.cumulative_score

    @property
    def declared_total(self) -> int | None:
        return self._health.declared_total

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        """Entries emitted by this logger, oldest first."""
        return tuple(self._entries)

    def recoverable_failures(self) -> list[LogEntry]:
        """Entries whose metadata names an automated fix."""
        return [
            entry
            for entry in self._entries
            if entry.metadata is not None and entry.metadata.is_auto_recoverable
        ]

    def declare_health_total(self, total: int) -> None:
        """Declare the total achievable points. Must precede any scoring call."""
        self._health.declare_total(total)

    def check(
        self, label: str, passed: bool, delta: int, details: DetailsInput = None
    ) -> None:
        """Record a validation result.

        ``passed`` and the sign of ``delta`` are independent: a passing check
        may cost points and a failing one may still earn some.
        """
        # @tra: Logger.Check
        self._emit(
            LogLevel.CHECK,
            self._definition.message("check", label=label),
            delta,
            Details.of(details).with_items(("result", _require_bool("passed", passed))),
            passed=passed,
        )

    def check_with_metadata(
        self,
        label: str,
        passed: bool,
        delta: int,
        details: DetailsInput,
        metadata: Metadata,
    ) -> None:
        """Record a validation result with failure classification and recovery hints."""
        # @tra: Logger.CheckWithMetadata
        self._emit(
            LogLevel.CHECK,
            self._definition.message("check", label=label),
            delta,
            Details.of(details).with_items(("result", _require_bool("passed", passed))),
            metadata=_require_metadata(metadata),
            passed=passed,
        )

    def failure(
        self, label: str, reason: str, delta: int, details: DetailsInput = None
    ) -> None:
        """Record a failure without recovery metadata."""
        self._emit(
            LogLevel.ERROR,
            label,
            delta,
            Details.of(details).with_items(("reason", reason)),
            passed=False,
        )

    def failure_with_metadata(
        self,
        label: str,
        reason: str,
        delta: int,
        details: DetailsInput,
        metadata: Metadata,
    ) -> None:
        """Record a failure with classification and recovery hints."""
        # @tra: Logger.FailureWithMetadata
        self._emit(
            LogLevel.ERROR,
            label,
            delta,
            Details.of(details).with_items(("reason", reason)),
            metadata=_require_metadata(metadata),
            passed=False,
        )

    def operation(self, name: str, delta: int, description: str = "") -> None:
        """Record the start of a unit of work."""
        # @tra: Logger.Operation
        details = Details((("description", description),)) if description else Details()
        self._emit(
            LogLevel.OPERATION,
            self._definition.message("operation", name=name),
            delta,
            details,
        )

    def snapshot_state(self, label: str, delta: int) -> None:
        """Record a named point-in-time context marker."""
        # @tra: Logger.SnapshotState
        self._emit(
            LogLevel.CONTEXT, self._definition.message("snapshot", label=label), delta
        )

    def success(self, message: str, delta: int, details: DetailsInput = None) -> None:
        """Record a positive outcome. Earlier negative deltas still count."""
        # @tra: Logger.Success
        self._emit(LogLevel.EVENT, message, delta, Details.of(details))

    def success_with_metadata(
        self,
        message: str,
        delta: int,
        details: DetailsInput,
        metadata: Metadata,
    ) -> None:
        """Record a positive outcome classified for downstream tooling."""
        self._emit(
            LogLevel.EVENT,
            message,
            delta,
            Details.of(details),
            metadata=_require_metadata(metadata),
        )

    def error(self, event: str, exc: BaseException, delta: int) -> None:
        """Record a caught exception with its type, message and traceback."""
        trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        self._emit(
            LogLevel.ERROR,
            event,
            delta,
            Details(
                (
                    ("exception_type", type(exc).__name__),
                    ("exception_message", str(exc)),
                    ("traceback", trace.rstrip("\n")),
                )
            ),
            passed=False,
        )

    def debug(self, event: str, delta: int, state: DetailsInput = None) -> None:
        """Record development detail, scored like any other entry."""
        self._emit(LogLevel.DEBUG, event, delta, Details.of(state))

    def info(self, message: str, details: DetailsInput = None) -> None:
        """Record an unscored annotation."""
        self.annotate(LogLevel.INFO, message, details)

    def warning(self, message: str, details: DetailsInput = None) -> None:
        """Record an unscored warning."""
        self.annotate(LogLevel.WARNING, message, details)

    def annotate(
        self, level: LogLevel, message: str, details: DetailsInput = None
    ) -> None:
        """Record an entry that does not touch the health score.

        Annotations do not require a declared total.

        Raises:
            ValueError: If ``level`` is not INFO, WARNING, ERROR or DEBUG.
        """
        level = LogLevel(level)
        if level not in ANNOTATION_LEVELS:
            raise ValueError(f"{level.value} entries must be scored")
        self._emit(level, message, 0, Details.of(details), scored=False)

    def run_command(
        self,
        command: str,
        *args: str,
        description: str | None = None,
        success_delta: int = 10,
        failure_delta: int = -10,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run a command and log its lifecycle.

        Logs an OPERATION before the command runs, then an EVENT on exit code
        0 or an ERROR otherwise, with the exit code, duration and output. A
        command that cannot be found is reported with exit code 127 and a
        command that times out with exit code 124.

        Returns:
            The completed process; the caller decides what a failure means.
        """
        argv = [command, *args]
        label = description or shlex.join(argv)
        self.operation(label, 0)

        started = time.monotonic()
        try:
            completed = subprocess.run(
                argv, capture_output=True, text=True, check=False, timeout=timeout
            )
        except FileNotFoundError as e:
            completed = subprocess.CompletedProcess(argv, 127, stdout="", stderr=str(e))
        except subprocess.TimeoutExpired as e:
            completed = subprocess.CompletedProcess(
                argv, 124, stdout=_output_text(e.stdout), stderr=_output_text(e.stderr)
            )
        duration_ms = int((time.monotonic() - started) * 1000)

        details = Details(
            (
                ("command", shlex.join(argv)),
                ("exit_code", completed.returncode),
                ("duration_ms", duration_ms),
            )
        )
        if completed.returncode == 0:
            self.success(
                self._definition.message("command_success", command=label),
                success_delta,
                details,
            )
        else:
            streams = (_output_text(completed.stdout), _output_text(completed.stderr))
            output = "\n".join(part for part in streams if part)
            self.failure(
                self._definition.message("command_failure", command=label),
                f"exit code {completed.returncode}",
                failure_delta,
                details.with_items(("output", output)),
            )
        return completed

    def _emit(
        self,
        level: LogLevel,
        event: str,
        delta: int,
        details: Details = Details(),
        *,
        metadata: Metadata | None = None,
        passed: bool | None = None,
        scored: bool = True,
    ) -> None:
        if scored:
            raw = self._health.apply(delta)
        else:
            raw = self._health.cumulative_score
        entry = LogEntry(
            timestamp=self._clock(),
            level=level,
            component=self._component,
            identity=self._identity,
            context_id=self._context_id,
            event=event,
            delta=delta,
            raw_health=raw,
            normalized_health=self._health.normalized,
            details=details,
            metadata=metadata,
            passed=passed,
        )
        self._entries.append(entry)
        self._write(entry)

    def _write(self, entry: LogEntry) -> None:
        if self._definition.encoding == "ndjson":
            record = encode_entry(entry)
        else:
            record = render_entry(entry, self._definition)
        try:
            self._sink.write(record)
        except Exception as e:
            _log.warning("log sink %r failed, writing to stderr: %s", self._sink, e)
            self._fallback.write(record)
