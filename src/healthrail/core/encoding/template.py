"""Text rendering of log entries and debug reports.

Rendering is driven entirely by a FormatDefinition and is pure: the same
entry and the same definition always produce byte-identical output.
Timestamps are rendered in UTC so output does not depend on the host's
timezone.
"""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime

from healthrail.core.divergence import DivergenceKind, Severity
from healthrail.core.format import FormatDefinition
from healthrail.core.models import Details, LogEntry
from healthrail.core.report import DebugReport, InspectionLevel, StateSnapshot


def format_timestamp(timestamp: float, definition: FormatDefinition) -> str:
    """Render a Unix timestamp at millisecond precision."""
    millis = int(timestamp * 1000)
    moment = datetime.fromtimestamp(millis // 1000, tz=UTC)
    return f"{moment.strftime(definition.timestamp_format)}.{millis % 1000:03d}"


def format_delta(delta: int) -> str:
    return f"+{delta}" if delta > 0 else str(delta)


def format_value(value: object) -> str:
    """Render a scalar detail value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float):
        return repr(value)
    return str(value)


def write_details(
    lines: list[str], details: Details, indent: str, depth: int = 0
) -> None:
    """Append ``key: value`` lines; nested Details are indented two more spaces."""
    prefix = indent + "  " * depth
    for key, value in details.items():
        if isinstance(value, Details):
            lines.append(f"{prefix}{key}:")
            write_details(lines, value, indent, depth + 1)
        elif isinstance(value, str) and "\n" in value:
            lines.append(f"{prefix}{key}: |")
            lines.extend(f"{prefix}  {line}" for line in value.split("\n"))
        else:
            lines.append(f"{prefix}{key}: {format_value(value)}")


def header_values(entry: LogEntry, definition: FormatDefinition) -> dict[str, str]:
    health = entry.normalized_health
    return {
        "timestamp": format_timestamp(entry.timestamp, definition),
        "level": entry.level.value,
        "component": entry.component,
        "identity": str(entry.identity),
        "context_id": entry.context_id,
        "health": str(health),
        "raw": str(entry.raw_health),
        "delta": format_delta(entry.delta),
        "indicator": definition.indicator_for(health),
        "bar": definition.bar_for(health),
        "band": definition.band_for(health).value,
    }


def render_entry(entry: LogEntry, definition: FormatDefinition) -> str:
    """Render one entry as a complete, newline-terminated text record."""
    # @tra: Core.Template.RenderEntry
    first, *rest = entry.event.split("\n")
    lines = [
        definition.header_template.format_map(header_values(entry, definition)),
        definition.event_template.format(event=first),
    ]
    # Later event lines are indented so they cannot read as a separator.
    lines.extend(definition.indent + line for line in rest)
    if entry.details:
        lines.append(definition.details_header)
        write_details(lines, entry.details, definition.indent)
    if entry.metadata is not None:
        lines.append(definition.metadata_header)
        write_details(lines, entry.metadata.to_details(), definition.indent)
    lines.append(definition.entry_separator)
    return "\n".join(lines) + "\n"


def _write_state(
    lines: list[str],
    title: str,
    snapshot: StateSnapshot | None,
    definition: FormatDefinition,
) -> None:
    if snapshot is None:
        lines.append(f"{title}: (not captured)")
        return
    lines.append(f"{title}: {snapshot.label}")
    lines.append(f"  captured: {format_timestamp(snapshot.timestamp, definition)}")
    write_details(lines, snapshot.state, "  ")


def _write_analysis(lines: list[str], report: DebugReport) -> None:
    checks = report.expected_checks
    diverged = [c for c in checks if not c.passed]
    lines.append(
        f"  expected-state checks: {len(checks)} "
        f"({len(checks) - len(diverged)} matched, {len(diverged)} diverged)"
    )
    if not diverged:
        return
    worst = max(diverged, key=lambda c: c.divergence.severity)
    lines.append(f"  most severe: {worst.label} ({worst.divergence.describe()})")
    counts = Counter(c.divergence.severity for c in diverged)
    lines.append(
        "  by severity: "
        + ", ".join(
            f"{severity.label}={counts[severity]}"
            for severity in sorted(counts, reverse=True)
            if severity is not Severity.NONE
        )
    )
    for kind in (DivergenceKind.UNDER, DivergenceKind.OVER, DivergenceKind.MISMATCH):
        labels = [c.label for c in diverged if c.divergence.kind is kind]
        if labels:
            lines.append(f"  {kind.value}: {', '.join(labels)}")


def render_report(report: DebugReport, definition: FormatDefinition) -> str:
    """Render a finished debug session, gated by the session's level.

    BASIC renders header, context, initial and final state and footer.
    DETAILED adds the event timeline; VERBOSE adds the analysis section.
    """
    # @tra: Core.Template.RenderReport
    layout = definition.debug
    border = layout.border_char * layout.width
    final_health = "n/a" if report.final_health is None else f"{report.final_health}%"

    lines = [
        border,
        f"  {layout.title.format(component=report.component)}",
        f"  Context ID: {report.context_id}",
        f"  PID: {report.identity.pid}",
        f"  Started: {format_timestamp(report.started, definition)}",
        f"  Level: {report.level.name}",
        border,
        f"{layout.context_title}:",
        f"  identity: {report.identity}",
    ]
    write_details(lines, report.context, "  ")
    _write_state(lines, layout.initial_title, report.initial_state, definition)

    if report.level >= InspectionLevel.DETAILED:
        lines.append(f"{layout.events_title}:")
        for event in report.events:
            stamp = format_timestamp(event.timestamp, definition)
            lines.append(f"  [{stamp}] {event.kind.value} {event.label}")
            write_details(lines, event.data, "    ")

    _write_state(lines, layout.final_title, report.final_state, definition)

    if report.level >= InspectionLevel.VERBOSE:
        lines.append(f"{layout.analysis_title}:")
        _write_analysis(lines, report)

    lines.extend(
        [
            border,
            f"  Context ID: {report.context_id}",
            f"  Duration: {report.duration_ms}ms",
            f"  Final Health: {final_health}",
            border,
        ]
    )
    return "\n".join(lines) + "\n"
