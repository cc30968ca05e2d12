"""Read rendered debug reports back into structured form.

A debug file holds one or more reports, each framed by a header and a
footer between border lines. Section titles and the border come from the
same DebugLayout that rendered the report. Values are strings (or nested
dicts), as in log parsing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from healthrail.core.encoding.parsing import (
    ParsedValue,
    parse_block,
    parse_timestamp,
    template_pattern,
)
from healthrail.core.format import FormatDefinition

_EVENT_LINE = re.compile(r"  \[(?P<stamp>[^\]]*)\] (?P<kind>\S+) ?(?P<label>.*)")
_NOT_CAPTURED = "(not captured)"
_CAPTURED_PREFIX = "  captured: "


@dataclass
class ParsedState:
    label: str
    captured: float | None = None
    state: dict[str, ParsedValue] = field(default_factory=dict)


@dataclass
class ParsedEvent:
    timestamp: float | None
    kind: str
    label: str
    data: dict[str, ParsedValue] = field(default_factory=dict)


@dataclass
class ParsedReport:
    """A debug session reconstructed from its rendered text.

    Sections the report's level did not render stay empty.
    """

    component: str = ""
    context_id: str = ""
    pid: int | None = None
    started: float | None = None
    level: str = ""
    context: dict[str, ParsedValue] = field(default_factory=dict)
    initial_state: ParsedState | None = None
    events: list[ParsedEvent] = field(default_factory=list)
    final_state: ParsedState | None = None
    analysis: list[str] = field(default_factory=list)
    duration_ms: int | None = None
    final_health: int | None = None


def _int_prefix(text: str) -> int | None:
    match = re.match(r"-?\d+", text.strip())
    return int(match.group()) if match else None


def _parse_state(
    label: str, lines: list[str], definition: FormatDefinition
) -> ParsedState | None:
    if label == _NOT_CAPTURED:
        return None
    captured = None
    if lines and lines[0].startswith(_CAPTURED_PREFIX):
        captured = parse_timestamp(lines[0][len(_CAPTURED_PREFIX) :], definition)
        lines = lines[1:]
    return ParsedState(label, captured, parse_block(lines))


class _ReportReader:
    """Line-by-line state machine over one or more rendered reports."""

    def __init__(self, definition: FormatDefinition) -> None:
        self._definition = definition
        layout = definition.debug
        self._border = layout.border_char * layout.width
        self._title_re = template_pattern(layout.title)
        self._titles = {
            layout.context_title: "context",
            layout.initial_title: "initial",
            layout.events_title: "events",
            layout.final_title: "final",
            layout.analysis_title: "analysis",
        }
        self.reports: list[ParsedReport] = []
        self._borders = 0
        self._report = ParsedReport()
        self._section = ""
        self._section_label = ""
        self._lines: list[str] = []
        self._event: ParsedEvent | None = None

    def feed(self, line: str) -> None:
        if line == self._border:
            self._on_border()
        elif self._borders % 4 == 1:
            self._on_header(line.strip())
        elif self._borders % 4 == 2:
            self._on_body(line)
        elif self._borders % 4 == 3:
            self._on_footer(line.strip())

    def finish(self) -> None:
        if self._borders % 4 == 2:
            self._close_section()
        if self._borders % 4 != 0:
            self.reports.append(self._report)

    def _on_border(self) -> None:
        phase = self._borders % 4
        if phase == 0:
            self._report = ParsedReport()
        elif phase == 2:
            self._close_section()
        elif phase == 3:
            self.reports.append(self._report)
        self._borders += 1

    def _on_header(self, text: str) -> None:
        report = self._report
        key, sep, value = text.partition(": ")
        if sep and key == "Context ID":
            report.context_id = value
        elif sep and key == "PID":
            report.pid = _int_prefix(value)
        elif sep and key == "Started":
            report.started = parse_timestamp(value, self._definition)
        elif sep and key == "Level":
            report.level = value
        else:
            match = self._title_re.fullmatch(text)
            if match:
                report.component = match.groupdict().get("component", "")

    def _on_body(self, line: str) -> None:
        if line and not line.startswith(" "):
            title, sep, rest = line.partition(":")
            if sep and title in self._titles:
                self._close_section()
                self._section = self._titles[title]
                self._section_label = rest.strip()
                return
        if self._section == "events":
            match = _EVENT_LINE.fullmatch(line)
            if match:
                self._close_event()
                self._event = ParsedEvent(
                    parse_timestamp(match["stamp"], self._definition),
                    match["kind"],
                    match["label"],
                )
                return
        self._lines.append(line)

    def _on_footer(self, text: str) -> None:
        key, sep, value = text.partition(": ")
        if not sep:
            return
        if key == "Duration":
            self._report.duration_ms = _int_prefix(value)
        elif key == "Final Health":
            self._report.final_health = _int_prefix(value)

    def _close_event(self) -> None:
        if self._event is not None:
            self._event.data = parse_block(self._lines)
            self._report.events.append(self._event)
        self._event = None
        self._lines = []

    def _close_section(self) -> None:
        report = self._report
        if self._section == "context":
            report.context = parse_block(self._lines)
        elif self._section == "initial":
            report.initial_state = _parse_state(
                self._section_label, self._lines, self._definition
            )
        elif self._section == "final":
            report.final_state = _parse_state(
                self._section_label, self._lines, self._definition
            )
        elif self._section == "events":
            self._close_event()
        elif self._section == "analysis":
            report.analysis = [line.strip() for line in self._lines if line.strip()]
        self._section = ""
        self._lines = []


def parse_debug_text(
    text: str, definition: FormatDefinition | None = None
) -> list[ParsedReport]:
    """Parse the text of a debug file into reports, in file order."""
    reader = _ReportReader(definition or FormatDefinition())
    for line in text.splitlines():
        reader.feed(line)
    reader.finish()
    return reader.reports


def read_debug_file(
    path: str | Path, definition: FormatDefinition | None = None
) -> list[ParsedReport]:
    """Read and parse a debug file.

    Raises:
        OSError: If the file cannot be read.
    """
    return parse_debug_text(Path(path).read_text(encoding="utf-8"), definition)
