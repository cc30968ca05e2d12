"""Read text log files back into structured records.

Header and event lines are matched with patterns derived from the same
templates that rendered them, so any format definition whose placeholders
are separated by literal text can be parsed. Event lines after the first
are written with the definition's indent and joined back on read.
"""

from __future__ import annotations

import re
import string
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from healthrail.core.format import FormatDefinition
from healthrail.core.metadata import RecoveryHint

ParsedValue = str | dict[str, "ParsedValue"]


@dataclass
class ParsedRecord:
    """A log record reconstructed from text.

    Values inside ``details`` and ``metadata`` are strings (or nested dicts);
    the text format does not preserve value types.
    """

    header: dict[str, str]
    event: str = ""
    details: dict[str, ParsedValue] = field(default_factory=dict)
    metadata: dict[str, ParsedValue] = field(default_factory=dict)
    timestamp: float | None = None

    @property
    def level(self) -> str:
        return self.header.get("level", "")

    @property
    def component(self) -> str:
        return self.header.get("component", "")

    @property
    def context_id(self) -> str:
        return self.header.get("context_id", "")

    @property
    def health(self) -> int | None:
        return _int_or_none(self.header.get("health"))

    @property
    def raw_health(self) -> int | None:
        return _int_or_none(self.header.get("raw"))

    @property
    def delta(self) -> int | None:
        return _int_or_none(self.header.get("delta"))

    @property
    def recovery_strategy(self) -> str | None:
        """Strategy name when the record carries an automated-fix hint."""
        if self.metadata.get("recovery_hint") != RecoveryHint.AUTOMATED_FIX.value:
            return None
        strategy = self.metadata.get("recovery_strategy")
        return strategy if isinstance(strategy, str) else None


def _int_or_none(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def template_pattern(template: str) -> re.Pattern[str]:
    """Compile a ``str.format`` template into a pattern with named groups."""
    parts: list[str] = []
    for literal, name, _, _ in string.Formatter().parse(template):
        parts.append(re.escape(literal))
        if name is not None:
            parts.append(f"(?P<{name}>.*?)")
    return re.compile("".join(parts))


def parse_timestamp(text: str, definition: FormatDefinition) -> float | None:
    """Invert ``format_timestamp``; returns None when the text does not match."""
    base, _, millis = text.rpartition(".")
    try:
        moment = datetime.strptime(base, definition.timestamp_format)
        moment = moment.replace(tzinfo=UTC)
        return moment.timestamp() + int(millis) / 1000
    except ValueError:
        return None


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def parse_block(lines: list[str]) -> dict[str, ParsedValue]:
    """Parse indented ``key: value`` lines written by ``write_details``."""
    root: dict[str, ParsedValue] = {}
    # Stack of (indent, container) for nested mappings.
    stack: list[tuple[int, dict[str, ParsedValue]]] = [(-1, root)]
    index = 0
    while index < len(lines):
        line = lines[index]
        index += 1
        if not line.strip():
            continue
        indent = _indent_width(line)
        key, sep, value = line.strip().partition(":")
        if not sep:
            continue
        while len(stack) > 1 and indent <= stack[-1][0]:
            stack.pop()
        container = stack[-1][1]
        value = value[1:] if value.startswith(" ") else value
        if value == "|":
            block: list[str] = []
            while index < len(lines) and _indent_width(lines[index]) > indent:
                block.append(lines[index][indent + 2 :])
                index += 1
            container[key] = "\n".join(block)
        elif value == "":
            nested: dict[str, ParsedValue] = {}
            container[key] = nested
            stack.append((indent, nested))
        else:
            container[key] = value
    return root


def parse_log_text(
    text: str, definition: FormatDefinition | None = None
) -> list[ParsedRecord]:
    """Parse the text of a log file into records, in file order."""
    # @tra: Core.Parsing.LogText
    definition = definition or FormatDefinition()
    header_re = template_pattern(definition.header_template)
    event_re = template_pattern(definition.event_template)
    separator = definition.entry_separator.strip()
    details_header = definition.details_header.strip()
    metadata_header = definition.metadata_header.strip()

    records: list[ParsedRecord] = []
    current: ParsedRecord | None = None
    section: list[str] | None = None
    details_lines: list[str] = []
    metadata_lines: list[str] = []
    in_event = False

    def finish() -> None:
        nonlocal current, in_event
        if current is not None:
            current.details = parse_block(details_lines)
            current.metadata = parse_block(metadata_lines)
            records.append(current)
        current = None
        in_event = False
        details_lines.clear()
        metadata_lines.clear()

    for line in text.splitlines():
        if (
            in_event
            and current is not None
            and line.startswith(definition.indent)
            and line not in (definition.details_header, definition.metadata_header)
        ):
            current.event += "\n" + line[len(definition.indent) :]
            continue
        in_event = False
        match = header_re.fullmatch(line)
        if match:
            finish()
            header = match.groupdict()
            current = ParsedRecord(header=header)
            if "timestamp" in header:
                current.timestamp = parse_timestamp(header["timestamp"], definition)
            section = None
            continue
        if current is None:
            continue
        stripped = line.strip()
        if stripped == separator:
            finish()
            section = None
            continue
        if stripped == details_header:
            section = details_lines
            continue
        if stripped == metadata_header:
            section = metadata_lines
            continue
        event_match = event_re.fullmatch(line)
        if section is None and event_match:
            current.event = event_match.groupdict().get("event", "")
            in_event = True
            continue
        if section is not None:
            section.append(line)
    finish()
    return records


def read_log_file(
    path: str | Path, definition: FormatDefinition | None = None
) -> list[ParsedRecord]:
    """Read and parse a text log file.

    Raises:
        OSError: If the file cannot be read.
    """
    return parse_log_text(Path(path).read_text(encoding="utf-8"), definition)


def group_by_context(records: Iterable[ParsedRecord]) -> dict[str, list[ParsedRecord]]:
    """Group records by context id, each group ordered by timestamp."""
    groups: dict[str, list[ParsedRecord]] = defaultdict(list)
    for record in records:
        groups[record.context_id].append(record)
    return {
        context_id: sorted(group, key=lambda r: r.timestamp or 0.0)
        for context_id, group in groups.items()
    }
