"""Tests for reading text logs back into records."""

import pytest

from healthrail.core.encoding.parsing import (
    group_by_context,
    parse_log_text,
    template_pattern,
)
from healthrail.core.encoding.template import render_entry
from healthrail.core.format import FormatDefinition
from healthrail.core.metadata import Metadata
from healthrail.core.models import Details, Identity, LogEntry, LogLevel

IDENTITY = Identity("tester", "buildhost", 4242)


def _entry(timestamp: float, context_id: str, **overrides: object) -> LogEntry:
    values: dict[str, object] = {
        "timestamp": timestamp,
        "level": LogLevel.CHECK,
        "component": "validate",
        "identity": IDENTITY,
        "context_id": context_id,
        "event": "Checking: disk",
        "delta": -90,
        "raw_health": -20,
        "normalized_health": -20,
    }
    values.update(overrides)
    return LogEntry(**values)  # type: ignore[arg-type]


@pytest.mark.encoding
class TestTemplatePattern:
    """Tests for template_pattern()."""

    def test_named_groups(self) -> None:
        """Placeholders become named groups."""
        pattern = template_pattern("[{timestamp}] {level} |")

        match = pattern.fullmatch("[2023-11-14 22:13:20.000] CHECK |")

        assert match is not None
        assert match.group("level") == "CHECK"

    def test_literals_are_escaped(self) -> None:
        """Regex metacharacters in literals match literally."""
        pattern = template_pattern("({level})")

        assert pattern.fullmatch("(INFO)") is not None
        assert pattern.fullmatch("xINFOx") is None


@pytest.mark.encoding
class TestParseLogText:
    """Tests for parse_log_text()."""

    @pytest.mark.tra("Core.Parsing.LogText")
    def test_header_fields(self) -> None:
        """Header values are recovered from the rendered header line."""
        text = render_entry(_entry(1_700_000_000.5, "ctx-1"), FormatDefinition())

        [record] = parse_log_text(text)

        assert record.level == "CHECK"
        assert record.component == "validate"
        assert record.context_id == "ctx-1"
        assert record.health == -20
        assert record.raw_health == -20
        assert record.delta == -90
        assert record.timestamp == 1_700_000_000.5
        assert record.event == "Checking: disk"

    def test_details_and_metadata(self) -> None:
        """Nested details and metadata are read back as strings."""
        entry = _entry(
            1_700_000_000.0,
            "ctx-1",
            details=Details.of({"path": "/var/log", "limits": {"max": 5}}),
            metadata=Metadata(
                error_type="permission_denied",
                recovery_hint="automated_fix",
                recovery_strategy="fix_permissions",
                recovery_params={"mode": "0755"},
            ),
        )

        [record] = parse_log_text(render_entry(entry, FormatDefinition()))

        assert record.details == {"path": "/var/log", "limits": {"max": "5"}}
        assert record.metadata["recovery_params"] == {"mode": "0755"}
        assert record.recovery_strategy == "fix_permissions"

    def test_multiline_detail(self) -> None:
        """Block values are reassembled."""
        entry = _entry(
            1_700_000_000.0, "ctx-1", details=Details.of({"output": "one\ntwo"})
        )

        [record] = parse_log_text(render_entry(entry, FormatDefinition()))

        assert record.details["output"] == "one\ntwo"

    def test_multiline_event(self) -> None:
        """Events spanning lines come back whole, separator lines included."""
        event = "first line\n---\nthird line"
        entry = _entry(
            1_700_000_000.0,
            "ctx-1",
            event=event,
            details=Details.of({"path": "/var/log"}),
        )
        second = _entry(1_700_000_001.0, "ctx-1")

        records = parse_log_text(
            render_entry(entry, FormatDefinition())
            + render_entry(second, FormatDefinition())
        )

        assert [r.event for r in records] == [event, "Checking: disk"]
        assert records[0].details == {"path": "/var/log"}

    def test_recovery_strategy_requires_automated_fix(self) -> None:
        """Manual hints have no dispatchable strategy."""
        entry = _entry(
            1_700_000_000.0, "ctx-1", metadata=Metadata(recovery_hint="manual")
        )

        [record] = parse_log_text(render_entry(entry, FormatDefinition()))

        assert record.recovery_strategy is None

    def test_multiple_records_and_noise(self) -> None:
        """Unrelated lines between records are skipped."""
        definition = FormatDefinition()
        text = (
            "garbage before\n"
            + render_entry(_entry(1.0, "a"), definition)
            + render_entry(_entry(2.0, "b", event="second"), definition)
        )

        records = parse_log_text(text)

        assert [r.context_id for r in records] == ["a", "b"]
        assert records[1].event == "second"

    def test_custom_definition(self) -> None:
        """Parsing follows the definition that rendered the text."""
        definition = FormatDefinition(
            header_template="{level}|{context_id}|{health}",
            event_template="> {event}",
            entry_separator="==",
        )
        text = render_entry(_entry(1.0, "ctx-9"), definition)

        [record] = parse_log_text(text, definition)

        assert record.context_id == "ctx-9"
        assert record.health == -20
        assert record.event == "Checking: disk"
        assert record.timestamp is None


@pytest.mark.encoding
class TestGroupByContext:
    """Tests for group_by_context()."""

    def test_groups_and_orders_by_timestamp(self) -> None:
        """Interleaved runs are separated and each ordered by time."""
        definition = FormatDefinition()
        text = "".join(
            render_entry(_entry(ts, ctx, event=f"{ctx}@{ts}"), definition)
            for ts, ctx in [(3.0, "a"), (1.0, "b"), (1.0, "a"), (2.0, "b")]
        )

        groups = group_by_context(parse_log_text(text))

        assert set(groups) == {"a", "b"}
        assert [r.event for r in groups["a"]] == ["a@1.0", "a@3.0"]
        assert [r.event for r in groups["b"]] == ["b@1.0", "b@2.0"]
