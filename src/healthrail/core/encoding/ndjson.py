"""NDJSON encoder for log entries."""

import json
from collections.abc import Iterable

from healthrail.core.metadata import Metadata
from healthrail.core.models import Details, Identity, LogEntry, LogLevel


def entry_to_dict(entry: LogEntry) -> dict[str, object]:
    """Convert an entry to a JSON-compatible dict with a fixed key order."""
    return {
        "timestamp": entry.timestamp,
        "level": entry.level.value,
        "component": entry.component,
        "identity": str(entry.identity),
        "context_id": entry.context_id,
        "event": entry.event,
        "delta": entry.delta,
        "raw_health": entry.raw_health,
        "normalized_health": entry.normalized_health,
        "passed": entry.passed,
        "details": entry.details.to_dict(),
        "metadata": (
            None if entry.metadata is None else entry.metadata.to_details().to_dict()
        ),
    }


def encode_entry(entry: LogEntry) -> str:
    """Encode a single entry as one newline-terminated JSON line."""
    return json.dumps(entry_to_dict(entry), ensure_ascii=False) + "\n"


def encode_logs(entries: Iterable[LogEntry]) -> str:
    """Encode log entries to newline-delimited JSON.

    Args:
        entries: An iterable of LogEntry objects.

    Returns:
        NDJSON string with one JSON object per line.
        Empty string if no entries.
    """
    return "".join(encode_entry(entry) for entry in entries)


def decode_entry(line: str) -> LogEntry:
    """Decode one NDJSON line produced by ``encode_entry``.

    Raises:
        ValueError: If the line is not valid JSON or lacks required fields.
    """
    try:
        obj = json.loads(line)
        metadata = obj.get("metadata")
        return LogEntry(
            timestamp=float(obj["timestamp"]),
            level=LogLevel(obj["level"]),
            component=obj["component"],
            identity=Identity.parse(obj["identity"]),
            context_id=obj["context_id"],
            event=obj.get("event", ""),
            delta=int(obj.get("delta", 0)),
            raw_health=int(obj.get("raw_health", 0)),
            normalized_health=int(obj.get("normalized_health", 0)),
            details=Details.of(obj.get("details")),
            metadata=Metadata.from_details(metadata) if metadata else None,
            passed=obj.get("passed"),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"invalid NDJSON log entry: {e}") from e


def decode_logs(text: str) -> list[LogEntry]:
    """Decode every non-blank line of an NDJSON document."""
    return [decode_entry(line) for line in text.splitlines() if line.strip()]
