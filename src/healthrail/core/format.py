"""Format definitions: the external description of the wire format.

A format definition is a versioned document (``version: MAJOR.MINOR.PATCH``)
describing field order, separators and health-band indicators. Minor
versions are additive, so unknown keys are ignored. A major version this
runtime does not support is rejected.
"""

from __future__ import annotations

import string
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from healthrail.core.errors import FormatDefinitionError, FormatVersionError

SUPPORTED_MAJOR = 1

HEADER_FIELDS = frozenset(
    {
        "timestamp",
        "level",
        "component",
        "identity",
        "context_id",
        "health",
        "raw",
        "delta",
        "indicator",
        "bar",
        "band",
    }
)
EVENT_FIELDS = frozenset({"event"})
DEBUG_TITLE_FIELDS = frozenset({"component"})
MESSAGE_FIELDS: Mapping[str, frozenset[str]] = MappingProxyType(
    {
        "check": frozenset({"label"}),
        "operation": frozenset({"name"}),
        "snapshot": frozenset({"label"}),
        "command_success": frozenset({"command"}),
        "command_failure": frozenset({"command"}),
    }
)


class HealthBand(StrEnum):
    """Fixed table of health bands, best first."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"
    FAILED = "failed"


@dataclass(frozen=True)
class BandStyle:
    """Lower bound and visual indicator of one health band."""

    threshold: int
    indicator: str


DEFAULT_BANDS: Mapping[HealthBand, BandStyle] = MappingProxyType(
    {
        HealthBand.EXCELLENT: BandStyle(90, "💚"),
        HealthBand.GOOD: BandStyle(70, "💙"),
        HealthBand.FAIR: BandStyle(50, "💛"),
        HealthBand.POOR: BandStyle(30, "🧡"),
        HealthBand.CRITICAL: BandStyle(0, "⚠️"),
        HealthBand.FAILED: BandStyle(-100, "💀"),
    }
)

DEFAULT_MESSAGES: Mapping[str, str] = MappingProxyType(
    {
        "check": "Checking: {label}",
        "operation": "Starting operation: {name}",
        "snapshot": "System state snapshot: {label}",
        "command_success": "Command completed: {command}",
        "command_failure": "Command failed: {command}",
    }
)


@dataclass(frozen=True)
class DebugLayout:
    """Layout of rendered debug session reports."""

    border_char: str = "═"
    width: int = 64
    title: str = "Debug Session - {component}"
    context_title: str = "CONTEXT"
    initial_title: str = "INITIAL STATE"
    events_title: str = "EVENTS"
    final_title: str = "FINAL STATE"
    analysis_title: str = "ANALYSIS"


@dataclass(frozen=True)
class FormatDefinition:
    """Everything the template layer needs to render records and reports."""

    version: str = "1.0.0"
    encoding: str = "text"
    timestamp_format: str = "%Y-%m-%d %H:%M:%S"
    header_template: str = (
        "[{timestamp}] {level} | {component} | {identity} | {context_id} | "
        "HEALTH: {health}% (raw: {raw}, Δ{delta}) {indicator} {bar}"
    )
    event_template: str = "  EVENT: {event}"
    details_header: str = "  DETAILS:"
    metadata_header: str = "  METADATA:"
    indent: str = "    "
    entry_separator: str = "---"
    bar_width: int = 20
    bar_fill: str = "█"
    bar_empty: str = "░"
    bands: Mapping[HealthBand, BandStyle] = field(default_factory=lambda: DEFAULT_BANDS)
    messages: Mapping[str, str] = field(default_factory=lambda: DEFAULT_MESSAGES)
    debug: DebugLayout = field(default_factory=DebugLayout)

    def __post_init__(self) -> None:
        if self.encoding not in ("text", "ndjson"):
            raise FormatDefinitionError(f"unknown encoding {self.encoding!r}")
        _check_template("header_template", self.header_template, HEADER_FIELDS)
        _check_template("event_template", self.event_template, EVENT_FIELDS)
        _check_template("debug.title", self.debug.title, DEBUG_TITLE_FIELDS)
        for name, template in self.messages.items():
            if name not in MESSAGE_FIELDS:
                raise FormatDefinitionError(f"unknown message {name!r}")
            _check_template(f"messages.{name}", template, MESSAGE_FIELDS[name])
        if not self.indent or self.indent.strip():
            raise FormatDefinitionError("indent must be non-empty whitespace")
        if self.bar_width < 0:
            raise FormatDefinitionError("bar_width must not be negative")
        _check_bands(self.bands)

    @property
    def major(self) -> int:
        return parse_version(self.version)[0]

    def band_for(self, health: int) -> HealthBand:
        """Return the first band whose lower bound ``health`` reaches."""
        # @tra: Core.Format.HealthBand
        for band in HealthBand:
            if band is HealthBand.FAILED:
                break
            if health >= self.bands[band].threshold:
                return band
        return HealthBand.FAILED

    def indicator_for(self, health: int) -> str:
        return self.bands[self.band_for(health)].indicator

    def bar_for(self, health: int) -> str:
        """Fixed-width bar; the displayed fill is clamped to 0..100."""
        clamped = max(0, min(100, health))
        filled = self.bar_width * clamped // 100
        empty = self.bar_width - filled
        return "[" + self.bar_fill * filled + self.bar_empty * empty + "]"

    def message(self, name: str, /, **values: str) -> str:
        return self.messages[name].format(**values)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> FormatDefinition:
        """Build a definition from a parsed configuration document.

        Raises:
            FormatVersionError: If the document's major version is unsupported.
            FormatDefinitionError: If the document is malformed.
        """
        if not isinstance(document, Mapping):
            raise FormatDefinitionError("format definition must be a mapping")
        version = document.get("version")
        if version is None:
            raise FormatDefinitionError("format definition is missing 'version'")
        major, _, _ = parse_version(str(version))
        if major != SUPPORTED_MAJOR:
            raise FormatVersionError(
                f"format definition version {version} is not supported "
                f"(this runtime renders major version {SUPPORTED_MAJOR})"
            )

        values: dict[str, Any] = {"version": str(version)}
        for name, kind in _SCALAR_FIELDS.items():
            if name in document:
                values[name] = _typed(name, document[name], kind)
        if "health_bands" in document:
            values["bands"] = _parse_bands(document["health_bands"])
        if "messages" in document:
            values["messages"] = _parse_messages(document["messages"])
        if "debug" in document:
            values["debug"] = _parse_debug(document["debug"])
        return cls(**values)


_SCALAR_FIELDS: Mapping[str, type] = MappingProxyType(
    {
        "encoding": str,
        "timestamp_format": str,
        "header_template": str,
        "event_template": str,
        "details_header": str,
        "metadata_header": str,
        "indent": str,
        "entry_separator": str,
        "bar_width": int,
        "bar_fill": str,
        "bar_empty": str,
    }
)


def parse_version(version: str) -> tuple[int, int, int]:
    """Parse ``MAJOR.MINOR[.PATCH]`` into a triple."""
    parts = version.strip().split(".")
    if not 2 <= len(parts) <= 3:
        raise FormatDefinitionError(f"invalid version {version!r}")
    try:
        numbers = [int(part) for part in parts]
    except ValueError as e:
        raise FormatDefinitionError(f"invalid version {version!r}") from e
    if len(numbers) == 2:
        numbers.append(0)
    return numbers[0], numbers[1], numbers[2]


def template_fields(template: str) -> list[str]:
    """Placeholder names of a ``str.format`` template, in order."""
    try:
        parsed = string.Formatter().parse(template)
        return [name for _, name, _, _ in parsed if name is not None]
    except ValueError as e:
        raise FormatDefinitionError(f"invalid template {template!r}: {e}") from e


def _check_template(name: str, template: str, allowed: frozenset[str]) -> None:
    fields = template_fields(template)
    unknown = [f for f in fields if f not in allowed]
    if unknown:
        raise FormatDefinitionError(
            f"{name} uses unknown placeholders {unknown}; allowed: {sorted(allowed)}"
        )
    if len(set(fields)) != len(fields):
        raise FormatDefinitionError(f"{name} repeats a placeholder")


def _check_bands(bands: Mapping[HealthBand, BandStyle]) -> None:
    missing = [band.value for band in HealthBand if band not in bands]
    if missing:
        raise FormatDefinitionError(f"health bands missing: {missing}")
    thresholds = [
        bands[band].threshold for band in HealthBand if band is not HealthBand.FAILED
    ]
    if any(a <= b for a, b in zip(thresholds, thresholds[1:])):
        raise FormatDefinitionError(
            "health band thresholds must strictly decrease from excellent to critical"
        )


def _typed(name: str, value: Any, kind: type) -> Any:
    if kind is int and (isinstance(value, bool) or not isinstance(value, int)):
        raise FormatDefinitionError(f"{name} must be an integer")
    if kind is str and not isinstance(value, str):
        raise FormatDefinitionError(f"{name} must be a string")
    return value


def _parse_bands(raw: Any) -> Mapping[HealthBand, BandStyle]:
    if not isinstance(raw, Mapping):
        raise FormatDefinitionError("health_bands must be a mapping")
    bands = dict(DEFAULT_BANDS)
    for key, style in raw.items():
        try:
            band = HealthBand(str(key).lower())
        except ValueError:
            # Bands introduced by a later minor version.
            continue
        if not isinstance(style, Mapping):
            raise FormatDefinitionError(f"health band {key!r} must be a mapping")
        current = bands[band]
        threshold = style.get("threshold", current.threshold)
        indicator = style.get("indicator", current.indicator)
        bands[band] = BandStyle(
            threshold=_typed(f"{key}.threshold", threshold, int),
            indicator=_typed(f"{key}.indicator", indicator, str),
        )
    return MappingProxyType(bands)


def _parse_messages(raw: Any) -> Mapping[str, str]:
    if not isinstance(raw, Mapping):
        raise FormatDefinitionError("messages must be a mapping")
    messages = dict(DEFAULT_MESSAGES)
    for key, template in raw.items():
        if key in MESSAGE_FIELDS:
            messages[key] = _typed(f"messages.{key}", template, str)
    return MappingProxyType(messages)


def _parse_debug(raw: Any) -> DebugLayout:
    if not isinstance(raw, Mapping):
        raise FormatDefinitionError("debug must be a mapping")
    layout = DebugLayout()
    updates = {}
    for name, current in vars(layout).items():
        if name in raw:
            updates[name] = _typed(f"debug.{name}", raw[name], type(current))
    return replace(layout, **updates)
