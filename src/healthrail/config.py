"""Configuration loading.

Configuration is read once per process from a YAML document and passed
explicitly to every Logger and Inspector. Resolution order for the file:

1. the ``path`` argument of :func:`load_config`,
2. the ``HEALTHRAIL_CONFIG`` environment variable,
3. ``~/.config/healthrail/config.yaml``.

A missing file yields the defaults. An unreadable or malformed file is
reported on the ``healthrail`` logger and also yields the defaults. A format
definition whose major version cannot be rendered raises
:class:`~healthrail.core.errors.FormatVersionError`.

Example document::

    base_dir: ~/.local/state/healthrail/logs
    routing:
      commands: [validate, status, diagnose]
      libraries: [operations, display]
      scripts: [build]
    rotation:
      enabled: true
      max_bytes: 10485760
      max_files: 5
    format:
      version: "1.0.0"
      bar_width: 30
    debug:
      debug_dir: ~/.local/state/healthrail/debug
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from healthrail.adapters.sinks.file import RotationPolicy
from healthrail.core.errors import FormatDefinitionError, FormatVersionError
from healthrail.core.format import FormatDefinition

_log = logging.getLogger(__name__)

CONFIG_ENV_VAR = "HEALTHRAIL_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/healthrail/config.yaml")
DEFAULT_BASE_DIR = Path("~/.local/state/healthrail/logs")
LOG_FILE_EXTENSION = ".log"
DEBUG_FILE_EXTENSION = ".debug"


@dataclass(frozen=True)
class RoutingConfig:
    """Which log subdirectory a component's file lives in."""

    commands: tuple[str, ...] = ("validate", "test", "status", "diagnose")
    libraries: tuple[str, ...] = (
        "operations",
        "sudoers",
        "environment",
        "display",
        "logging",
        "debugging",
    )
    scripts: tuple[str, ...] = ("build",)

    def subdirectory(self, component: str) -> str:
        if component in self.commands:
            return "commands"
        if component in self.scripts:
            return "scripts"
        if component in self.libraries:
            return "libraries"
        return "system"


@dataclass(frozen=True)
class RotationConfig:
    enabled: bool = True
    max_bytes: int = 10 * 1024 * 1024
    max_files: int = 5

    def policy(self) -> RotationPolicy | None:
        if not self.enabled:
            return None
        return RotationPolicy(max_bytes=self.max_bytes, max_files=self.max_files)


@dataclass(frozen=True)
class HealthRailConfig:
    """Process-wide settings for loggers and inspectors."""

    base_dir: Path = DEFAULT_BASE_DIR
    debug_dir: Path | None = None
    routing: RoutingConfig = field(default_factory=RoutingConfig)
    rotation: RotationConfig = field(default_factory=RotationConfig)
    format: FormatDefinition = field(default_factory=FormatDefinition)

    def log_path_for(self, component: str) -> Path:
        """``<base_dir>/<subdirectory>/<component>.log``."""
        subdirectory = self.routing.subdirectory(component)
        name = f"{component}{LOG_FILE_EXTENSION}"
        return self.base_dir.expanduser() / subdirectory / name

    def debug_path_for(self, component: str, started: float) -> Path:
        """``<debug_dir>/<component>/<component>-<started ms>.debug``."""
        debug_dir = self.debug_dir or self.base_dir.expanduser().parent / "debug"
        name = f"{component}-{int(started * 1000)}{DEBUG_FILE_EXTENSION}"
        return debug_dir.expanduser() / component / name

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> HealthRailConfig:
        """Build a config from a parsed YAML document. Unknown keys are ignored.

        Raises:
            FormatDefinitionError: If the ``format`` section is invalid.
            ValueError: If another section has the wrong shape.
        """
        values: dict[str, Any] = {}
        if "base_dir" in document:
            values["base_dir"] = Path(str(document["base_dir"]))
        debug = _section(document, "debug")
        if "debug_dir" in debug:
            values["debug_dir"] = Path(str(debug["debug_dir"]))
        routing = _section(document, "routing")
        if routing:
            defaults = RoutingConfig()
            values["routing"] = RoutingConfig(
                commands=_names(routing, "commands", defaults.commands),
                libraries=_names(routing, "libraries", defaults.libraries),
                scripts=_names(routing, "scripts", defaults.scripts),
            )
        rotation = _section(document, "rotation")
        if rotation:
            defaults_rotation = RotationConfig()
            values["rotation"] = RotationConfig(
                enabled=_flag(rotation, "enabled", defaults_rotation.enabled),
                max_bytes=_count(rotation, "max_bytes", defaults_rotation.max_bytes),
                max_files=_count(rotation, "max_files", defaults_rotation.max_files),
            )
        if "format" in document:
            values["format"] = FormatDefinition.from_document(document["format"])
        elif "format_path" in document:
            format_path = Path(str(document["format_path"]))
            values["format"] = load_format_definition(format_path)
        return cls(**values)


def _section(document: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = document.get(name) or {}
    if not isinstance(value, Mapping):
        raise ValueError(f"config section {name!r} must be a mapping")
    return value


def _names(
    section: Mapping[str, Any], key: str, default: tuple[str, ...]
) -> tuple[str, ...]:
    value = section.get(key, default)
    if not isinstance(value, (list, tuple)) or not all(
        isinstance(name, str) for name in value
    ):
        raise ValueError(f"routing.{key} must be a list of component names")
    return tuple(value)


def _flag(section: Mapping[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"rotation.{key} must be true or false, got {value!r}")
    return value


def _count(section: Mapping[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"rotation.{key} must be a positive integer, got {value!r}")
    return value


def _read_yaml(path: Path) -> Any:
    with path.expanduser().open(encoding="utf-8") as f:
        return yaml.safe_load(f)


def load_format_definition(path: str | Path) -> FormatDefinition:
    """Load a standalone format definition document.

    Raises:
        OSError: If the file cannot be read.
        FormatVersionError: If its major version is unsupported.
        FormatDefinitionError: If it is malformed.
    """
    try:
        document = _read_yaml(Path(path))
    except yaml.YAMLError as e:
        raise FormatDefinitionError(f"invalid format definition {path}: {e}") from e
    return FormatDefinition.from_document(document or {})


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH.expanduser()


def load_config(path: str | Path | None = None) -> HealthRailConfig:
    """Load configuration, falling back to defaults when it is unusable.

    Raises:
        FormatVersionError: If the configured format definition has a major
            version this runtime cannot render.
    """
    # @tra: Config.Load
    config_path = resolve_config_path(path)
    try:
        document = _read_yaml(config_path)
    except FileNotFoundError:
        return HealthRailConfig()
    except (OSError, yaml.YAMLError) as e:
        _log.warning("could not read config %s, using defaults: %s", config_path, e)
        return HealthRailConfig()

    if document is None:
        return HealthRailConfig()
    if not isinstance(document, Mapping):
        _log.warning("config %s is not a mapping, using defaults", config_path)
        return HealthRailConfig()
    try:
        return HealthRailConfig.from_document(document)
    except FormatVersionError:
        raise
    except FormatDefinitionError as e:
        _log.warning(
            "invalid format definition in %s, using defaults: %s", config_path, e
        )
        return HealthRailConfig()
    except (OSError, TypeError, ValueError) as e:
        _log.warning("invalid config %s, using defaults: %s", config_path, e)
        return HealthRailConfig()
