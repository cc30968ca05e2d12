"""healthrail: health-scored structured logging and debug inspection.

Example:
    ```python
    from healthrail import Inspector, InspectionLevel, Logger, load_config

    config = load_config()
    logger = Logger("validate", config=config)
    logger.declare_health_total(100)
    inspector = Inspector.for_logger(logger, InspectionLevel.DETAILED)
    inspector.enable()
    ...
    inspector.close()
    ```
"""

from healthrail.adapters.logging import HealthRailHandler
from healthrail.adapters.sinks import (
    FileLogSink,
    InMemorySink,
    RotationPolicy,
    StderrSink,
)
from healthrail.config import HealthRailConfig, load_config, load_format_definition
from healthrail.core.divergence import (
    Divergence,
    DivergenceKind,
    Severity,
    classify_divergence,
)
from healthrail.core.encoding.parsing import (
    ParsedRecord,
    group_by_context,
    parse_log_text,
    read_log_file,
)
from healthrail.core.encoding.report_parsing import (
    ParsedReport,
    parse_debug_text,
    read_debug_file,
)
from healthrail.core.errors import (
    FormatDefinitionError,
    FormatVersionError,
    HealthRailError,
    HealthTotalAlreadyDeclaredError,
    HealthTotalError,
    HealthTotalNotDeclaredError,
    InspectorStateError,
    MetadataError,
)
from healthrail.core.format import FormatDefinition, HealthBand
from healthrail.core.metadata import Metadata, RecoveryHint
from healthrail.core.models import Details, Identity, LogEntry, LogLevel
from healthrail.core.ports import LogSinkPort
from healthrail.core.report import InspectionLevel
from healthrail.inspector import Inspector, InspectorState
from healthrail.logger import Logger

__all__ = [
    "Details",
    "Divergence",
    "DivergenceKind",
    "FileLogSink",
    "FormatDefinition",
    "FormatDefinitionError",
    "FormatVersionError",
    "HealthBand",
    "HealthRailConfig",
    "HealthRailError",
    "HealthRailHandler",
    "HealthTotalAlreadyDeclaredError",
    "HealthTotalError",
    "HealthTotalNotDeclaredError",
    "Identity",
    "InMemorySink",
    "InspectionLevel",
    "Inspector",
    "InspectorState",
    "InspectorStateError",
    "LogEntry",
    "LogLevel",
    "LogSinkPort",
    "Logger",
    "Metadata",
    "MetadataError",
    "ParsedRecord",
    "ParsedReport",
    "RecoveryHint",
    "RotationPolicy",
    "Severity",
    "StderrSink",
    "classify_divergence",
    "group_by_context",
    "load_config",
    "load_format_definition",
    "parse_debug_text",
    "parse_log_text",
    "read_debug_file",
    "read_log_file",
]
