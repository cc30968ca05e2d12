"""Example validation command with health-scored logging.

Run with:
    python examples/validate_example.py

Output:
    Records are appended to ~/.local/state/healthrail/logs/commands/validate.log
    (or wherever the HEALTHRAIL_CONFIG file points ``base_dir``). Failures that
    carry an automated fix are printed at the end.
"""

import logging
import os
import shutil
from pathlib import Path

from healthrail import HealthRailHandler, Logger, Metadata, load_config

config = load_config()
logger = Logger("validate", config=config)

# Forward records from existing stdlib loggers as unscored annotations
logging.getLogger().addHandler(HealthRailHandler(logger))
logging.getLogger().setLevel(logging.INFO)

logger.declare_health_total(100)

home = Path.home()
logger.check("home directory exists", home.is_dir(), 20, {"path": str(home)})

config_dir = home / ".config"
if config_dir.is_dir():
    logger.check("config directory", True, 20, {"path": str(config_dir)})
else:
    logger.check_with_metadata(
        "config directory",
        False,
        -20,
        {"path": str(config_dir)},
        Metadata(
            operation_type="file_validation",
            error_type="missing_directory",
            recovery_hint="automated_fix",
            recovery_strategy="create_directory",
            recovery_params={"path": str(config_dir), "mode": "0700"},
        ),
    )

if shutil.which("git"):
    logger.run_command(
        "git", "--version", description="git available", success_delta=30
    )
else:
    logger.failure_with_metadata(
        "git available",
        "git not found on PATH",
        -30,
        {"PATH": os.environ.get("PATH", "")},
        Metadata(error_type="missing_tool", recovery_hint="manual"),
    )

logging.getLogger("example").info("environment checks finished")
logger.success("validation finished", 30)

print(f"health: {logger.health}% ({config.format.band_for(logger.health).name})")
for entry in logger.recoverable_failures():
    assert entry.metadata is not None
    print(f"auto-fix available: {entry.metadata.recovery_strategy}")
