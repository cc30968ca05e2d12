"""Example debug session comparing expected and actual state.

Run with:
    python examples/inspector_example.py

Output:
    The logger's records go to the routed log file. The inspector report is
    rendered into an in-memory sink when the session closes and printed.
    Without a sink it would go to ``<debug_dir>/build/build-<started ms>.debug``.
"""

import tempfile
import time
from pathlib import Path

from healthrail import (
    InMemorySink,
    InspectionLevel,
    Inspector,
    Logger,
    parse_debug_text,
)

logger = Logger("build")
logger.declare_health_total(60)

report_sink = InMemorySink()
inspector = Inspector("build", InspectionLevel.VERBOSE, logger=logger, sink=report_sink)
inspector.enable()
inspector.system_context("startup")

with tempfile.TemporaryDirectory() as tmp:
    workdir = Path(tmp)
    inspector.snapshot("before", {"workdir": str(workdir), "files": 0})
    inspector.flow("workdir", "tempfile", expected="tempfile")

    started = time.perf_counter()
    for name in ("a.txt", "b.txt", "c.txt"):
        (workdir / name).write_text(name)
    inspector.timing("write files", time.perf_counter() - started, 0.5)

    written = len(list(workdir.iterdir()))
    divergence = inspector.expected_state("files written", 4, written)
    logger.check("files written", divergence.matches, 20 if divergence.matches else -20)

    inspector.counter("retries", 0, 0)
    inspector.memory("after writes", {"files": written})
    inspector.checkpoint("cleanup")
    inspector.final_snapshot("after", {"files": written})

logger.success("build finished", 40)
inspector.close()

text = report_sink.text()
print(text)

[report] = parse_debug_text(text)
print(f"read back {len(report.events)} events from the report")
