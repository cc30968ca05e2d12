"""Host and process resource readings for debug sessions.

Every reading fails soft: when the platform does not expose a value the
reading is ``"unknown"`` rather than an exception, so inspection never
breaks the process it inspects.
"""

from __future__ import annotations

import gc
import os
import shutil
import threading
from pathlib import Path

from healthrail.core.models import UNKNOWN, Details

PROC_MEMINFO = Path("/proc/meminfo")
PROC_SELF_STATUS = Path("/proc/self/status")
_KB_PER_MB = 1024
_BYTES_PER_MB = 1024 * 1024


def _proc_fields(path: Path, names: tuple[str, ...]) -> dict[str, int]:
    """Read ``Name:  <n> kB`` lines from a /proc file, in kB."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    values: dict[str, int] = {}
    for line in text.splitlines():
        key, sep, rest = line.partition(":")
        if not sep or key not in names:
            continue
        try:
            values[key] = int(rest.split()[0])
        except (IndexError, ValueError):
            continue
    return values


def load_average() -> str:
    """1, 5 and 15 minute load averages."""
    try:
        one, five, fifteen = os.getloadavg()
    except (AttributeError, OSError):
        return UNKNOWN
    return f"{one:.2f} {five:.2f} {fifteen:.2f}"


def memory_usage() -> str:
    """Used and total RAM in MB."""
    fields = _proc_fields(PROC_MEMINFO, ("MemTotal", "MemAvailable"))
    total = fields.get("MemTotal", 0)
    available = fields.get("MemAvailable", 0)
    if total <= 0 or available <= 0:
        return UNKNOWN
    used = total - available
    return f"{used // _KB_PER_MB}MB / {total // _KB_PER_MB}MB"


def disk_usage(path: str | Path = ".") -> str:
    """Used and total space of the filesystem holding ``path``."""
    try:
        usage = shutil.disk_usage(path)
    except OSError:
        return UNKNOWN
    percent = round(usage.used / usage.total * 100) if usage.total else 0
    return (
        f"{usage.used // _BYTES_PER_MB}MB / {usage.total // _BYTES_PER_MB}MB "
        f"({percent}%)"
    )


def process_memory() -> Details:
    """Resident memory of this process plus interpreter allocation counters."""
    fields = _proc_fields(PROC_SELF_STATUS, ("VmRSS", "VmHWM"))
    return Details(
        (
            ("rss_kb", fields.get("VmRSS", UNKNOWN)),
            ("peak_rss_kb", fields.get("VmHWM", UNKNOWN)),
            ("gc_collections", sum(s["collections"] for s in gc.get_stats())),
            ("gc_pending", sum(gc.get_count())),
            ("threads", threading.active_count()),
        )
    )


def system_metrics(path: str | Path = ".") -> Details:
    """Load, memory and disk readings for the host."""
    return Details(
        (
            ("load", load_average()),
            ("memory", memory_usage()),
            ("disk", disk_usage(path)),
        )
    )
