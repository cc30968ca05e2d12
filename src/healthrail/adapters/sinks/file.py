"""Append-only file sink with size-based rotation.

Each record is written with a single ``os.write`` on a descriptor opened
with ``O_APPEND``, so records from concurrent processes sharing a file never
interleave. Failures to open, write or rotate are reported through the
``healthrail`` logger and the record goes to the fallback sink instead;
nothing is raised to the caller.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from healthrail.adapters.sinks.stderr import StderrSink
from healthrail.core.ports import LogSinkPort

_log = logging.getLogger(__name__)

_FILE_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_APPEND


@dataclass(frozen=True)
class RotationPolicy:
    """When and how far to rotate a log file.

    Attributes:
        max_bytes: Rotate once the file reaches this size.
        max_files: Number of rotated copies kept (``.1`` newest).
    """

    max_bytes: int = 10 * 1024 * 1024
    max_files: int = 5


def rotated_name(path: Path, index: int) -> Path:
    return path.with_name(f"{path.name}.{index}")


def rotate_if_needed(path: Path, policy: RotationPolicy) -> bool:
    """Shift ``path`` to ``path.1`` (and older copies up) when it is too large.

    Returns:
        True if the file was rotated.

    Raises:
        OSError: If the rotation itself fails.
    """
    try:
        size = path.stat().st_size
    except FileNotFoundError:
        return False
    if size < policy.max_bytes:
        return False

    oldest = rotated_name(path, policy.max_files)
    oldest.unlink(missing_ok=True)
    for index in range(policy.max_files - 1, 0, -1):
        current = rotated_name(path, index)
        if current.exists():
            current.replace(rotated_name(path, index + 1))
    if policy.max_files > 0:
        path.replace(rotated_name(path, 1))
    else:
        path.unlink(missing_ok=True)
    return True


class FileLogSink:
    """File implementation of LogSinkPort.

    Args:
        path: Log file to append to; parent directories are created.
        rotation: Optional rotation policy applied before each write.
        fallback: Sink receiving records that could not be written.
        file_mode: Permission bits for a newly created file.
    """

    def __init__(
        self,
        path: str | Path,
        rotation: RotationPolicy | None = None,
        fallback: LogSinkPort | None = None,
        file_mode: int = 0o644,
    ) -> None:
        self._path = Path(path)
        self._rotation = rotation
        self._fallback = fallback if fallback is not None else StderrSink()
        self._file_mode = file_mode

    @property
    def path(self) -> Path:
        return self._path

    def write(self, record: str) -> None:
        """Append one record; on failure, hand it to the fallback sink."""
        # @tra: Adapter.FileSink.AtomicAppend
        data = record.encode("utf-8")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            if self._rotation is not None:
                self._rotate()
            fd = os.open(self._path, _FILE_FLAGS, self._file_mode)
            try:
                written = os.write(fd, data)
            finally:
                os.close(fd)
        except OSError as e:
            _log.warning("failed to write log record to %s: %s", self._path, e)
            self._fallback.write(record)
            return
        if written != len(data):
            _log.warning(
                "short write to %s (%d of %d bytes)", self._path, written, len(data)
            )

    def _rotate(self) -> None:
        assert self._rotation is not None
        try:
            rotate_if_needed(self._path, self._rotation)
        except OSError as e:
            # Append to the unrotated file.
            _log.warning("failed to rotate log %s: %s", self._path, e)
