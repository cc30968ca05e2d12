"""Sink adapters implementing the core LogSinkPort."""

from healthrail.adapters.sinks.file import FileLogSink, RotationPolicy, rotate_if_needed
from healthrail.adapters.sinks.in_memory import InMemorySink
from healthrail.adapters.sinks.stderr import StderrSink

__all__ = [
    "FileLogSink",
    "InMemorySink",
    "RotationPolicy",
    "StderrSink",
    "rotate_if_needed",
]
