"""Shared test fixtures for all test modules."""

from pathlib import Path

import pytest

from healthrail.adapters.sinks import InMemorySink
from healthrail.config import HealthRailConfig
from healthrail.core.models import Identity
from healthrail.logger import Logger

# 2023-11-14 22:13:20 UTC
START_TIME = 1_700_000_000.0


class FakeClock:
    """Deterministic stand-in for ``time.time``."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at START_TIME until advanced."""
    return FakeClock()


@pytest.fixture
def identity() -> Identity:
    """Fixed process identity so rendered headers are predictable."""
    return Identity(user="tester", host="buildhost", pid=4242)


@pytest.fixture
def sink() -> InMemorySink:
    """Fresh in-memory sink."""
    return InMemorySink()


@pytest.fixture
def logger(sink: InMemorySink, clock: FakeClock, identity: Identity) -> Logger:
    """Logger for the "validate" component writing to the in-memory sink."""
    return Logger(
        "validate",
        sink=sink,
        clock=clock,
        identity=identity,
        context_id="validate-4242-1",
    )


@pytest.fixture
def config(tmp_path: Path) -> HealthRailConfig:
    """Config rooted in a temporary directory."""
    return HealthRailConfig(base_dir=tmp_path / "logs", debug_dir=tmp_path / "debug")
