"""Pytest configuration and shared fixtures for the mdguard test suite.

This module provides shared fixtures, test configuration, and utilities
that are used across the entire test suite.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Generator

import pytest
from hypothesis import Phase, Verbosity, settings

from mdguard.gate import CommandGate, OriginRegistry, SenderContext
from mdguard.options import GuardOptions, RateLimitOptions

# Register custom Hypothesis profiles
settings.register_profile("ci", max_examples=200, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=50)
settings.register_profile(
    "debug", max_examples=10, verbosity=Verbosity.verbose, phases=[Phase.explicit, Phase.reuse, Phase.generate]
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    """Provide a manually advanced millisecond clock."""
    return FakeClock()


@pytest.fixture
def window() -> SenderContext:
    """Provide a sender context standing for one editor window."""
    return SenderContext(id=1)


@pytest.fixture
def make_gate(clock: FakeClock) -> Generator[Callable[..., CommandGate], None, None]:
    """Build command gates on the fake clock and close them after the test.

    The returned factory accepts ``GuardOptions`` keyword overrides, e.g.
    ``make_gate(production=False)``.
    """
    gates: list[CommandGate] = []

    def factory(origins: OriginRegistry | None = None, **overrides) -> CommandGate:
        options = GuardOptions(**overrides)
        gate = CommandGate(options, origins, clock=clock, start_sweeper=False)
        gates.append(gate)
        return gate

    yield factory

    for gate in gates:
        gate.close()


@pytest.fixture
def gate(make_gate, window: SenderContext) -> CommandGate:
    """Provide a gate with ``window`` registered and a limit of 3 calls per second."""
    gate = make_gate(rate_limit=RateLimitOptions(max_calls=3, window_ms=1000))
    gate.origins.register(window)
    return gate


@pytest.fixture
def markdown_file(tmp_path: Path) -> Path:
    """Provide a small valid markdown document."""
    path = tmp_path / "notes.md"
    path.write_text("# Notes\n\nSome *markdown* text.\n", encoding="utf-8")
    return path


@pytest.fixture
def restore_root_logger():
    """Restore the root logger's handlers and level after the test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
