"""Shared fixtures: a deterministic clock and small configurations."""

import os

import pytest

from kernelbench.benchmark.candidate import FunctionCandidate
from kernelbench.config import RunConfiguration
from kernelbench.harness.clock import ClockSource

# Guard against site-wide plugins that can change stdout handling
os.environ.setdefault("PYTEST_DISABLE_PLUGIN_AUTOLOAD", "1")


class FakeClock(ClockSource):
    """Clock that ticks ``tick_ns`` per read and advances on demand."""

    def __init__(self, tick_ns: int = 1, resolution_ns: float = 0.01):
        super().__init__()
        self.current = 0
        self.tick_ns = tick_ns
        self._resolution_ns = resolution_ns

    def now(self) -> int:
        self.current += self.tick_ns
        return self.current

    def advance(self, ns: int) -> None:
        self.current += ns


def costed(identifier, family, clock, cost_ns, absorb=True):
    """Candidate that costs ``cost_ns`` fake nanoseconds per invocation."""

    def invoke(config, sink):
        clock.advance(cost_ns)
        if absorb:
            sink.absorb(1.0)

    return FunctionCandidate(identifier, family, invoke)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def small_config():
    return RunConfiguration(
        sample_count=2,
        warm_up_count=1,
        repetition_count=5,
        problem_size=16,
    )
