"""Monotonic high-resolution clock used for every timed region."""

from __future__ import annotations

import time
from typing import Optional

from kernelbench.errors import BenchmarkError, ErrorKind

# Resolution must be this many times finer than the shortest expected cost
RESOLUTION_FACTOR = 100.0


class ClockSource:
    """Wall-time source backed by ``time.perf_counter_ns``.

    perf_counter is monotonic and unaffected by system clock adjustments.
    Instants are integer nanoseconds.
    """

    name = "perf_counter_ns"

    def __init__(self, resolution_probes: int = 1000):
        self.resolution_probes = resolution_probes
        self._resolution_ns: Optional[float] = None

    def now(self) -> int:
        return time.perf_counter_ns()

    def duration_between(self, start: int, end: int) -> int:
        """Return ``end - start`` in nanoseconds; never negative."""
        if end < start:
            raise ValueError(f"Clock went backwards: start={start} end={end}")
        return end - start

    def resolution_ns(self) -> float:
        """Smallest observable tick, measured empirically and cached.

        Takes the larger of the declared resolution and the smallest non-zero
        difference between back-to-back reads.
        """
        if self._resolution_ns is None:
            declared_ns = time.get_clock_info("perf_counter").resolution * 1e9
            smallest = None
            for _ in range(self.resolution_probes):
                first = self.now()
                second = self.now()
                while second == first:
                    second = self.now()
                delta = second - first
                if smallest is None or delta < smallest:
                    smallest = delta
            self._resolution_ns = max(declared_ns, float(smallest or 0))
        return self._resolution_ns

    def is_zero(self, duration_ns: float) -> bool:
        """True when a duration cannot be told apart from zero."""
        return duration_ns < self.resolution_ns()

    def verify_resolution(self, expected_cost_ns: float, *, family: Optional[str] = None) -> None:
        """Fail configuration if the clock is too coarse for ``expected_cost_ns``.

        Raises:
            BenchmarkError: ClockResolutionInsufficient when the resolution is
                not at least RESOLUTION_FACTOR times finer than the cost.
        """
        resolution = self.resolution_ns()
        if resolution * RESOLUTION_FACTOR > expected_cost_ns:
            raise BenchmarkError(
                ErrorKind.CLOCK_RESOLUTION_INSUFFICIENT,
                f"clock resolution {resolution:.1f} ns is not {RESOLUTION_FACTOR:.0f}x finer "
                f"than the expected cost of {expected_cost_ns:.1f} ns",
                family=family,
            )
