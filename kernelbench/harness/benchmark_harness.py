"""Run harness: warm-up, timed repetitions and per-candidate safety checks.

Each repetition times ``sample_count`` back-to-back invocations of a candidate
as one block. Candidates run to completion, one at a time; the harness never
interleaves two candidates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from kernelbench.benchmark.candidate import KernelCandidate
from kernelbench.config import RunConfiguration
from kernelbench.errors import BenchmarkError, ErrorKind
from kernelbench.harness.clock import ClockSource
from kernelbench.harness.sink import Sink

logger = logging.getLogger(__name__)

NS_PER_SECOND = 1_000_000_000


@dataclass(frozen=True)
class Measurement:
    """Raw timing samples for one (candidate, configuration) execution."""
    candidate_id: str
    raw_durations: Tuple[int, ...]  # Nanoseconds, one per repetition
    environment_tag: str = ""
    wall_time_s: float = 0.0  # Warm-up plus timed repetitions
    sink_value: Any = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidate_id": self.candidate_id,
            "raw_durations": list(self.raw_durations),
            "environment_tag": self.environment_tag,
            "wall_time_s": self.wall_time_s,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Measurement":
        return cls(
            candidate_id=data["candidate_id"],
            raw_durations=tuple(int(d) for d in data["raw_durations"]),
            environment_tag=data.get("environment_tag", ""),
            wall_time_s=float(data.get("wall_time_s", 0.0)),
        )


class RunHarness:
    """Times candidates against a clock, enforcing timeout and liveness checks."""

    def __init__(self, clock: Optional[ClockSource] = None, environment_tag: str = ""):
        self.clock = clock or ClockSource()
        self.environment_tag = environment_tag

    def measure(
        self,
        candidate: KernelCandidate,
        config: RunConfiguration,
        *,
        timeout_seconds: Optional[float] = None,
        family: Optional[str] = None,
    ) -> Measurement:
        """Run warm-up then ``repetition_count`` timed repetitions.

        Args:
            candidate: Kernel to time; gets a private Sink.
            config: Run configuration shared by the suite.
            timeout_seconds: Wall-clock ceiling for the whole measurement.
                Checked between invocations during warm-up and between
                repetitions, so the timed region carries no extra clock reads.
            family: Family tag used in error reports.

        Raises:
            BenchmarkError: DegenerateMeasurement if a repetition is
                indistinguishable from zero or the sink was bypassed;
                CandidateTimeout if the ceiling is exceeded.
        """
        family = family or candidate.family
        candidate_id = candidate.identifier
        sink = Sink()
        deadline_ns = None
        start_ns = self.clock.now()
        if timeout_seconds is not None:
            deadline_ns = start_ns + int(timeout_seconds * NS_PER_SECOND)

        candidate.setup(config)
        try:
            for _ in range(config.warm_up_count):
                candidate.invoke(config, sink)
                self._check_deadline(deadline_ns, timeout_seconds, candidate_id, family)

            durations = []
            samples = config.sample_count
            clock = self.clock
            invoke = candidate.invoke
            for repetition in range(config.repetition_count):
                absorbed_before = sink.count
                t0 = clock.now()
                for _ in range(samples):
                    invoke(config, sink)
                t1 = clock.now()
                duration = clock.duration_between(t0, t1)
                self._check_liveness(
                    duration, sink.count - absorbed_before, samples, repetition, candidate_id, family
                )
                durations.append(duration)
                self._check_deadline(deadline_ns, timeout_seconds, candidate_id, family)
        finally:
            candidate.teardown()

        wall_time_s = self.clock.duration_between(start_ns, self.clock.now()) / NS_PER_SECOND
        logger.debug(
            "%s/%s: %d repetitions in %.3fs (sink=%r)",
            family, candidate_id, len(durations), wall_time_s, sink.value,
        )
        return Measurement(
            candidate_id=candidate_id,
            raw_durations=tuple(durations),
            environment_tag=self.environment_tag,
            wall_time_s=wall_time_s,
            sink_value=sink.value,
        )

    def _check_liveness(
        self,
        duration: int,
        absorbed: int,
        samples: int,
        repetition: int,
        candidate_id: str,
        family: str,
    ) -> None:
        if absorbed < samples:
            raise BenchmarkError(
                ErrorKind.DEGENERATE_MEASUREMENT,
                f"repetition {repetition}: {absorbed} sink writes for {samples} invocations; "
                "results are not being observed",
                candidate_id=candidate_id,
                family=family,
            )
        if self.clock.is_zero(duration):
            raise BenchmarkError(
                ErrorKind.DEGENERATE_MEASUREMENT,
                f"repetition {repetition}: duration {duration} ns is below clock resolution "
                f"({self.clock.resolution_ns():.1f} ns)",
                candidate_id=candidate_id,
                family=family,
            )

    def _check_deadline(
        self,
        deadline_ns: Optional[int],
        timeout_seconds: Optional[float],
        candidate_id: str,
        family: str,
    ) -> None:
        if deadline_ns is not None and self.clock.now() > deadline_ns:
            raise BenchmarkError(
                ErrorKind.CANDIDATE_TIMEOUT,
                f"exceeded ceiling of {timeout_seconds:.3f}s",
                candidate_id=candidate_id,
                family=family,
            )
