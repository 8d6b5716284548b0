"""Benchmark suite: validate, calibrate, time every candidate, aggregate.

Lifecycle:
    suite = BenchmarkSuite("stencil", RunConfiguration(problem_size=512))
    suite.register(ScalarStencil())
    suite.register(BroadcastStencil())
    suite.set_reference("stencil-scalar")
    table = suite.run()

Configuration errors raise before any timing. DegenerateMeasurement and
CandidateTimeout become failed rows and the suite moves on.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from kernelbench.benchmark.aggregator import StatisticsAggregator
from kernelbench.benchmark.baseline import BASELINE_ID, BaselineCalibrator, BaselineResult
from kernelbench.benchmark.candidate import KernelCandidate
from kernelbench.benchmark import registry
from kernelbench.benchmark.results import ResultRow, ResultTable
from kernelbench.config import RunConfiguration, resolve_environment_tag
from kernelbench.errors import BenchmarkError, ErrorKind
from kernelbench.harness.benchmark_harness import Measurement, RunHarness
from kernelbench.harness.clock import ClockSource
from kernelbench.harness.sink import Sink

logger = logging.getLogger(__name__)

MIN_CANDIDATES = 2


class BenchmarkSuite:
    """Group of semantically equivalent candidates sharing one family."""

    def __init__(
        self,
        family: str,
        config: RunConfiguration,
        *,
        clock: Optional[ClockSource] = None,
        environment_tag: Optional[str] = None,
        numeric_equivalence: Optional[bool] = None,
        tolerance: Optional[float] = None,
        isolated_runner=None,
    ):
        spec = registry.get_family(family)
        if spec is not None:
            config = config.with_defaults(spec.default_parameters)
        self.family = family
        self.config = config
        self.environment_tag = resolve_environment_tag(environment_tag)
        self.clock = clock or ClockSource()
        self.harness = RunHarness(self.clock, self.environment_tag)
        self.calibrator = BaselineCalibrator(self.harness)
        self.numeric_equivalence = (
            numeric_equivalence if numeric_equivalence is not None
            else bool(spec and spec.numeric_equivalence)
        )
        self.tolerance = tolerance if tolerance is not None else (spec.tolerance if spec else 1e-9)
        self.reference_id: Optional[str] = None
        self.baseline: Optional[BaselineResult] = None
        self._isolated_runner = isolated_runner
        self._candidates: Dict[str, KernelCandidate] = {}
        self._slowest_wall_s = 0.0

    @property
    def candidates(self) -> List[KernelCandidate]:
        return list(self._candidates.values())

    def register(self, candidate: KernelCandidate) -> None:
        if candidate.family != self.family:
            raise BenchmarkError(
                ErrorKind.FAMILY_MISMATCH,
                f"candidate declares family {candidate.family!r}",
                candidate_id=candidate.identifier,
                family=self.family,
            )
        if candidate.identifier in self._candidates or candidate.identifier == BASELINE_ID:
            raise BenchmarkError(
                ErrorKind.CONFIGURATION_INVALID,
                "candidate identifier already in use",
                candidate_id=candidate.identifier,
                family=self.family,
            )
        self._candidates[candidate.identifier] = candidate

    def set_reference(self, candidate_id: str) -> None:
        if candidate_id not in self._candidates:
            raise BenchmarkError(
                ErrorKind.UNKNOWN_CANDIDATE,
                "reference must be registered first",
                candidate_id=candidate_id,
                family=self.family,
            )
        self.reference_id = candidate_id

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Every configuration-time check; raises before anything is timed."""
        self.config.validate()
        if len(self._candidates) < MIN_CANDIDATES:
            raise BenchmarkError(
                ErrorKind.INSUFFICIENT_CANDIDATES,
                f"{len(self._candidates)} candidate(s) registered, need at least {MIN_CANDIDATES}",
                family=self.family,
            )
        if self.reference_id is None:
            self.reference_id = next(iter(self._candidates))
        for candidate in self._candidates.values():
            candidate.check_config(self.config)
        if self.config.isolate:
            for candidate_id in self._candidates:
                if not registry.is_registered(self.family, candidate_id):
                    raise BenchmarkError(
                        ErrorKind.CONFIGURATION_INVALID,
                        "isolated runs need candidates from the registry",
                        candidate_id=candidate_id,
                        family=self.family,
                    )
        if self.config.min_expected_duration_ns is not None:
            self.clock.verify_resolution(self.config.min_expected_duration_ns, family=self.family)
        if self.numeric_equivalence:
            self.check_equivalence()

    def check_equivalence(self) -> Dict[str, float]:
        """Run each candidate once and compare reductions against the reference.

        Raises:
            BenchmarkError: SemanticMismatch naming the diverging candidate and
                the relative divergence.
        """
        values = {
            candidate_id: self._reduction(candidate)
            for candidate_id, candidate in self._candidates.items()
        }
        expected = values[self.reference_id]
        for candidate_id, value in values.items():
            divergence = relative_divergence(value, expected)
            # NaN never compares within tolerance
            if not divergence <= self.tolerance:
                raise BenchmarkError(
                    ErrorKind.SEMANTIC_MISMATCH,
                    f"reduction {value!r} diverges from reference {self.reference_id} "
                    f"({expected!r}) by {divergence:.3e} relative (tolerance {self.tolerance:.0e})",
                    candidate_id=candidate_id,
                    family=self.family,
                )
        return values

    def _reduction(self, candidate: KernelCandidate) -> float:
        sink = Sink()
        candidate.setup(self.config)
        try:
            candidate.invoke(self.config, sink)
        finally:
            candidate.teardown()
        return float(sink.value)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def calibrate_baseline(self) -> BaselineResult:
        if self.baseline is None:
            if self._isolated_runner is not None:
                measurement = self._isolated_runner.measure(
                    self.family, BASELINE_ID, self.config, self.config.initial_timeout_seconds
                )
                self.baseline = self.calibrator.from_measurement(self.family, measurement)
                self.calibrator.store(self.baseline)
            else:
                self.baseline = self.calibrator.calibrate(
                    self.family, self.config, self.config.initial_timeout_seconds
                )
            if self.config.min_expected_duration_ns is None:
                # The baseline repetition is the cheapest timed block in the family
                self.clock.verify_resolution(self.baseline.shortest_duration, family=self.family)
        return self.baseline

    def ceiling_seconds(self) -> float:
        """Per-candidate wall-clock ceiling.

        An explicit ``timeout_seconds`` wins; otherwise the larger of the
        initial ceiling and ``timeout_multiplier`` times the slowest candidate
        observed so far in this family.
        """
        if self.config.timeout_seconds is not None:
            return self.config.timeout_seconds
        return max(
            self.config.initial_timeout_seconds,
            self.config.timeout_multiplier * self._slowest_wall_s,
        )

    def run(self) -> ResultTable:
        self.validate()
        if self._isolated_runner is None and self.config.isolate:
            from kernelbench.harness.isolated_runner import IsolatedRunner

            self._isolated_runner = IsolatedRunner(self.environment_tag)
        baseline = self.calibrate_baseline()

        measurements: Dict[str, Measurement] = {}
        failures: Dict[str, BenchmarkError] = {}
        for candidate_id, candidate in self._candidates.items():
            ceiling = self.ceiling_seconds()
            logger.info("Timing %s/%s (ceiling %.1fs)", self.family, candidate_id, ceiling)
            try:
                measurement = self._measure(candidate, ceiling)
            except BenchmarkError as exc:
                if not exc.kind.is_candidate_scoped:
                    raise
                logger.warning("%s", exc)
                failures[candidate_id] = exc
                continue
            if len(measurement.raw_durations) != self.config.repetition_count:
                raise RuntimeError(
                    f"{candidate_id}: {len(measurement.raw_durations)} samples for "
                    f"{self.config.repetition_count} repetitions"
                )
            self._slowest_wall_s = max(self._slowest_wall_s, measurement.wall_time_s)
            measurements[candidate_id] = measurement

        return self._build_table(baseline, measurements, failures)

    def _measure(self, candidate: KernelCandidate, ceiling: float) -> Measurement:
        if self._isolated_runner is not None:
            return self._isolated_runner.measure(
                self.family, candidate.identifier, self.config, ceiling
            )
        return self.harness.measure(
            candidate, self.config, timeout_seconds=ceiling, family=self.family
        )

    def _build_table(
        self,
        baseline: BaselineResult,
        measurements: Dict[str, Measurement],
        failures: Dict[str, BenchmarkError],
    ) -> ResultTable:
        aggregator = StatisticsAggregator(self.family, self.reference_id, baseline.duration_mean)
        bias_params = {}
        for candidate_id in measurements:
            params = self._candidates[candidate_id].modulo_bias_params(self.config)
            if params is not None:
                bias_params[candidate_id] = params
        stats, errors = aggregator.aggregate(
            {cid: m.raw_durations for cid, m in measurements.items()}, bias_params
        )
        if self.reference_id in failures:
            errors.append(BenchmarkError(
                failures[self.reference_id].kind,
                "reference failed; relative columns omitted",
                candidate_id=self.reference_id,
                family=self.family,
            ))
        stats_by_id = {stat.candidate_id: stat for stat in stats}

        rows = []
        for candidate_id in self._candidates:
            rows.append(ResultRow(
                candidate_id=candidate_id,
                is_reference=candidate_id == self.reference_id,
                stat=stats_by_id.get(candidate_id),
                error=failures.get(candidate_id),
            ))
        for error in errors:
            logger.warning("%s", error)
        return ResultTable(
            family=self.family,
            reference_id=self.reference_id,
            environment_tag=self.environment_tag,
            config=self.config,
            baseline=baseline,
            rows=rows,
            errors=errors,
            measurements=measurements,
        )


def relative_divergence(value: float, expected: float) -> float:
    scale = max(abs(value), abs(expected))
    if scale == 0.0:
        return 0.0
    return abs(value - expected) / scale


def build_suite(
    family: str,
    config: RunConfiguration,
    *,
    candidate_ids: Optional[Sequence[str]] = None,
    reference: Optional[str] = None,
    clock: Optional[ClockSource] = None,
    environment_tag: Optional[str] = None,
) -> BenchmarkSuite:
    """Build a suite from registered candidates (all of the family by default)."""
    spec = registry.require_family(family)
    suite = BenchmarkSuite(family, config, clock=clock, environment_tag=environment_tag)
    for candidate_id in candidate_ids or registry.candidate_ids(family):
        suite.register(registry.create_candidate(family, candidate_id))
    if reference is None:
        reference = spec.default_reference
        registered = [candidate.identifier for candidate in suite.candidates]
        if reference not in registered:
            reference = registered[0] if registered else None
    if reference is not None:
        suite.set_reference(reference)
    return suite
