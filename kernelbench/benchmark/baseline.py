"""Baseline calibration: the cost of the measurement scaffolding alone."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from kernelbench.benchmark.candidate import KernelCandidate
from kernelbench.benchmark.aggregator import summarize
from kernelbench.config import RunConfiguration
from kernelbench.harness.benchmark_harness import Measurement, RunHarness
from kernelbench.harness.sink import Sink

logger = logging.getLogger(__name__)

BASELINE_ID = "constant-write"


class ConstantWriteCandidate(KernelCandidate):
    """Writes the literal ``1`` into the sink ``problem_size`` times."""

    identifier = BASELINE_ID
    description = "Overhead-only loop: constant sink writes"

    def __init__(self, family: str):
        self.family = family

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        absorb = sink.absorb
        for _ in range(config.problem_size):
            absorb(1)


@dataclass(frozen=True)
class BaselineResult:
    family: str
    duration_mean: float
    measurement: Optional[Measurement] = None

    @property
    def shortest_duration(self) -> float:
        if self.measurement is None or not self.measurement.raw_durations:
            return self.duration_mean
        return float(min(self.measurement.raw_durations))


class BaselineCalibrator:
    """Measures and caches one BaselineResult per family."""

    def __init__(self, harness: RunHarness):
        self.harness = harness
        self._results = {}

    def calibrate(
        self,
        family: str,
        config: RunConfiguration,
        timeout_seconds: Optional[float] = None,
    ) -> BaselineResult:
        cached = self._results.get(family)
        if cached is not None:
            return cached
        measurement = self.harness.measure(
            ConstantWriteCandidate(family), config, timeout_seconds=timeout_seconds, family=family
        )
        result = self.from_measurement(family, measurement)
        self._results[family] = result
        return result

    def store(self, result: BaselineResult) -> None:
        self._results[result.family] = result

    @staticmethod
    def from_measurement(family: str, measurement: Measurement) -> BaselineResult:
        summary = summarize(measurement.raw_durations)
        logger.info("Baseline for %s: %.1f ns per repetition", family, summary.mean)
        return BaselineResult(family=family, duration_mean=summary.mean, measurement=measurement)
