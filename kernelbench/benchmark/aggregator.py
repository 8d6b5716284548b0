"""Reduce raw repetition durations into comparable statistics.

When at least TRIM_MIN_SAMPLES repetitions are available, the single highest
and single lowest sample are dropped before aggregating. Trimming is recorded
on every summary so it is never silent.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from kernelbench.errors import BenchmarkError, ErrorKind

logger = logging.getLogger(__name__)

TRIM_MIN_SAMPLES = 5


@dataclass(frozen=True)
class SampleSummary:
    mean: float
    standard_deviation: float  # Population
    samples_used: int
    trimmed: bool


@dataclass(frozen=True)
class AggregatedStat:
    candidate_id: str
    mean: float
    standard_deviation: float
    relative_to_reference: Optional[float]
    relative_to_baseline: Optional[float]
    bias: Optional[float] = None
    below_baseline: bool = False
    trimmed: bool = False


def summarize(durations: Sequence[float]) -> SampleSummary:
    """Mean and population standard deviation, trimming the extremes at n >= 5."""
    if not durations:
        raise ValueError("No timing data collected")
    samples = sorted(durations)
    trimmed = len(samples) >= TRIM_MIN_SAMPLES
    if trimmed:
        samples = samples[1:-1]
    return SampleSummary(
        mean=statistics.fmean(samples),
        standard_deviation=statistics.pstdev(samples) if len(samples) > 1 else 0.0,
        samples_used=len(samples),
        trimmed=trimmed,
    )


def modulo_bias(rng_max: int, value_range: int) -> float:
    """Fraction of generator outputs that skew ``value % value_range``.

    The generator yields ``rng_max + 1`` distinct values; only the largest
    multiple of ``value_range`` below that count maps uniformly.
    """
    if value_range <= 0:
        raise ValueError(f"range must be positive, got {value_range}")
    span = rng_max + 1
    return 1 - ((span // value_range) * value_range) / span


class StatisticsAggregator:
    """Builds AggregatedStats for a family from its measurements and baseline."""

    def __init__(self, family: str, reference_id: str, baseline_mean: float):
        self.family = family
        self.reference_id = reference_id
        self.baseline_mean = baseline_mean

    def aggregate(
        self,
        durations: Mapping[str, Sequence[float]],
        bias_params: Optional[Mapping[str, Tuple[int, int]]] = None,
    ) -> Tuple[List[AggregatedStat], List[BenchmarkError]]:
        """Aggregate every successful candidate.

        Args:
            durations: candidate_id -> raw durations, successful candidates only.
            bias_params: candidate_id -> (rng_max, range) for modulo reducers.

        Returns:
            The stats (in ``durations`` order) and any family-level errors.
            If the reference is absent every relative column is None.
        """
        bias_params = bias_params or {}
        errors: List[BenchmarkError] = []
        summaries: Dict[str, SampleSummary] = {
            candidate_id: summarize(samples) for candidate_id, samples in durations.items()
        }

        reference = summaries.get(self.reference_id)
        reference_mean = reference.mean if reference is not None else None
        adjusted_reference = None
        if reference_mean is not None:
            adjusted_reference = reference_mean - self.baseline_mean
            if adjusted_reference <= 0:
                errors.append(BenchmarkError(
                    ErrorKind.BASELINE_EXCEEDS_REFERENCE,
                    f"baseline mean {self.baseline_mean:.1f} ns is not below reference mean "
                    f"{reference_mean:.1f} ns; relative-to-baseline column omitted",
                    candidate_id=self.reference_id,
                    family=self.family,
                ))
                adjusted_reference = None

        stats = []
        for candidate_id, summary in summaries.items():
            relative_to_reference = None
            relative_to_baseline = None
            if reference_mean is not None:
                if candidate_id == self.reference_id:
                    relative_to_reference = 1.0
                elif reference_mean > 0:
                    relative_to_reference = summary.mean / reference_mean
            if adjusted_reference is not None:
                relative_to_baseline = (summary.mean - self.baseline_mean) / adjusted_reference
            below_baseline = summary.mean < self.baseline_mean
            if below_baseline:
                logger.warning(
                    "%s/%s is faster than the overhead-only baseline (%.1f < %.1f ns)",
                    self.family, candidate_id, summary.mean, self.baseline_mean,
                )
            bias = None
            if candidate_id in bias_params:
                bias = modulo_bias(*bias_params[candidate_id])
            stats.append(AggregatedStat(
                candidate_id=candidate_id,
                mean=summary.mean,
                standard_deviation=summary.standard_deviation,
                relative_to_reference=relative_to_reference,
                relative_to_baseline=relative_to_baseline,
                bias=bias,
                below_baseline=below_baseline,
                trimmed=summary.trimmed,
            ))
        return stats, errors
