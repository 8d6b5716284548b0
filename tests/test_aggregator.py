"""Tests for statistics aggregation and the modulo-bias metric."""

import math
import statistics

import pytest
from hypothesis import given, strategies as st

from kernelbench.benchmark.aggregator import (
    StatisticsAggregator,
    modulo_bias,
    summarize,
)
from kernelbench.errors import ErrorKind


class TestSummarize:
    def test_small_samples_are_not_trimmed(self):
        summary = summarize([10, 20, 30, 40])
        assert not summary.trimmed
        assert summary.samples_used == 4
        assert summary.mean == 25.0
        assert summary.standard_deviation == pytest.approx(statistics.pstdev([10, 20, 30, 40]))

    def test_trims_single_highest_and_lowest_at_five(self):
        summary = summarize([1000, 10, 20, 30, 1])
        assert summary.trimmed
        assert summary.samples_used == 3
        assert summary.mean == 20.0
        assert summary.standard_deviation == pytest.approx(statistics.pstdev([10, 20, 30]))

    def test_trims_only_one_of_duplicated_extremes(self):
        summary = summarize([5, 5, 5, 9, 9, 9])
        assert summary.samples_used == 4
        assert summary.mean == 7.0

    def test_single_sample_has_zero_deviation(self):
        summary = summarize([42])
        assert summary.mean == 42.0
        assert summary.standard_deviation == 0.0

    def test_empty_samples_rejected(self):
        with pytest.raises(ValueError):
            summarize([])


class TestAggregator:
    def test_reference_is_exactly_one(self):
        aggregator = StatisticsAggregator("synthetic", "ref", baseline_mean=3.0)
        stats, errors = aggregator.aggregate({"ref": [7.1, 7.3, 6.9], "other": [3.5, 3.6, 3.7]})
        by_id = {s.candidate_id: s for s in stats}
        assert errors == []
        assert by_id["ref"].relative_to_reference == 1.0
        assert by_id["ref"].relative_to_baseline == 1.0

    def test_relative_to_baseline_subtracts_overhead(self):
        aggregator = StatisticsAggregator("synthetic", "ref", baseline_mean=10.0)
        stats, _ = aggregator.aggregate({"ref": [210.0], "fast": [110.0]})
        fast = next(s for s in stats if s.candidate_id == "fast")
        assert fast.relative_to_reference == pytest.approx(110.0 / 210.0)
        assert fast.relative_to_baseline == pytest.approx(0.5)

    def test_baseline_exceeding_reference_blanks_only_baseline_column(self):
        aggregator = StatisticsAggregator("synthetic", "ref", baseline_mean=100.0)
        stats, errors = aggregator.aggregate({"ref": [90.0], "other": [180.0]})
        assert [e.kind for e in errors] == [ErrorKind.BASELINE_EXCEEDS_REFERENCE]
        assert errors[0].family == "synthetic"
        for stat in stats:
            assert stat.relative_to_baseline is None
            assert stat.relative_to_reference is not None
        assert next(s for s in stats if s.candidate_id == "other").relative_to_reference == 2.0

    def test_candidate_below_baseline_is_flagged(self):
        aggregator = StatisticsAggregator("synthetic", "ref", baseline_mean=50.0)
        stats, _ = aggregator.aggregate({"ref": [200.0], "suspicious": [20.0]})
        by_id = {s.candidate_id: s for s in stats}
        assert by_id["suspicious"].below_baseline
        assert not by_id["ref"].below_baseline

    def test_missing_reference_leaves_relative_columns_empty(self):
        aggregator = StatisticsAggregator("synthetic", "ref", baseline_mean=1.0)
        stats, errors = aggregator.aggregate({"other": [5.0]})
        assert errors == []
        assert stats[0].relative_to_reference is None
        assert stats[0].relative_to_baseline is None

    def test_bias_attached_only_to_declared_candidates(self):
        aggregator = StatisticsAggregator("rng-distribution", "ref", baseline_mean=1.0)
        stats, _ = aggregator.aggregate(
            {"ref": [10.0], "mod": [5.0]}, bias_params={"mod": (2**32 - 1, 6)}
        )
        by_id = {s.candidate_id: s for s in stats}
        assert by_id["ref"].bias is None
        assert by_id["mod"].bias == modulo_bias(2**32 - 1, 6)


class TestModuloBias:
    def test_minstd_range_two_matches_literal_constant(self):
        rng_max = 2**31 - 2
        expected = 1 - (math.floor((2**31 - 2 + 1) / 2) * 2) / (2**31 - 2 + 1)
        assert modulo_bias(rng_max, 2) == expected

    def test_power_of_two_range_is_unbiased_for_mt19937(self):
        assert modulo_bias(2**32 - 1, 2) == 0.0
        assert modulo_bias(2**32 - 1, 256) == 0.0

    def test_rejects_non_positive_range(self):
        with pytest.raises(ValueError):
            modulo_bias(100, 0)

    @given(
        rng_max=st.integers(min_value=1, max_value=2**40),
        value_range=st.integers(min_value=1, max_value=10**6),
    )
    def test_bias_bounds(self, rng_max, value_range):
        bias = modulo_bias(rng_max, value_range)
        span = rng_max + 1
        assert 0.0 <= bias <= 1.0
        # At most range - 1 leftover values out of span
        assert bias <= (value_range - 1) / span + 1e-12
        if span % value_range == 0:
            assert bias == 0.0
