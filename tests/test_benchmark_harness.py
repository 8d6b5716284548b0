"""Tests for the run harness."""

import time

import pytest
from hypothesis import given, settings, strategies as st

from kernelbench.benchmark.candidate import FunctionCandidate, KernelCandidate
from kernelbench.config import RunConfiguration
from kernelbench.errors import BenchmarkError, ErrorKind
from kernelbench.harness.benchmark_harness import Measurement, RunHarness

from conftest import FakeClock, costed


class RecordingCandidate(KernelCandidate):
    identifier = "recording"
    family = "synthetic"

    def __init__(self, clock):
        self.clock = clock
        self.calls = 0
        self.setup_calls = 0
        self.teardown_calls = 0

    def setup(self, config):
        self.setup_calls += 1

    def invoke(self, config, sink):
        self.calls += 1
        self.clock.advance(10)
        sink.absorb(self.calls)

    def teardown(self):
        self.teardown_calls += 1


def test_measure_runs_warmup_and_samples(fake_clock, small_config):
    candidate = RecordingCandidate(fake_clock)
    measurement = RunHarness(fake_clock, "env").measure(candidate, small_config)

    expected_calls = small_config.warm_up_count + small_config.repetition_count * small_config.sample_count
    assert candidate.calls == expected_calls
    assert candidate.setup_calls == 1
    assert candidate.teardown_calls == 1
    assert len(measurement.raw_durations) == small_config.repetition_count
    # Two invocations of 10 ns plus one clock tick between t0 and t1
    assert set(measurement.raw_durations) == {21}
    assert measurement.environment_tag == "env"


@settings(max_examples=25, deadline=None)
@given(
    repetitions=st.integers(min_value=1, max_value=40),
    samples=st.integers(min_value=1, max_value=5),
    warm_up=st.integers(min_value=0, max_value=3),
)
def test_raw_durations_length_matches_repetition_count(repetitions, samples, warm_up):
    clock = FakeClock()
    config = RunConfiguration(
        sample_count=samples, warm_up_count=warm_up, repetition_count=repetitions, problem_size=4
    )
    measurement = RunHarness(clock).measure(costed("c", "synthetic", clock, 5), config)
    assert len(measurement.raw_durations) == repetitions


def test_sink_bypass_is_degenerate(fake_clock, small_config):
    candidate = costed("silent", "synthetic", fake_clock, 100, absorb=False)
    with pytest.raises(BenchmarkError) as excinfo:
        RunHarness(fake_clock).measure(candidate, small_config)
    assert excinfo.value.kind is ErrorKind.DEGENERATE_MEASUREMENT
    assert excinfo.value.candidate_id == "silent"


def test_zero_duration_is_degenerate(small_config):
    clock = FakeClock(tick_ns=0, resolution_ns=1.0)
    candidate = costed("free", "synthetic", clock, 0)
    with pytest.raises(BenchmarkError) as excinfo:
        RunHarness(clock).measure(candidate, small_config)
    assert excinfo.value.kind is ErrorKind.DEGENERATE_MEASUREMENT
    assert "resolution" in excinfo.value.message


def test_timeout_aborts_measurement(fake_clock, small_config):
    candidate = costed("slow", "synthetic", fake_clock, 2_000_000_000)
    with pytest.raises(BenchmarkError) as excinfo:
        RunHarness(fake_clock).measure(candidate, small_config, timeout_seconds=0.5)
    assert excinfo.value.kind is ErrorKind.CANDIDATE_TIMEOUT


def test_teardown_runs_after_failure(fake_clock, small_config):
    calls = []

    class Exploding(KernelCandidate):
        identifier = "boom"
        family = "synthetic"

        def invoke(self, config, sink):
            raise ZeroDivisionError("kernel bug")

        def teardown(self):
            calls.append("teardown")

    with pytest.raises(ZeroDivisionError):
        RunHarness(fake_clock).measure(Exploding(), small_config)
    assert calls == ["teardown"]


def test_real_clock_measurement_is_positive():
    config = RunConfiguration(sample_count=3, warm_up_count=1, repetition_count=3, problem_size=100)

    def busy(config, sink):
        total = 0
        for i in range(config.problem_size):
            total += i * i
        sink.absorb(total)

    measurement = RunHarness().measure(FunctionCandidate("busy", "synthetic", busy), config)
    assert all(d > 0 for d in measurement.raw_durations)
    assert measurement.wall_time_s > 0


def test_real_clock_busy_loop_times_out():
    config = RunConfiguration(sample_count=1, warm_up_count=0, repetition_count=3, problem_size=1)

    def spin(config, sink):
        end = time.perf_counter() + 0.2
        while time.perf_counter() < end:
            pass
        sink.absorb(1)

    started = time.perf_counter()
    with pytest.raises(BenchmarkError) as excinfo:
        RunHarness().measure(FunctionCandidate("spin", "synthetic", spin), config, timeout_seconds=0.02)
    assert excinfo.value.kind is ErrorKind.CANDIDATE_TIMEOUT
    # Aborted after the first repetition rather than running all three
    assert time.perf_counter() - started < 0.5


def test_measurement_dict_roundtrip():
    measurement = Measurement("a", (1, 2, 3), "env", 0.5)
    assert Measurement.from_dict(measurement.to_dict()) == measurement
