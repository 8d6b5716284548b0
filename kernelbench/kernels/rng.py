"""Random-number kernels: raw engine calls and range reduction.

``rng-call`` times engines producing raw words. ``rng-distribution`` times
ways of reducing those words to ``[0, range)``; the ``value % range``
candidates report their modulo bias next to their timing. Equivalence inside
these families is statistical, so no reduction check runs before timing.
"""

from __future__ import annotations

import math
import random
from typing import Optional, Tuple

import numpy as np

from kernelbench.benchmark.candidate import KernelCandidate
from kernelbench.benchmark.registry import FamilySpec, register_candidate, register_family
from kernelbench.config import RunConfiguration
from kernelbench.errors import BenchmarkError, ErrorKind
from kernelbench.harness.sink import Sink

CALL_FAMILY = "rng-call"
DISTRIBUTION_FAMILY = "rng-distribution"
DEFAULT_RANGE = 6

MT19937_MAX = 2**32 - 1

register_family(FamilySpec(
    tag=CALL_FAMILY,
    description="Raw generator calls (MT19937, minstd, NumPy MT19937)",
    default_reference="mt19937-raw",
))
register_family(FamilySpec(
    tag=DISTRIBUTION_FAMILY,
    description="Range reduction to [0, range): modulo vs rejection vs vectorized",
    default_reference="mt19937-distribution",
    default_parameters={"range": DEFAULT_RANGE},
))


class MinStdRand:
    """Park-Miller Lehmer generator, same sequence as ``std::minstd_rand``."""

    MULTIPLIER = 48271
    MODULUS = 2**31 - 1

    def __init__(self, seed: int = 1):
        seed %= self.MODULUS
        self.state = seed or 1

    def __call__(self) -> int:
        self.state = (self.state * self.MULTIPLIER) % self.MODULUS
        return self.state

    @staticmethod
    def min() -> int:
        return 1

    @classmethod
    def max(cls) -> int:
        return cls.MODULUS - 1


def range_param(config: RunConfiguration) -> int:
    value = config.param("range", DEFAULT_RANGE)
    if not math.isfinite(value) or value != int(value) or value < 1:
        raise BenchmarkError(
            ErrorKind.CONFIGURATION_INVALID,
            f"range must be a positive integer, got {value!r}",
            family=DISTRIBUTION_FAMILY,
        )
    return int(value)


# ----------------------------------------------------------------------
# rng-call
# ----------------------------------------------------------------------

@register_candidate
class Mt19937Raw(KernelCandidate):
    identifier = "mt19937-raw"
    family = CALL_FAMILY
    description = "random.Random (MT19937) 32-bit words"

    def setup(self, config: RunConfiguration) -> None:
        self.rng = random.Random(config.seed)

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        absorb = sink.absorb
        getrandbits = self.rng.getrandbits
        for _ in range(config.problem_size):
            absorb(getrandbits(32))


@register_candidate
class MinStdRaw(KernelCandidate):
    identifier = "minstd-raw"
    family = CALL_FAMILY
    description = "Lehmer minstd generator in pure Python"

    def setup(self, config: RunConfiguration) -> None:
        self.rng = MinStdRand(config.seed)

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        absorb = sink.absorb
        rng = self.rng
        for _ in range(config.problem_size):
            absorb(rng())


@register_candidate
class NumpyMt19937Raw(KernelCandidate):
    identifier = "numpy-mt19937-raw"
    family = CALL_FAMILY
    description = "NumPy MT19937 bit generator, vectorized draw then per-word sink writes"

    def setup(self, config: RunConfiguration) -> None:
        self.bit_generator = np.random.MT19937(config.seed)

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        absorb = sink.absorb
        for word in self.bit_generator.random_raw(config.problem_size).tolist():
            absorb(word)


# ----------------------------------------------------------------------
# rng-distribution
# ----------------------------------------------------------------------

class _RangeCandidate(KernelCandidate):
    family = DISTRIBUTION_FAMILY

    def check_config(self, config: RunConfiguration) -> None:
        range_param(config)


@register_candidate
class Mt19937Distribution(_RangeCandidate):
    identifier = "mt19937-distribution"
    description = "random.Random.randrange (unbiased rejection sampling)"

    def setup(self, config: RunConfiguration) -> None:
        self.rng = random.Random(config.seed)
        self.range = range_param(config)

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        absorb = sink.absorb
        randrange = self.rng.randrange
        upper = self.range
        for _ in range(config.problem_size):
            absorb(randrange(upper))


@register_candidate
class Mt19937Modulo(_RangeCandidate):
    identifier = "mt19937-modulo"
    description = "MT19937 word % range"

    def setup(self, config: RunConfiguration) -> None:
        self.rng = random.Random(config.seed)
        self.range = range_param(config)

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        absorb = sink.absorb
        getrandbits = self.rng.getrandbits
        upper = self.range
        for _ in range(config.problem_size):
            absorb(getrandbits(32) % upper)

    def modulo_bias_params(self, config: RunConfiguration) -> Optional[Tuple[int, int]]:
        return MT19937_MAX, range_param(config)


@register_candidate
class MinStdModulo(_RangeCandidate):
    identifier = "minstd-modulo"
    description = "minstd output % range"

    def setup(self, config: RunConfiguration) -> None:
        self.rng = MinStdRand(config.seed)
        self.range = range_param(config)

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        absorb = sink.absorb
        rng = self.rng
        upper = self.range
        for _ in range(config.problem_size):
            absorb(rng() % upper)

    def modulo_bias_params(self, config: RunConfiguration) -> Optional[Tuple[int, int]]:
        return MinStdRand.max(), range_param(config)


@register_candidate
class NumpyIntegers(_RangeCandidate):
    identifier = "numpy-integers"
    description = "numpy Generator.integers, vectorized draw then per-value sink writes"

    def setup(self, config: RunConfiguration) -> None:
        self.generator = np.random.Generator(np.random.MT19937(config.seed))
        self.range = range_param(config)

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        absorb = sink.absorb
        for value in self.generator.integers(0, self.range, size=config.problem_size).tolist():
            absorb(value)
