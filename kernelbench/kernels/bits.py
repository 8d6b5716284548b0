"""Random-bit extraction kernels.

``bit-cached-word`` draws one 32-bit word and hands out its bits one at a
time. The word and shift position live in an explicit ``BitExtractState``
that the caller passes in and receives back, so the extractor holds no
hidden state between calls.
"""

from __future__ import annotations

import random
from typing import Callable, NamedTuple, Tuple

from kernelbench.benchmark.candidate import KernelCandidate
from kernelbench.benchmark.registry import FamilySpec, register_candidate, register_family
from kernelbench.config import RunConfiguration
from kernelbench.harness.sink import Sink

FAMILY = "bit-extract"
WORD_BITS = 32

register_family(FamilySpec(
    tag=FAMILY,
    description="Single random bits: cached word vs fresh draws",
    default_reference="bit-cached-word",
))


class BitExtractState(NamedTuple):
    current_word: int = 0
    shift_count: int = WORD_BITS  # Exhausted: the next call draws a word


def extract_bit(
    state: BitExtractState, draw_word: Callable[[], int]
) -> Tuple[int, BitExtractState]:
    """Return the next bit (least significant first) and the advanced state."""
    word, shift = state
    if shift >= WORD_BITS:
        word = draw_word()
        shift = 0
    return (word >> shift) & 1, BitExtractState(word, shift + 1)


@register_candidate
class CachedWordBits(KernelCandidate):
    identifier = "bit-cached-word"
    family = FAMILY
    description = "One MT19937 word per 32 bits, explicit state"

    def setup(self, config: RunConfiguration) -> None:
        rng = random.Random(config.seed)
        self.draw_word = lambda: rng.getrandbits(WORD_BITS)
        self.state = BitExtractState()

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        absorb = sink.absorb
        draw_word = self.draw_word
        state = self.state
        for _ in range(config.problem_size):
            bit, state = extract_bit(state, draw_word)
            absorb(bit)
        self.state = state


@register_candidate
class GetrandbitsBits(KernelCandidate):
    identifier = "bit-getrandbits"
    family = FAMILY
    description = "random.getrandbits(1) per bit"

    def setup(self, config: RunConfiguration) -> None:
        self.rng = random.Random(config.seed)

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        absorb = sink.absorb
        getrandbits = self.rng.getrandbits
        for _ in range(config.problem_size):
            absorb(getrandbits(1))


@register_candidate
class MaskWordBits(KernelCandidate):
    identifier = "bit-mask-word"
    family = FAMILY
    description = "Fresh 32-bit word per bit, low bit masked"

    def setup(self, config: RunConfiguration) -> None:
        self.rng = random.Random(config.seed)

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        absorb = sink.absorb
        getrandbits = self.rng.getrandbits
        for _ in range(config.problem_size):
            absorb(getrandbits(WORD_BITS) & 1)
