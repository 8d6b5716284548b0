"""Accumulator that forces every kernel result to be observed."""

from __future__ import annotations


class Sink:
    """Optimization-opaque accumulator.

    ``absorb`` folds each value into ``value`` and bumps ``count``; both are
    read back by the harness after timing. The harness uses ``count`` to
    detect candidates that never publish a result.
    """

    __slots__ = ("value", "count")

    def __init__(self) -> None:
        self.value = 0
        self.count = 0

    def absorb(self, value) -> None:
        self.value += value
        self.count += 1

    def reset(self) -> None:
        self.value = 0
        self.count = 0

    def __repr__(self) -> str:
        return f"Sink(value={self.value!r}, count={self.count})"
