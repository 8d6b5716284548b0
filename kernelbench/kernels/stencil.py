"""Nearest-neighbour stencil reduced to a single sum.

For every interior cell of an N x N grid the kernel forms
``multiplier * (north + south + west + east)`` and sums the results. The
three candidates differ only in how they traverse the grid; reductions agree
up to floating-point summation order.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

import numpy as np
import torch

from kernelbench.benchmark.candidate import KernelCandidate
from kernelbench.benchmark.registry import FamilySpec, register_candidate, register_family
from kernelbench.config import RunConfiguration
from kernelbench.harness.sink import Sink

FAMILY = "stencil"
DEFAULT_MULTIPLIER = 1.42

register_family(FamilySpec(
    tag=FAMILY,
    description="Nearest-neighbour grid sum (scalar loop vs broadcast vs torch)",
    default_reference="stencil-scalar",
    numeric_equivalence=True,
    tolerance=1e-9,
    default_parameters={"multiplier": DEFAULT_MULTIPLIER},
))


@lru_cache(maxsize=4)
def make_grid(size: int, seed: int) -> np.ndarray:
    """Read-only ``size x size`` grid of doubles in [0, 1)."""
    grid = np.random.default_rng(seed).random((size, size))
    grid.setflags(write=False)
    return grid


def stencil_reduce_scalar(rows: List[List[float]], multiplier: float) -> float:
    n = len(rows)
    total = 0.0
    for i in range(1, n - 1):
        above = rows[i - 1]
        row = rows[i]
        below = rows[i + 1]
        for j in range(1, n - 1):
            total += multiplier * (above[j] + below[j] + row[j - 1] + row[j + 1])
    return total


def stencil_reduce_broadcast(grid: np.ndarray, multiplier: float) -> float:
    neighbours = grid[:-2, 1:-1] + grid[2:, 1:-1] + grid[1:-1, :-2] + grid[1:-1, 2:]
    return float((multiplier * neighbours).sum())


def stencil_reduce_torch(grid: torch.Tensor, multiplier: float) -> float:
    neighbours = grid[:-2, 1:-1] + grid[2:, 1:-1] + grid[1:-1, :-2] + grid[1:-1, 2:]
    return (multiplier * neighbours).sum().item()


class _StencilCandidate(KernelCandidate):
    family = FAMILY

    def __init__(self):
        self.multiplier = DEFAULT_MULTIPLIER

    def setup(self, config: RunConfiguration) -> None:
        self.multiplier = float(config.param("multiplier", DEFAULT_MULTIPLIER))


@register_candidate
class ScalarStencil(_StencilCandidate):
    identifier = "stencil-scalar"
    description = "Pure-Python nested loop over list rows"

    def __init__(self):
        super().__init__()
        self.rows: Optional[List[List[float]]] = None

    def setup(self, config: RunConfiguration) -> None:
        super().setup(config)
        self.rows = make_grid(config.problem_size, config.seed).tolist()

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        sink.absorb(stencil_reduce_scalar(self.rows, self.multiplier))

    def teardown(self) -> None:
        self.rows = None


@register_candidate
class BroadcastStencil(_StencilCandidate):
    identifier = "stencil-broadcast"
    description = "NumPy shifted-slice broadcast"

    def __init__(self):
        super().__init__()
        self.grid: Optional[np.ndarray] = None

    def setup(self, config: RunConfiguration) -> None:
        super().setup(config)
        self.grid = make_grid(config.problem_size, config.seed)

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        sink.absorb(stencil_reduce_broadcast(self.grid, self.multiplier))

    def teardown(self) -> None:
        self.grid = None


@register_candidate
class TorchStencil(_StencilCandidate):
    identifier = "stencil-torch"
    description = "PyTorch float64 CPU tensor slices"

    def __init__(self):
        super().__init__()
        self.grid: Optional[torch.Tensor] = None

    def setup(self, config: RunConfiguration) -> None:
        super().setup(config)
        # Writable copy; the cached grid is read-only
        self.grid = torch.from_numpy(np.array(make_grid(config.problem_size, config.seed)))

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        sink.absorb(stencil_reduce_torch(self.grid, self.multiplier))

    def teardown(self) -> None:
        self.grid = None
