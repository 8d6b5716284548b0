"""Kernel candidate interface.

A candidate is one implementation of a semantic operation. Candidates in the
same family must be interchangeable: same inputs, same observable result (or
same output distribution for random families).

Usage:
    class MyKernel(KernelCandidate):
        identifier = "my-kernel"
        family = "stencil"

        def setup(self, config: RunConfiguration) -> None:
            self.data = build_inputs(config.problem_size, config.seed)

        def invoke(self, config: RunConfiguration, sink: Sink) -> None:
            sink.absorb(compute(self.data))
"""

from __future__ import annotations

import inspect
from typing import Callable, Optional, Tuple

from kernelbench.config import RunConfiguration
from kernelbench.errors import BenchmarkError, ErrorKind
from kernelbench.harness.sink import Sink


class KernelCandidate:
    """Base class for benchmarkable kernel variants.

    Subclasses set ``identifier`` and ``family`` and override ``invoke``.
    ``setup`` prepares inputs outside the timed region; ``invoke`` must write
    every value it produces into the sink.
    """

    identifier: str = ""
    family: str = ""
    description: str = ""

    def check_config(self, config: RunConfiguration) -> None:
        """Raise ConfigurationInvalid if ``config`` cannot drive this kernel."""

    def setup(self, config: RunConfiguration) -> None:
        """Prepare inputs. Not timed."""

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        raise NotImplementedError("Subclasses must implement invoke()")

    def teardown(self) -> None:
        """Release inputs. Not timed."""

    def modulo_bias_params(self, config: RunConfiguration) -> Optional[Tuple[int, int]]:
        """Return ``(rng_max, range)`` for ``value % range`` reductions, else None."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(identifier={self.identifier!r}, family={self.family!r})"


class FunctionCandidate(KernelCandidate):
    """Wrap a plain ``fn(config, sink)`` as a candidate."""

    def __init__(
        self,
        identifier: str,
        family: str,
        fn: Callable[[RunConfiguration, Sink], None],
        setup: Optional[Callable[[RunConfiguration], None]] = None,
        description: str = "",
    ):
        self.identifier = identifier
        self.family = family
        self.description = description
        self._fn = fn
        self._setup = setup
        check_invoke_signature(fn, identifier)

    def setup(self, config: RunConfiguration) -> None:
        if self._setup is not None:
            self._setup(config)

    def invoke(self, config: RunConfiguration, sink: Sink) -> None:
        self._fn(config, sink)


def check_invoke_signature(fn: Callable, identifier: str) -> None:
    """Ensure ``fn`` can be called as ``fn(config, sink)``.

    Raises:
        BenchmarkError: ConfigurationInvalid naming the candidate otherwise.
    """
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError) as exc:
        raise BenchmarkError(
            ErrorKind.CONFIGURATION_INVALID,
            f"cannot inspect invoke signature: {exc}",
            candidate_id=identifier,
        ) from exc
    try:
        signature.bind(None, None)
    except TypeError:
        raise BenchmarkError(
            ErrorKind.CONFIGURATION_INVALID,
            f"invoke must accept (config, sink), got {signature}",
            candidate_id=identifier,
        ) from None
