"""Run configuration and environment provenance."""

from __future__ import annotations

import math
import numbers
import os
import platform
import sys
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from kernelbench.errors import BenchmarkError, ErrorKind

ENV_TAG_VARIABLE = "KERNELBENCH_ENV_TAG"


@dataclass(frozen=True)
class RunConfiguration:
    """Configuration for one suite run. Immutable once the suite starts."""
    sample_count: int = 10
    warm_up_count: int = 2
    repetition_count: int = 7
    problem_size: int = 1000
    numeric_parameters: Mapping[str, float] = field(default_factory=dict)
    seed: int = 42
    timeout_seconds: Optional[float] = None  # Explicit per-candidate ceiling; None = derived
    timeout_multiplier: float = 10.0  # Ceiling = multiplier * slowest wall time seen in the family
    initial_timeout_seconds: float = 120.0  # Ceiling before anything has been observed
    isolate: bool = False  # One fresh interpreter per candidate, run sequentially
    min_expected_duration_ns: Optional[float] = None  # None = check the shortest baseline repetition

    def __post_init__(self):
        # Freeze the parameter mapping so kernels cannot mutate shared config
        object.__setattr__(
            self, "numeric_parameters", MappingProxyType(dict(self.numeric_parameters))
        )

    def validate(self) -> "RunConfiguration":
        """Raise ConfigurationInvalid if any field is out of range."""
        for name in ("sample_count", "repetition_count", "problem_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise BenchmarkError(
                    ErrorKind.CONFIGURATION_INVALID,
                    f"{name} must be a positive integer, got {value!r}",
                )
        if not isinstance(self.warm_up_count, int) or self.warm_up_count < 0:
            raise BenchmarkError(
                ErrorKind.CONFIGURATION_INVALID,
                f"warm_up_count must be a non-negative integer, got {self.warm_up_count!r}",
            )
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise BenchmarkError(
                ErrorKind.CONFIGURATION_INVALID,
                f"timeout_seconds must be positive, got {self.timeout_seconds!r}",
            )
        if self.timeout_multiplier <= 0 or self.initial_timeout_seconds <= 0:
            raise BenchmarkError(
                ErrorKind.CONFIGURATION_INVALID,
                "timeout_multiplier and initial_timeout_seconds must be positive",
            )
        for key, value in self.numeric_parameters.items():
            if (
                not isinstance(value, numbers.Real)
                or isinstance(value, bool)
                or not math.isfinite(value)
            ):
                raise BenchmarkError(
                    ErrorKind.CONFIGURATION_INVALID,
                    f"numeric parameter {key!r} must be a finite real number, got {value!r}",
                )
        return self

    def param(self, name: str, default: float) -> float:
        return self.numeric_parameters.get(name, default)

    def with_defaults(self, defaults: Mapping[str, float]) -> "RunConfiguration":
        """Return a copy whose numeric parameters fall back to ``defaults``."""
        merged = dict(defaults)
        merged.update(self.numeric_parameters)
        return RunConfiguration(**{**self._fields(), "numeric_parameters": merged})

    def _fields(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}

    def to_dict(self) -> Dict[str, Any]:
        data = self._fields()
        data["numeric_parameters"] = dict(self.numeric_parameters)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RunConfiguration":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


def resolve_environment_tag(explicit: Optional[str] = None) -> str:
    """Resolve the opaque environment tag.

    Precedence: explicit value, then the KERNELBENCH_ENV_TAG variable, then a
    platform/interpreter description. The harness never interprets it.
    """
    if explicit:
        return explicit
    from_env = os.environ.get(ENV_TAG_VARIABLE)
    if from_env:
        return from_env
    impl = platform.python_implementation()
    version = ".".join(str(part) for part in sys.version_info[:3])
    return f"{impl}-{version} {platform.system()}-{platform.machine()}"
