"""Micro-benchmark harness for comparing equivalent kernel implementations."""

from kernelbench.config import RunConfiguration, resolve_environment_tag
from kernelbench.errors import BenchmarkError, ErrorKind

__all__ = [
    "BenchmarkError",
    "ErrorKind",
    "RunConfiguration",
    "resolve_environment_tag",
]

__version__ = "0.1.0"
