"""Error taxonomy shared by the harness, suite and CLI."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Every failure the harness can report."""
    CLOCK_RESOLUTION_INSUFFICIENT = "ClockResolutionInsufficient"
    FAMILY_MISMATCH = "FamilyMismatch"
    UNKNOWN_CANDIDATE = "UnknownCandidate"
    INSUFFICIENT_CANDIDATES = "InsufficientCandidates"
    SEMANTIC_MISMATCH = "SemanticMismatch"
    DEGENERATE_MEASUREMENT = "DegenerateMeasurement"
    BASELINE_EXCEEDS_REFERENCE = "BaselineExceedsReference"
    CANDIDATE_TIMEOUT = "CandidateTimeout"
    CONFIGURATION_INVALID = "ConfigurationInvalid"

    @property
    def is_configuration(self) -> bool:
        """True for kinds that abort the whole suite before timing starts."""
        return self in _CONFIGURATION_KINDS

    @property
    def is_candidate_scoped(self) -> bool:
        """True for kinds recorded as a failed row while the suite continues."""
        return self in (ErrorKind.DEGENERATE_MEASUREMENT, ErrorKind.CANDIDATE_TIMEOUT)


_CONFIGURATION_KINDS = frozenset({
    ErrorKind.CLOCK_RESOLUTION_INSUFFICIENT,
    ErrorKind.FAMILY_MISMATCH,
    ErrorKind.UNKNOWN_CANDIDATE,
    ErrorKind.INSUFFICIENT_CANDIDATES,
    ErrorKind.SEMANTIC_MISMATCH,
    ErrorKind.CONFIGURATION_INVALID,
})


class BenchmarkError(Exception):
    """Raised for any failure in the measurement pipeline.

    Carries the failure kind plus the family and candidate it applies to so
    callers (and the CLI) can always name what went wrong and where.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        candidate_id: Optional[str] = None,
        family: Optional[str] = None,
    ):
        self.kind = kind
        self.message = message
        self.candidate_id = candidate_id
        self.family = family
        super().__init__(self._format())

    def _format(self) -> str:
        scope = []
        if self.family is not None:
            scope.append(f"family={self.family}")
        if self.candidate_id is not None:
            scope.append(f"candidate={self.candidate_id}")
        where = f" [{', '.join(scope)}]" if scope else ""
        return f"{self.kind.value}{where}: {self.message}"
