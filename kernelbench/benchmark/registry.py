"""Candidate and family registration.

Kernel modules register their families and candidates at import time:

    register_family(FamilySpec(tag="stencil", ...))

    @register_candidate
    class ScalarStencil(KernelCandidate):
        identifier = "stencil-scalar"
        family = "stencil"
        ...

``load_builtin_kernels()`` imports the bundled kernel modules so the CLI and
the isolated runner see the same registry.
"""

from __future__ import annotations

import functools
import importlib
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Type, TypeVar

from kernelbench.benchmark.candidate import KernelCandidate, check_invoke_signature
from kernelbench.errors import BenchmarkError, ErrorKind

BUILTIN_KERNEL_MODULES = (
    "kernelbench.kernels.stencil",
    "kernelbench.kernels.rng",
    "kernelbench.kernels.bits",
)

T = TypeVar("T", bound=Type[KernelCandidate])


@dataclass(frozen=True)
class FamilySpec:
    """Shared contract of one operation family."""
    tag: str
    description: str
    default_reference: str
    numeric_equivalence: bool = False  # Validate reduction values before timing
    tolerance: float = 1e-9  # Relative tolerance for numeric equivalence
    default_parameters: Mapping[str, float] = field(default_factory=dict)


_FAMILIES: Dict[str, FamilySpec] = {}
_CANDIDATES: Dict[str, Dict[str, Type[KernelCandidate]]] = {}
_BUILTINS_LOADED = False


def register_family(spec: FamilySpec) -> FamilySpec:
    existing = _FAMILIES.get(spec.tag)
    if existing is not None and existing != spec:
        raise BenchmarkError(
            ErrorKind.CONFIGURATION_INVALID,
            "family registered twice with different specs",
            family=spec.tag,
        )
    _FAMILIES[spec.tag] = spec
    _CANDIDATES.setdefault(spec.tag, {})
    return spec


def register_candidate(cls: T) -> T:
    """Class decorator adding a candidate to its family's registry."""
    identifier = cls.identifier
    family = cls.family
    if not identifier or not family:
        raise BenchmarkError(
            ErrorKind.CONFIGURATION_INVALID,
            f"{cls.__name__} must define identifier and family",
        )
    if family not in _FAMILIES:
        raise BenchmarkError(
            ErrorKind.FAMILY_MISMATCH,
            f"{cls.__name__} declares unregistered family",
            candidate_id=identifier,
            family=family,
        )
    family_candidates = _CANDIDATES[family]
    if identifier in family_candidates and family_candidates[identifier] is not cls:
        raise BenchmarkError(
            ErrorKind.CONFIGURATION_INVALID,
            "duplicate candidate identifier",
            candidate_id=identifier,
            family=family,
        )
    check_invoke_signature(functools.partial(cls.invoke, None), identifier)
    family_candidates[identifier] = cls
    return cls


def load_builtin_kernels() -> None:
    global _BUILTINS_LOADED
    if _BUILTINS_LOADED:
        return
    for module_name in BUILTIN_KERNEL_MODULES:
        importlib.import_module(module_name)
    _BUILTINS_LOADED = True


def families() -> List[str]:
    load_builtin_kernels()
    return sorted(_FAMILIES)


def get_family(tag: str) -> Optional[FamilySpec]:
    load_builtin_kernels()
    return _FAMILIES.get(tag)


def require_family(tag: str) -> FamilySpec:
    spec = get_family(tag)
    if spec is None:
        raise BenchmarkError(
            ErrorKind.CONFIGURATION_INVALID,
            f"unknown family; known families: {', '.join(families())}",
            family=tag,
        )
    return spec


def candidate_ids(family: str) -> List[str]:
    """Registered candidate ids for ``family`` in registration order."""
    require_family(family)
    return list(_CANDIDATES[family])


def is_registered(family: str, identifier: str) -> bool:
    load_builtin_kernels()
    return identifier in _CANDIDATES.get(family, {})


def create_candidate(family: str, identifier: str) -> KernelCandidate:
    require_family(family)
    try:
        cls = _CANDIDATES[family][identifier]
    except KeyError:
        raise BenchmarkError(
            ErrorKind.UNKNOWN_CANDIDATE,
            f"not registered; known candidates: {', '.join(_CANDIDATES[family])}",
            candidate_id=identifier,
            family=family,
        ) from None
    return cls()
