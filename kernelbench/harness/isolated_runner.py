#!/usr/bin/env python3
"""Isolated subprocess runner for candidates.

Each candidate is timed in a freshly started interpreter so cache state,
allocator state and frequency scaling cannot leak between candidates. The
parent starts one child at a time and waits for it; children never overlap.

Protocol:
- Input (stdin JSON):
  {
    "family": "stencil",
    "candidate_id": "stencil-broadcast" | "constant-write",
    "config": {...RunConfiguration fields...},
    "environment_tag": "...",
    "timeout_seconds": 12.5 | null
  }

- Output (stdout JSON):
  {
    "success": true/false,
    "measurement": {...} | null,
    "error_kind": "CandidateTimeout" | null,
    "message": "..." | null
  }
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from kernelbench.config import RunConfiguration
from kernelbench.errors import BenchmarkError, ErrorKind
from kernelbench.harness.benchmark_harness import Measurement, RunHarness

RUNNER_MODULE = "kernelbench.harness.isolated_runner"

# Directory holding the kernelbench package, so children import the same code
PACKAGE_ROOT = Path(__file__).resolve().parents[2]


class IsolatedRunner:
    """Parent side: launch one child interpreter per measurement."""

    def __init__(self, environment_tag: str = "", python: Optional[str] = None):
        self.environment_tag = environment_tag
        self.python = python or sys.executable

    def measure(
        self,
        family: str,
        candidate_id: str,
        config: RunConfiguration,
        timeout_seconds: Optional[float],
    ) -> Measurement:
        request = {
            "family": family,
            "candidate_id": candidate_id,
            "config": config.to_dict(),
            "environment_tag": self.environment_tag,
            "timeout_seconds": timeout_seconds,
        }
        try:
            completed = subprocess.run(
                [self.python, "-m", RUNNER_MODULE],
                input=json.dumps(request),
                capture_output=True,
                text=True,
                timeout=timeout_seconds,
                env=self._child_env(),
            )
        except subprocess.TimeoutExpired:
            # subprocess.run kills the child before re-raising
            raise BenchmarkError(
                ErrorKind.CANDIDATE_TIMEOUT,
                f"isolated process exceeded ceiling of {timeout_seconds:.3f}s",
                candidate_id=candidate_id,
                family=family,
            ) from None

        response = _parse_response(completed.stdout)
        if response is None:
            raise RuntimeError(
                f"isolated runner for {family}/{candidate_id} exited with code "
                f"{completed.returncode}: {completed.stderr.strip()}"
            )
        if not response.get("success"):
            kind_value = response.get("error_kind")
            if kind_value is None:
                raise RuntimeError(
                    f"isolated runner for {family}/{candidate_id} failed: {response.get('message')}"
                )
            raise BenchmarkError(
                ErrorKind(kind_value),
                response.get("message") or "",
                candidate_id=candidate_id,
                family=family,
            )
        return Measurement.from_dict(response["measurement"])

    def _child_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        existing = env.get("PYTHONPATH")
        env["PYTHONPATH"] = (
            f"{PACKAGE_ROOT}{os.pathsep}{existing}" if existing else str(PACKAGE_ROOT)
        )
        return env


def _parse_response(stdout: str) -> Optional[Dict[str, Any]]:
    # The response is the last line; kernels may print before it
    for line in reversed(stdout.strip().splitlines()):
        try:
            payload = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict) and "success" in payload:
            return payload
    return None


def run_request(request: Dict[str, Any]) -> Dict[str, Any]:
    """Child side: time one candidate in this process."""
    from kernelbench.benchmark import registry
    from kernelbench.benchmark.baseline import BASELINE_ID, ConstantWriteCandidate

    family = request["family"]
    candidate_id = request["candidate_id"]
    config = RunConfiguration.from_dict(request["config"])
    try:
        if candidate_id == BASELINE_ID:
            candidate = ConstantWriteCandidate(family)
        else:
            candidate = registry.create_candidate(family, candidate_id)
        harness = RunHarness(environment_tag=request.get("environment_tag", ""))
        measurement = harness.measure(
            candidate, config, timeout_seconds=request.get("timeout_seconds"), family=family
        )
    except BenchmarkError as exc:
        return {
            "success": False,
            "measurement": None,
            "error_kind": exc.kind.value,
            "message": exc.message,
        }
    return {
        "success": True,
        "measurement": measurement.to_dict(),
        "error_kind": None,
        "message": None,
    }


def main() -> int:
    request = json.loads(sys.stdin.read())
    response = run_request(request)
    sys.stdout.write(json.dumps(response) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
