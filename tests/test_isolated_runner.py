"""Tests for process-isolated measurement."""

import json

import pytest

from kernelbench.config import RunConfiguration
from kernelbench.errors import BenchmarkError, ErrorKind
from kernelbench.harness.isolated_runner import IsolatedRunner, _parse_response, run_request


def _request(candidate_id, **config):
    return {
        "family": "bit-extract",
        "candidate_id": candidate_id,
        "config": RunConfiguration(**{"problem_size": 500, "repetition_count": 3, **config}).to_dict(),
        "environment_tag": "iso",
        "timeout_seconds": None,
    }


def test_run_request_measures_registered_candidate():
    response = run_request(_request("bit-mask-word"))
    assert response["success"]
    assert len(response["measurement"]["raw_durations"]) == 3
    assert response["measurement"]["environment_tag"] == "iso"


def test_run_request_measures_baseline():
    response = run_request(_request("constant-write"))
    assert response["success"]
    assert response["measurement"]["candidate_id"] == "constant-write"


def test_run_request_reports_error_kind():
    response = run_request(_request("bogus"))
    assert not response["success"]
    assert response["error_kind"] == "UnknownCandidate"


def test_parse_response_skips_kernel_chatter():
    payload = {"success": True, "measurement": None}
    stdout = "warming up\n" + json.dumps(payload) + "\n"
    assert _parse_response(stdout) == payload
    assert _parse_response("no json here") is None


def test_subprocess_measurement():
    config = RunConfiguration(problem_size=500, repetition_count=3, sample_count=2)
    measurement = IsolatedRunner("iso").measure("bit-extract", "bit-getrandbits", config, 120.0)
    assert measurement.candidate_id == "bit-getrandbits"
    assert len(measurement.raw_durations) == 3
    assert measurement.environment_tag == "iso"


def test_subprocess_timeout_becomes_candidate_timeout():
    config = RunConfiguration(problem_size=500, repetition_count=3)
    with pytest.raises(BenchmarkError) as excinfo:
        IsolatedRunner().measure("bit-extract", "bit-getrandbits", config, 0.001)
    assert excinfo.value.kind is ErrorKind.CANDIDATE_TIMEOUT
    assert excinfo.value.candidate_id == "bit-getrandbits"
