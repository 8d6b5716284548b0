"""Tests for the command line interface."""

import pytest
from typer.testing import CliRunner

from kernelbench.cli import app

runner = CliRunner()

SMALL_RUN = [
    "run",
    "--family", "bit-extract",
    "--problem-size", "2000",
    "--repetitions", "3",
    "--warm-up", "1",
    "--samples", "3",
]


def test_list_shows_families_and_references():
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "stencil:" in result.output
    assert "* stencil-scalar" in result.output
    assert "bit-extract:" in result.output


def test_run_emits_csv():
    result = runner.invoke(app, SMALL_RUN + ["--output", "csv", "--env-tag", "ci-box"])
    assert result.exit_code == 0, result.output
    assert "candidate_id,mean_duration,std_duration" in result.output
    assert ",ci-box\n" in result.output
    assert "bit-cached-word" in result.output
    assert "bit-mask-word" in result.output


def test_run_candidate_subset_table():
    result = runner.invoke(
        app, SMALL_RUN + ["--candidates", "bit-cached-word,bit-getrandbits", "--env-tag", "ci-box"]
    )
    assert result.exit_code == 0, result.output
    assert "*bit-cached-word" in result.output
    assert "bit-mask-word" not in result.output
    assert "environment: ci-box" in result.output


def test_env_tag_from_environment_variable():
    result = runner.invoke(
        app, SMALL_RUN + ["--output", "json"], env={"KERNELBENCH_ENV_TAG": "from-env"}
    )
    assert result.exit_code == 0, result.output
    assert '"environment_tag": "from-env"' in result.output


def test_single_candidate_exits_non_zero():
    result = runner.invoke(app, SMALL_RUN + ["--candidates", "bit-cached-word"])
    assert result.exit_code == 1
    assert "InsufficientCandidates" in result.output


def test_invalid_problem_size_exits_non_zero():
    result = runner.invoke(app, ["run", "--family", "stencil", "--problem-size", "0"])
    assert result.exit_code == 1
    assert "ConfigurationInvalid" in result.output


def test_unknown_candidate_named_in_error():
    result = runner.invoke(app, SMALL_RUN + ["--candidates", "bit-cached-word,bogus"])
    assert result.exit_code == 1
    assert "UnknownCandidate" in result.output
    assert "candidate=bogus" in result.output


def test_bad_param_exits_non_zero():
    result = runner.invoke(app, SMALL_RUN + ["--param", "multiplier"])
    assert result.exit_code == 1
    assert "ConfigurationInvalid" in result.output


@pytest.mark.parametrize("param", ["range=inf", "range=nan", "range=-inf"])
def test_non_finite_param_reported_not_raised(param):
    result = runner.invoke(app, ["run", "--family", "rng-distribution", "--param", param])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "ConfigurationInvalid" in result.output
    assert "range" in result.output


def test_stencil_param_override():
    result = runner.invoke(
        app,
        [
            "run", "--family", "stencil", "--problem-size", "60", "--repetitions", "2",
            "--warm-up", "0", "--samples", "50", "--param", "multiplier=2.0",
            "--candidates", "stencil-scalar,stencil-broadcast", "--output", "json",
        ],
    )
    assert result.exit_code == 0, result.output
    assert '"multiplier": 2.0' in result.output
