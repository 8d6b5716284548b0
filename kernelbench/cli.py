"""Command line entry point (`kernelbench run ...`, `kernelbench list`)."""

from __future__ import annotations

import logging
import sys
from typing import Dict, List, Optional

import typer

from kernelbench.benchmark import registry
from kernelbench.benchmark.results import OutputFormat
from kernelbench.benchmark.suite import build_suite
from kernelbench.config import ENV_TAG_VARIABLE, RunConfiguration
from kernelbench.errors import BenchmarkError, ErrorKind

app = typer.Typer(
    help="Compare semantically equivalent kernels under a calibrated micro-benchmark harness.",
    no_args_is_help=True,
)


def _parse_params(values: Optional[List[str]]) -> Dict[str, float]:
    params: Dict[str, float] = {}
    for item in values or []:
        name, sep, raw = item.partition("=")
        try:
            if not sep or not name:
                raise ValueError(item)
            params[name.strip()] = float(raw)
        except ValueError:
            raise BenchmarkError(
                ErrorKind.CONFIGURATION_INVALID,
                f"--param expects name=number, got {item!r}",
            ) from None
    return params


def _report(error: BenchmarkError) -> None:
    label = "configuration error" if error.kind.is_configuration else "error"
    typer.echo(
        f"{label}: {error.kind.value} family={error.family or '-'} "
        f"candidate={error.candidate_id or '-'}: {error.message}",
        err=True,
    )


@app.command("run", help="Time every candidate of a family and print the result table.")
def run(
    family: str = typer.Option(..., "--family", help="Operation family tag."),
    problem_size: int = typer.Option(1000, "--problem-size", help="Problem size N."),
    repetitions: int = typer.Option(7, "--repetitions", help="Timed repetitions per candidate."),
    warm_up: int = typer.Option(2, "--warm-up", help="Untimed warm-up invocations."),
    samples: int = typer.Option(10, "--samples", help="Invocations per timed repetition."),
    candidates: Optional[str] = typer.Option(
        None, "--candidates", help="Comma-separated candidate ids (default: whole family)."
    ),
    reference: Optional[str] = typer.Option(None, "--reference", help="Reference candidate id."),
    output: OutputFormat = typer.Option(OutputFormat.TABLE, "--output", help="table, csv or json."),
    env_tag: Optional[str] = typer.Option(
        None, "--env-tag", help=f"Environment tag (default: ${ENV_TAG_VARIABLE} or platform)."
    ),
    param: Optional[List[str]] = typer.Option(
        None, "--param", help="Numeric parameter name=value; repeatable."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-candidate ceiling in seconds (default: adaptive)."
    ),
    seed: int = typer.Option(42, "--seed", help="Seed for kernel inputs."),
    isolate: bool = typer.Option(False, "--isolate", help="Run each candidate in its own process."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        config = RunConfiguration(
            sample_count=samples,
            warm_up_count=warm_up,
            repetition_count=repetitions,
            problem_size=problem_size,
            numeric_parameters=_parse_params(param),
            seed=seed,
            timeout_seconds=timeout,
            isolate=isolate,
        ).validate()
        candidate_ids = [c.strip() for c in candidates.split(",") if c.strip()] if candidates else None
        suite = build_suite(
            family,
            config,
            candidate_ids=candidate_ids,
            reference=reference,
            environment_tag=env_tag,
        )
        table = suite.run()
    except BenchmarkError as exc:
        _report(exc)
        raise typer.Exit(code=1)

    typer.echo(table.render(output))
    if not table.ok:
        for error in table.all_errors():
            _report(error)
        raise typer.Exit(code=1)


@app.command("list", help="List families and their candidates.")
def list_candidates() -> None:
    for tag in registry.families():
        spec = registry.get_family(tag)
        typer.echo(f"{tag}: {spec.description}")
        for candidate_id in registry.candidate_ids(tag):
            marker = "*" if candidate_id == spec.default_reference else " "
            typer.echo(f"  {marker} {candidate_id}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
