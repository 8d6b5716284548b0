"""Result table produced by a suite and its text/CSV/JSON renderings."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from kernelbench.benchmark.aggregator import AggregatedStat
from kernelbench.benchmark.baseline import BaselineResult
from kernelbench.config import RunConfiguration
from kernelbench.errors import BenchmarkError, ErrorKind
from kernelbench.harness.benchmark_harness import Measurement

RESULT_SCHEMA_VERSION = "1.0"

CSV_COLUMNS = [
    "candidate_id",
    "mean_duration",
    "std_duration",
    "relative_to_reference",
    "relative_to_baseline",
    "bias",
    "is_reference",
    "below_baseline",
    "error_kind",
    "error_message",
    "environment_tag",
]

DURATION_UNIT = "ns"


class OutputFormat(str, Enum):
    TABLE = "table"
    CSV = "csv"
    JSON = "json"


@dataclass(frozen=True)
class ResultRow:
    """One candidate's row; failed rows carry an error and no statistics."""
    candidate_id: str
    is_reference: bool = False
    stat: Optional[AggregatedStat] = None
    error: Optional[BenchmarkError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    def as_record(self) -> Dict[str, Any]:
        stat = self.stat
        return {
            "candidate_id": self.candidate_id,
            "mean_duration": stat.mean if stat else None,
            "std_duration": stat.standard_deviation if stat else None,
            "relative_to_reference": stat.relative_to_reference if stat else None,
            "relative_to_baseline": stat.relative_to_baseline if stat else None,
            "bias": stat.bias if stat else None,
            "is_reference": self.is_reference,
            "below_baseline": stat.below_baseline if stat else False,
            "error_kind": self.error.kind.value if self.error else None,
            "error_message": self.error.message if self.error else None,
        }


@dataclass
class ResultTable:
    """Final output of a suite run, consumed by external reporting."""
    family: str
    reference_id: str
    environment_tag: str
    config: RunConfiguration
    baseline: BaselineResult
    rows: List[ResultRow] = field(default_factory=list)
    errors: List[BenchmarkError] = field(default_factory=list)  # Family-level
    measurements: Dict[str, Measurement] = field(default_factory=dict)

    def row(self, candidate_id: str) -> ResultRow:
        for row in self.rows:
            if row.candidate_id == candidate_id:
                return row
        raise KeyError(candidate_id)

    @property
    def failed_rows(self) -> List[ResultRow]:
        return [row for row in self.rows if row.failed]

    @property
    def ok(self) -> bool:
        return not self.errors and not self.failed_rows

    def all_errors(self) -> List[BenchmarkError]:
        return [row.error for row in self.failed_rows] + list(self.errors)

    def render(self, output: OutputFormat | str = OutputFormat.TABLE) -> str:
        output = OutputFormat(output)
        if output is OutputFormat.CSV:
            return render_csv(self)
        if output is OutputFormat.JSON:
            return render_json(self)
        return render_table(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": RESULT_SCHEMA_VERSION,
            "family": self.family,
            "reference_id": self.reference_id,
            "environment_tag": self.environment_tag,
            "duration_unit": DURATION_UNIT,
            "config": self.config.to_dict(),
            "baseline": {
                "family": self.baseline.family,
                "duration_mean_ns": self.baseline.duration_mean,
            },
            "rows": [row.as_record() for row in self.rows],
            "measurements": {
                candidate_id: m.to_dict() for candidate_id, m in self.measurements.items()
            },
            "errors": [
                {"kind": e.kind.value, "candidate_id": e.candidate_id, "message": e.message}
                for e in self.errors
            ],
        }


def _fmt(value: Optional[float], spec: str) -> str:
    return "-" if value is None else format(value, spec)


def render_table(table: ResultTable) -> str:
    has_bias = any(row.stat is not None and row.stat.bias is not None for row in table.rows)
    headers = ["candidate_id", "mean_duration", "relative_to_reference", "relative_to_baseline"]
    if has_bias:
        headers.append("bias")
    headers.append("status")

    body = []
    for row in table.rows:
        marker = "*" if row.is_reference else " "
        stat = row.stat
        cells = [
            f"{marker}{row.candidate_id}",
            _fmt(stat.mean if stat else None, ".1f"),
            _fmt(stat.relative_to_reference if stat else None, ".4f"),
            _fmt(stat.relative_to_baseline if stat else None, ".4f"),
        ]
        if has_bias:
            cells.append(_fmt(stat.bias if stat else None, ".3e"))
        if row.failed:
            status = row.error.kind.value
        elif stat is not None and stat.below_baseline:
            status = "below-baseline"
        else:
            status = "ok"
        cells.append(status)
        body.append(cells)

    widths = [max(len(h), *(len(r[i]) for r in body)) if body else len(h) for i, h in enumerate(headers)]
    lines = [
        f"family: {table.family}    environment: {table.environment_tag}    durations: {DURATION_UNIT}",
        f"baseline ({table.baseline.family}): {table.baseline.duration_mean:.1f} ns",
        "  ".join(h.ljust(w) for h, w in zip(headers, widths)),
        "  ".join("-" * w for w in widths),
    ]
    for cells in body:
        lines.append("  ".join(c.ljust(w) for c, w in zip(cells, widths)))
    lines.append(f"* reference: {table.reference_id}")
    if any(row.stat is not None and row.stat.trimmed for row in table.rows):
        lines.append("trimmed: fastest and slowest repetition dropped per candidate")
    for error in table.all_errors():
        lines.append(f"! {error}")
    return "\n".join(lines)


def render_csv(table: ResultTable) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for row in table.rows:
        record = row.as_record()
        record["environment_tag"] = table.environment_tag
        writer.writerow({k: "" if v is None else v for k, v in record.items()})
    return buffer.getvalue()


def render_json(table: ResultTable) -> str:
    return json.dumps(table.to_dict(), indent=2)
