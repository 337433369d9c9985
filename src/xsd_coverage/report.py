"""Coverage report output.

Two formats are produced from the final bitmap:

* a ``;``-separated CSV file with one row per (schema file, path) pair::

      File;Type;Pseudo_path;Covering_examples
      /xsd/root.xsd;element;/Root/Name;[/examples/a.xml]
      /xsd/types.xsd;N/A;N/A;N/A

  Files that were discovered through an include or import but never produced
  a path get a single ``N/A`` row. Rows are sorted by file, then path.

* a JSON summary (:class:`CoverageSummary`) with per-file totals and coverage
  percentages, for dashboards or CI thresholds.
"""

from __future__ import annotations

import csv
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from pydantic import BaseModel, Field

from .coverage import CoverageResult
from .errors import ReportWriteError
from .models import Bitmap, ResolutionReport

CSV_DELIMITER = ";"
CSV_HEADER = ["File", "Type", "Pseudo_path", "Covering_examples"]
PATH_KIND = "element"
NOT_APPLICABLE = "N/A"


def format_covering(covering: Iterable[str]) -> str:
    """Render a covering set as ``[a, b]`` in sorted order."""
    return "[" + ", ".join(sorted(covering)) + "]"


def iter_report_rows(bitmap: Bitmap) -> Iterator[List[str]]:
    for file_id in sorted(bitmap):
        paths = bitmap[file_id]
        if paths is None:
            yield [file_id, NOT_APPLICABLE, NOT_APPLICABLE, NOT_APPLICABLE]
            continue
        for path in sorted(paths):
            yield [file_id, PATH_KIND, path, format_covering(paths[path])]


def write_csv_report(bitmap: Bitmap, output_path: Union[str, Path]) -> Path:
    """Write the CSV coverage report.

    Args:
        bitmap: Final bitmap with covering sets filled in.
        output_path: Destination file; its folder must exist.

    Returns:
        The path written.

    Raises:
        ReportWriteError: If the file cannot be opened or written.
    """
    output_path = Path(output_path)
    try:
        with output_path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle, delimiter=CSV_DELIMITER, lineterminator="\n")
            writer.writerow(CSV_HEADER)
            writer.writerows(iter_report_rows(bitmap))
    except OSError as exc:
        raise ReportWriteError(f"Cannot write report {output_path}: {exc}") from exc
    return output_path


def ensure_writable(output_path: Union[str, Path]) -> Path:
    """Fail early if ``output_path`` cannot be opened for writing.

    Opens the file in append mode, so existing content is left alone and a
    missing file is created empty.

    Raises:
        ReportWriteError: If the file cannot be opened.
    """
    output_path = Path(output_path)
    try:
        with output_path.open("a", encoding="utf-8"):
            pass
    except OSError as exc:
        raise ReportWriteError(f"Cannot write to {output_path}: {exc}") from exc
    return output_path


class FileCoverage(BaseModel):
    """Coverage numbers for one schema file."""

    file: str = Field(..., description="Canonical schema file path")
    total_paths: int = Field(0, description="Paths recorded for the file")
    covered_paths: int = Field(0, description="Paths covered by at least one example")
    coverage_percent: float = Field(0.0, description="covered / total * 100")
    discovered_only: bool = Field(
        False, description="File was included or imported but produced no paths"
    )


class ResolutionSummary(BaseModel):
    """Outcome of group reference resolution."""

    rounds_run: int = Field(0, description="Resolution rounds executed")
    converged: bool = Field(True, description="Whether a fixed point was reached")
    anomalies: List[str] = Field(
        default_factory=list, description="Paths with several group references"
    )
    unresolved_groups: List[str] = Field(
        default_factory=list, description="Referenced groups that were never found"
    )


class CoverageSummary(BaseModel):
    """Run-level coverage summary."""

    generated_at: datetime = Field(default_factory=datetime.now)
    schema_files: int = Field(0, description="Schema files in the bitmap")
    total_paths: int = Field(0, description="Paths across all schema files")
    covered_paths: int = Field(0, description="Paths covered by at least one example")
    uncovered_paths: int = Field(0, description="Paths no example covers")
    coverage_percent: float = Field(0.0, description="covered / total * 100")
    documents_checked: int = Field(0, description="Example documents matched")
    documents_ignored: int = Field(0, description="Files skipped in the example folder")
    resolution: Optional[ResolutionSummary] = None
    files: List[FileCoverage] = Field(default_factory=list)


def _percent(covered: int, total: int) -> float:
    return round(100.0 * covered / total, 2) if total else 0.0


def build_summary(
    bitmap: Bitmap,
    result: Optional[CoverageResult] = None,
    resolution: Optional[ResolutionReport] = None,
) -> CoverageSummary:
    """Aggregate the final bitmap into a :class:`CoverageSummary`."""
    files: List[FileCoverage] = []
    for file_id in sorted(bitmap):
        paths = bitmap[file_id]
        if paths is None:
            files.append(FileCoverage(file=file_id, discovered_only=True))
            continue
        covered = sum(1 for covering in paths.values() if covering)
        files.append(
            FileCoverage(
                file=file_id,
                total_paths=len(paths),
                covered_paths=covered,
                coverage_percent=_percent(covered, len(paths)),
            )
        )

    total = sum(item.total_paths for item in files)
    covered = sum(item.covered_paths for item in files)
    summary = CoverageSummary(
        schema_files=len(files),
        total_paths=total,
        covered_paths=covered,
        uncovered_paths=total - covered,
        coverage_percent=_percent(covered, total),
        files=files,
    )
    if result is not None:
        summary.documents_checked = len(result.checked)
        summary.documents_ignored = len(result.ignored)
    if resolution is not None:
        summary.resolution = ResolutionSummary(
            rounds_run=resolution.rounds_run,
            converged=resolution.converged,
            anomalies=sorted(resolution.anomalies),
            unresolved_groups=sorted(resolution.unresolved),
        )
    return summary


def write_summary(summary: CoverageSummary, output_path: Union[str, Path]) -> Path:
    """Write ``summary`` as indented JSON.

    Raises:
        ReportWriteError: If the file cannot be written.
    """
    output_path = Path(output_path)
    try:
        output_path.write_text(summary.model_dump_json(indent=2), encoding="utf-8")
    except OSError as exc:
        raise ReportWriteError(f"Cannot write summary {output_path}: {exc}") from exc
    return output_path
