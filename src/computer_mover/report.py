"""
Report writer for before/after migration audits.

This module is responsible for:
- Writing report records as CSV or as an HTML table
- Appending to existing reports so repeated runs accumulate history
- Naming report files with a single per-run timestamp
- Treating report failures as warnings, never as migration failures
- Reading previous CSV reports to find computers that were already moved
"""

import csv
import html
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Set, Union

from .errors import InvalidReportFormat, ReportWriteFailed
from .types import ReportRecord

logger = logging.getLogger(__name__)

CSV_HEADER = ["ComputerName", "SourceOU", "DestinationOU"]
OUTCOME_COLUMN = "Outcome"
SUCCESS_OUTCOME = "Success"
REPORT_PREFIX = "ComputerMigration"
RUN_ID_FORMAT = "%Y%m%d_%H%M%S"

TABLE_STYLE = "border-collapse: collapse; font-family: Segoe UI, Arial, sans-serif; font-size: 13px;"
HEADER_CELL_STYLE = "border: 1px solid #999; padding: 4px 8px; background: #2f5597; color: #fff; text-align: left;"
CELL_STYLE = "border: 1px solid #999; padding: 4px 8px;"


class ReportFormat(Enum):
    """Supported report formats."""
    CSV = "csv"
    HTML = "html"

    @classmethod
    def parse(cls, value: Union[str, "ReportFormat"]) -> "ReportFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidReportFormat(
                f"Unsupported report format '{value}' (expected csv or html)"
            ) from None


def make_run_id(now: Optional[datetime] = None) -> str:
    """Return the timestamp identifier used for one run's report files."""
    return (now or datetime.now()).strftime(RUN_ID_FORMAT)


def report_path(
    sink: Union[str, Path],
    fmt: Union[str, ReportFormat],
    run_id: str
) -> Path:
    """
    Resolve where a report goes.

    A directory sink (existing, or given without a file suffix) gets a
    ``ComputerMigration_<run_id>.<ext>`` file; anything else is used as the
    file path itself.
    """
    fmt = ReportFormat.parse(fmt)
    sink = Path(sink)
    if sink.is_dir() or not sink.suffix:
        return sink / f"{REPORT_PREFIX}_{run_id}.{fmt.value}"
    return sink


def _columns(records: Sequence[ReportRecord]) -> List[str]:
    if any(record.outcome is not None for record in records):
        return CSV_HEADER + [OUTCOME_COLUMN]
    return list(CSV_HEADER)


def _row(record: ReportRecord, with_outcome: bool) -> List[str]:
    row = [
        record.computer_name,
        record.source_container_path,
        record.destination_container_path,
    ]
    if with_outcome:
        row.append(record.outcome or "")
    return row


def write_csv(records: Sequence[ReportRecord], path: Union[str, Path]) -> Path:
    """
    Append a header row and one row per record to a CSV file.

    Raises:
        ReportWriteFailed: If the file cannot be written
    """
    path = Path(path)
    columns = _columns(records)
    with_outcome = OUTCOME_COLUMN in columns

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(columns)
            for record in records:
                writer.writerow(_row(record, with_outcome))
    except OSError as e:
        raise ReportWriteFailed(f"Could not write CSV report {path}: {e}") from e

    return path


def write_html(
    records: Sequence[ReportRecord],
    path: Union[str, Path],
    run_id: Optional[str] = None
) -> Path:
    """
    Append the records as a styled HTML table.

    Raises:
        ReportWriteFailed: If the file cannot be written
    """
    path = Path(path)
    columns = _columns(records)
    with_outcome = OUTCOME_COLUMN in columns

    lines = []
    if run_id:
        lines.append(f"<h3>Computer migration {html.escape(run_id)}</h3>")
    lines.append(f'<table style="{TABLE_STYLE}">')
    lines.append(
        "<tr>"
        + "".join(f'<th style="{HEADER_CELL_STYLE}">{html.escape(c)}</th>' for c in columns)
        + "</tr>"
    )
    for record in records:
        lines.append(
            "<tr>"
            + "".join(
                f'<td style="{CELL_STYLE}">{html.escape(value)}</td>'
                for value in _row(record, with_outcome)
            )
            + "</tr>"
        )
    lines.append("</table>")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
    except OSError as e:
        raise ReportWriteFailed(f"Could not write HTML report {path}: {e}") from e

    return path


def emit(
    records: Sequence[ReportRecord],
    fmt: Union[str, ReportFormat],
    sink: Union[str, Path],
    run_id: Optional[str] = None
) -> Optional[Path]:
    """
    Write a report, best effort.

    Args:
        records: Report records in candidate order
        fmt: "csv" or "html"
        sink: Report file or directory
        run_id: The run's timestamp identifier (generated if omitted)

    Returns:
        Path of the written report, or None if writing failed

    Raises:
        InvalidReportFormat: If ``fmt`` is not supported
    """
    fmt = ReportFormat.parse(fmt)
    run_id = run_id or make_run_id()
    path = report_path(sink, fmt, run_id)

    try:
        if fmt is ReportFormat.CSV:
            write_csv(records, path)
        else:
            write_html(records, path, run_id)
    except ReportWriteFailed as e:
        logger.warning(f"Report not written: {e}")
        return None

    logger.info(f"Wrote {fmt.value.upper()} report with {len(records)} rows: {path}")
    return path


def load_moved_computers(report: Union[str, Path]) -> Set[str]:
    """
    Read a previous CSV report and return the computers that moved.

    Reports may hold several appended runs; repeated header rows are
    skipped. Names are returned as written in the report.

    Raises:
        FileNotFoundError: If the report doesn't exist
        ValueError: If the report is empty or lacks the needed columns
    """
    path = Path(report)
    if not path.exists():
        raise FileNotFoundError(f"Report file not found: {path}")

    moved: Set[str] = set()
    with path.open("r", newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames:
            raise ValueError(f"Report file is empty or invalid: {path}")

        fieldnames = [name.strip() for name in reader.fieldnames]
        missing = {CSV_HEADER[0], OUTCOME_COLUMN} - set(fieldnames)
        if missing:
            raise ValueError(
                f"Report file is missing required columns: {', '.join(sorted(missing))}"
            )
        reader.fieldnames = fieldnames

        for row in reader:
            name = (row.get(CSV_HEADER[0]) or "").strip()
            outcome = (row.get(OUTCOME_COLUMN) or "").strip()
            if not name or name == CSV_HEADER[0]:
                continue
            if outcome == SUCCESS_OUTCOME:
                moved.add(name)

    logger.info(f"Found {len(moved)} moved computers in {path.name}")
    return moved
