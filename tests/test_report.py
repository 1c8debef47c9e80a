"""
Unit tests for report writing and reading.
"""

from datetime import datetime
from pathlib import Path

import pytest

from computer_mover.errors import InvalidReportFormat, ReportWriteFailed
from computer_mover.report import (
    ReportFormat,
    emit,
    load_moved_computers,
    make_run_id,
    report_path,
    write_csv,
    write_html,
)
from computer_mover.types import ReportRecord

OLD_OU = "OU=Old,DC=corp,DC=com"
NEW_OU = "OU=New,DC=corp,DC=com"


def record(name="SRV01", outcome=None) -> ReportRecord:
    return ReportRecord(
        computer_name=name,
        source_container_path=OLD_OU,
        destination_container_path=NEW_OU,
        outcome=outcome,
    )


class TestReportFormat:
    """Tests for ReportFormat.parse."""

    def test_parse_case_insensitive(self):
        assert ReportFormat.parse("CSV") is ReportFormat.CSV
        assert ReportFormat.parse(" html ") is ReportFormat.HTML

    def test_parse_enum_passthrough(self):
        assert ReportFormat.parse(ReportFormat.HTML) is ReportFormat.HTML

    def test_unsupported(self):
        with pytest.raises(InvalidReportFormat, match="xml"):
            ReportFormat.parse("xml")


class TestRunId:
    """Tests for make_run_id and report_path."""

    def test_run_id_includes_time_of_day(self):
        """Back-to-back runs on one day get different ids."""
        morning = make_run_id(datetime(2024, 3, 1, 9, 15, 0))
        evening = make_run_id(datetime(2024, 3, 1, 18, 40, 5))

        assert morning == "20240301_091500"
        assert morning != evening

    def test_directory_sink(self, tmp_path):
        path = report_path(tmp_path, "csv", "20240301_091500")
        assert path == tmp_path / "ComputerMigration_20240301_091500.csv"

    def test_file_sink(self, tmp_path):
        target = tmp_path / "audit.html"
        assert report_path(target, "html", "20240301_091500") == target

    def test_missing_directory_sink(self, tmp_path):
        """A path without a suffix is treated as a directory."""
        path = report_path(tmp_path / "reports", "html", "x")
        assert path == tmp_path / "reports" / "ComputerMigration_x.html"


class TestWriteCsv:
    """Tests for write_csv function."""

    def test_header_and_row(self, tmp_path):
        path = tmp_path / "report.csv"

        write_csv([record()], path)

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines == [
            "ComputerName,SourceOU,DestinationOU",
            f'SRV01,"{OLD_OU}","{NEW_OU}"',
        ]

    def test_second_run_appends_block(self, tmp_path):
        """Repeated runs add a header and rows instead of overwriting."""
        path = tmp_path / "report.csv"

        write_csv([record("SRV01")], path)
        write_csv([record("SRV02")], path)

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 4
        assert lines[0] == lines[2] == "ComputerName,SourceOU,DestinationOU"
        assert lines[1].startswith("SRV01,")
        assert lines[3].startswith("SRV02,")

    def test_outcome_column(self, tmp_path):
        path = tmp_path / "report.csv"

        write_csv([record("SRV01", "Success"), record("SRV02", "Failed(MoveRejected)")], path)

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "ComputerName,SourceOU,DestinationOU,Outcome"
        assert lines[1].endswith(",Success")
        assert lines[2].endswith(",Failed(MoveRejected)")

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "report.csv"
        write_csv([record()], path)
        assert path.exists()

    def test_unwritable_path(self, tmp_path):
        """A directory in place of the file raises ReportWriteFailed."""
        path = tmp_path / "report.csv"
        path.mkdir()

        with pytest.raises(ReportWriteFailed):
            write_csv([record()], path)


class TestWriteHtml:
    """Tests for write_html function."""

    def test_table_columns(self, tmp_path):
        path = tmp_path / "report.html"

        write_html([record("SRV01", "Success")], path, run_id="20240301_091500")

        content = path.read_text(encoding="utf-8")
        assert content.count("<table") == 1
        for column in ("ComputerName", "SourceOU", "DestinationOU", "Outcome"):
            assert f">{column}</th>" in content
        assert ">SRV01</td>" in content
        assert "20240301_091500" in content

    def test_values_escaped(self, tmp_path):
        path = tmp_path / "report.html"

        write_html([record("<script>")], path)

        content = path.read_text(encoding="utf-8")
        assert "<script>" not in content
        assert "&lt;script&gt;" in content

    def test_appends(self, tmp_path):
        path = tmp_path / "report.html"

        write_html([record("SRV01")], path)
        write_html([record("SRV02")], path)

        assert path.read_text(encoding="utf-8").count("<table") == 2


class TestEmit:
    """Tests for emit function."""

    def test_csv_into_directory(self, tmp_path):
        path = emit([record()], "csv", tmp_path, run_id="20240301_091500")

        assert path == tmp_path / "ComputerMigration_20240301_091500.csv"
        assert path.read_text(encoding="utf-8").startswith("ComputerName,SourceOU,DestinationOU")

    def test_html(self, tmp_path):
        path = emit([record()], ReportFormat.HTML, tmp_path / "audit.html")
        assert "<table" in path.read_text(encoding="utf-8")

    def test_write_failure_is_warning(self, tmp_path, caplog):
        """A failed write returns None and logs a warning."""
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")

        assert emit([record()], "csv", blocker / "audit.csv") is None
        assert "Report not written" in caplog.text

    def test_invalid_format(self, tmp_path):
        with pytest.raises(InvalidReportFormat):
            emit([record()], "pdf", tmp_path)


class TestLoadMovedComputers:
    """Tests for load_moved_computers function."""

    def test_successful_rows_only(self, tmp_path):
        report = tmp_path / "report.csv"
        report.write_text(
            "ComputerName,SourceOU,DestinationOU,Outcome\n"
            "SRV01,OU=Old,OU=New,Success\n"
            "SRV02,OU=Old,OU=New,Failed(MoveRejected)\n"
            "SRV03,,OU=New,Failed(NotFound)\n"
            "SRV04,OU=Old,OU=New,DryRun\n",
            encoding="utf-8",
        )

        assert load_moved_computers(report) == {"SRV01"}

    def test_appended_blocks(self, tmp_path):
        """Repeated header rows from appended runs are skipped."""
        report = tmp_path / "report.csv"
        write_csv([record("SRV01", "Success")], report)
        write_csv([record("SRV02", "Success")], report)

        assert load_moved_computers(report) == {"SRV01", "SRV02"}

    def test_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            load_moved_computers(Path("/nonexistent/report.csv"))

    def test_missing_columns(self, tmp_path):
        report = tmp_path / "report.csv"
        report.write_text("ComputerName,SourceOU,DestinationOU\nSRV01,a,b\n", encoding="utf-8")

        with pytest.raises(ValueError) as exc_info:
            load_moved_computers(report)

        assert "missing required columns" in str(exc_info.value)

    def test_empty_file(self, tmp_path):
        report = tmp_path / "report.csv"
        report.write_text("", encoding="utf-8")

        with pytest.raises(ValueError) as exc_info:
            load_moved_computers(report)

        assert "empty or invalid" in str(exc_info.value)

    def test_strips_whitespace(self, tmp_path):
        report = tmp_path / "report.csv"
        report.write_text(
            "ComputerName,SourceOU,DestinationOU,Outcome\n"
            "  SRV01  ,a,b, Success \n",
            encoding="utf-8",
        )

        assert load_moved_computers(report) == {"SRV01"}
