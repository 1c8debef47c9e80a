"""
Unit tests for CLI functions.
"""

from unittest import mock

import pytest

from computer_mover import cli
from computer_mover.config import MigrationConfig
from computer_mover.directory import InMemoryDirectory, PowerShellDirectory

OLD_OU = "OU=Old,DC=corp,DC=com"
NEW_OU = "OU=New,DC=corp,DC=com"


@pytest.fixture
def directory(monkeypatch):
    """Route the CLI to an in-memory directory."""
    directory = InMemoryDirectory(containers=[NEW_OU])
    for name in ("SRV01", "SRV02"):
        directory.add_computer(name, OLD_OU)
    monkeypatch.setattr(cli, "build_client", lambda args: directory)
    return directory


class TestParser:
    """Tests for argument parsing."""

    def test_repeatable_computer(self):
        args = cli.build_parser().parse_args(["-c", "SRV01", "-c", "SRV02", "-d", NEW_OU])
        assert args.computer_names == ["SRV01", "SRV02"]
        assert args.destination == NEW_OU

    def test_destination_required(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.build_parser().parse_args(["-c", "SRV01"])
        assert exc_info.value.code == 2

    def test_report_choices(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["-c", "SRV01", "-d", NEW_OU, "-r", "pdf"])

    def test_workers_must_be_positive(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["-c", "SRV01", "-d", NEW_OU, "--workers", "0"])

    def test_config_from_args(self, tmp_path):
        args = cli.build_parser().parse_args([
            "-i", str(tmp_path / "list.txt"),
            "-s", OLD_OU,
            "-d", NEW_OU,
            "-r", "html",
            "--report-dir", str(tmp_path),
            "--dry-run",
            "--max-moves", "5",
            "--workers", "4",
            "--timeout", "30",
            "--exclusive-selection",
        ])

        config = MigrationConfig.from_args(args)

        assert config.input_file == tmp_path / "list.txt"
        assert config.source_container == OLD_OU
        assert config.report_format == "html"
        assert config.report_sink == tmp_path
        assert config.dry_run
        assert config.max_moves == 5
        assert config.workers == 4
        assert config.timeout == 30.0
        assert not config.allow_combined_selection
        assert config.computer_names == []

    def test_default_client_is_powershell(self):
        args = cli.build_parser().parse_args(["-c", "SRV01", "-d", NEW_OU, "--server", "dc01"])
        client = cli.build_client(args)
        assert isinstance(client, PowerShellDirectory)
        assert client.server == "dc01"


class TestMain:
    """Tests for exit codes of main()."""

    def test_success(self, directory):
        assert cli.main(["-c", "SRV01", "-d", NEW_OU]) == 0
        assert directory.lookup("SRV01").full_path == f"CN=SRV01,{NEW_OU}"

    def test_item_failures_still_exit_zero(self, directory):
        """Per-computer failures are reported, not fatal."""
        assert cli.main(["-c", "SRV01", "-c", "GHOST", "-d", NEW_OU]) == 0

    def test_no_selection_exits_one(self, directory):
        assert cli.main(["-d", NEW_OU]) == 1
        assert directory.move_calls == []

    def test_unknown_destination_exits_one(self, directory):
        assert cli.main(["-c", "SRV01", "-d", "OU=Nowhere,DC=corp,DC=com"]) == 1

    def test_unreadable_input_file_exits_one(self, directory, tmp_path):
        assert cli.main(["-i", str(tmp_path / "missing.txt"), "-d", NEW_OU]) == 1

    def test_directory_timeout_exits_one(self, directory, monkeypatch):
        """A hung destination check is reported, not a traceback."""
        def hang(container):
            raise TimeoutError("PowerShell did not finish within 5s")

        monkeypatch.setattr(directory, "container_exists", hang)

        assert cli.main(["-c", "SRV01", "-d", NEW_OU]) == 1
        assert directory.move_calls == []

    def test_missing_powershell_exits_one(self):
        with mock.patch("subprocess.run", side_effect=FileNotFoundError("powershell")):
            assert cli.main(["-c", "SRV01", "-d", NEW_OU]) == 1

    def test_summary_separates_moved_from_unchanged(self, directory, tmp_path):
        directory.add_computer("SRV03", NEW_OU)
        log_file = tmp_path / "run.log"

        args = ["-c", "SRV01", "-c", "SRV03", "-d", NEW_OU, "--log-file", str(log_file)]
        assert cli.main(args) == 0

        log = log_file.read_text(encoding="utf-8")
        assert "1 moved, 1 unchanged (already in place or dry run), 0 failed" in log

    def test_writes_report(self, directory, tmp_path):
        assert cli.main(["-s", OLD_OU, "-d", NEW_OU, "-r", "csv", "--report-dir", str(tmp_path)]) == 0

        reports = list(tmp_path.glob("ComputerMigration_*.csv"))
        assert len(reports) == 1

    def test_skip_moved_resumes(self, directory, tmp_path):
        report = tmp_path / "previous.csv"
        report.write_text(
            "ComputerName,SourceOU,DestinationOU,Outcome\n"
            f'SRV01,"{OLD_OU}","{NEW_OU}",Success\n',
            encoding="utf-8",
        )

        assert cli.main(["-s", OLD_OU, "-d", NEW_OU, "--skip-moved", str(report)]) == 0

        assert [call[0] for call in directory.move_calls] == ["SRV02"]

    def test_skip_moved_missing_report(self, directory):
        assert cli.main(["-c", "SRV01", "-d", NEW_OU, "--skip-moved", "/nonexistent/report.csv"]) == 1
        assert directory.move_calls == []

    def test_log_file(self, directory, tmp_path):
        log_file = tmp_path / "logs" / "run.log"

        assert cli.main(["-c", "SRV01", "-d", NEW_OU, "--log-file", str(log_file)]) == 0

        assert log_file.exists()
