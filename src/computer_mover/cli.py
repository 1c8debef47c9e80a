"""
Command-line interface for the computer mover.

Usage examples:
    computer-mover -c SRV01 -c SRV02 -d "OU=Servers,DC=corp,DC=com"
    computer-mover -i computers.txt -d "OU=New,DC=corp,DC=com" -r csv --report-dir reports
    computer-mover -s "OU=Old,DC=corp,DC=com" -d "OU=New,DC=corp,DC=com" --dry-run

Exit codes:
    0  run completed (individual computers may still have failed, see the log/report)
    1  fatal error (nothing selected, bad destination/source OU, unreadable input)
    2  invalid command-line usage
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import MigrationConfig
from .directory import DirectoryClient, PowerShellDirectory
from .errors import ComputerMoverError
from .orchestrator import run_migration
from .report import ReportFormat, load_moved_computers

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Configure root logging: console always, plus a file when requested.

    Args:
        verbose: Log DEBUG instead of INFO
        log_file: Optional path for a log file
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="computer-mover",
        description=(
            "Move Active Directory computer accounts into a destination OU. "
            "Computers can be named directly, listed in a file (text or XLSX "
            "Column A) or taken from a source OU."
        ),
    )
    parser.add_argument(
        "-c", "--computer",
        dest="computer_names",
        action="append",
        metavar="NAME",
        help="Computer to move (repeatable)",
    )
    parser.add_argument(
        "-i", "--input-file",
        type=Path,
        help="File listing computers, one per line (or Column A of an XLSX)",
    )
    parser.add_argument(
        "-s", "--source-ou",
        dest="source_container",
        metavar="DN",
        help="Move every computer found under this OU",
    )
    parser.add_argument(
        "-d", "--destination-ou",
        dest="destination",
        metavar="DN",
        required=True,
        help="OU to move the computers into",
    )
    parser.add_argument(
        "-r", "--report",
        choices=[fmt.value for fmt in ReportFormat],
        help="Write a before/after report in this format",
    )
    parser.add_argument(
        "--report-dir",
        type=Path,
        help="Report file or directory (default: current directory)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be moved without changing the directory",
    )
    parser.add_argument(
        "--max-moves",
        type=_positive_int,
        help="Process at most this many computers (safety limit)",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=1,
        help="Computers processed concurrently (default: 1)",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_float,
        help="Seconds to wait on a single directory operation",
    )
    parser.add_argument(
        "--exclusive-selection",
        action="store_true",
        help="Reject combining -c, -i and -s instead of merging them",
    )
    parser.add_argument(
        "--skip-moved",
        type=Path,
        metavar="REPORT",
        help="Skip computers reported as moved in an earlier CSV report",
    )
    parser.add_argument(
        "--server",
        help="Domain controller to target",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write the log to this file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def build_client(args: argparse.Namespace) -> DirectoryClient:
    return PowerShellDirectory(server=args.server, timeout=args.timeout)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.log_file)

    config = MigrationConfig.from_args(args)

    if args.skip_moved:
        try:
            config.skip_identities = load_moved_computers(args.skip_moved)
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Cannot use --skip-moved report: {e}")
            return 1

    try:
        summary = run_migration(build_client(args), config)
    except (ComputerMoverError, TimeoutError, OSError) as e:
        logger.error(f"Migration aborted: {e}")
        return 1

    logger.info(
        f"Run {summary.run_id} finished: {summary.moved} moved, "
        f"{summary.unchanged} unchanged (already in place or dry run), "
        f"{summary.failed} failed"
    )
    for candidate in summary.resolution_failures:
        logger.warning(f"Not validated: {candidate.identity} ({candidate.reason})")
    for result in summary.results:
        if not result.succeeded:
            logger.warning(f"Failed: {result.identity} ({result.outcome}) {result.message}")
    if summary.report_path:
        logger.info(f"Report: {summary.report_path}")

    return 0
