"""
Run configuration for a computer migration.
"""

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set


@dataclass
class MigrationConfig:
    """
    Everything one migration run needs besides the directory client.

    Attributes:
        destination: Destination OU distinguished name
        computer_names: Explicitly named computers
        input_file: Text or XLSX file listing computers
        source_container: OU whose computers are all selected
        report_format: "csv", "html" or None for no report
        report_sink: Report file or directory (defaults to the current directory)
        dry_run: Simulate moves without changing the directory
        max_moves: Optional cap on the number of computers processed
        workers: Computers processed concurrently
        timeout: Seconds to wait for a single computer before giving up on it
        allow_combined_selection: Union several selection channels instead of
                                  rejecting them
        skip_identities: Names to leave alone (e.g. moved in an earlier run)
    """
    destination: str = ""
    computer_names: List[str] = field(default_factory=list)
    input_file: Optional[Path] = None
    source_container: Optional[str] = None
    report_format: Optional[str] = None
    report_sink: Path = field(default_factory=Path.cwd)
    dry_run: bool = False
    max_moves: Optional[int] = None
    workers: int = 1
    timeout: Optional[float] = None
    allow_combined_selection: bool = True
    skip_identities: Set[str] = field(default_factory=set)

    def has_selection(self) -> bool:
        return bool(
            [n for n in self.computer_names if n and n.strip()]
            or self.input_file
            or self.source_container
        )

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "MigrationConfig":
        """Build a config from parsed command-line arguments."""
        return cls(
            destination=(args.destination or "").strip(),
            computer_names=list(args.computer_names or []),
            input_file=args.input_file,
            source_container=args.source_container,
            report_format=args.report,
            report_sink=args.report_dir or Path.cwd(),
            dry_run=args.dry_run,
            max_moves=args.max_moves,
            workers=args.workers,
            timeout=args.timeout,
            allow_combined_selection=not args.exclusive_selection,
        )
