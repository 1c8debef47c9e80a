"""
Orchestration of a full migration run.

A run moves through these states:

    IDLE -> VALIDATING -> RESOLVING -> [REPORTING] -> EXECUTING -> DONE

VALIDATING and RESOLVING fail fast into ABORTED, before the directory is
changed. An unusable directory (DirectoryUnavailable) during REPORTING
aborts the run the same way. REPORTING (snapshotting source OUs) only happens when a report
format is configured; the report itself is written after EXECUTING so it
carries each computer's outcome.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from .config import MigrationConfig
from .directory import DirectoryClient
from .errors import InvalidDestination, NoSelectionProvided
from .mover import ComputerMover
from .report import ReportFormat, emit, make_run_id
from .resolver import resolve
from .snapshot import snapshot_all
from .types import (
    Candidate,
    FailureReason,
    MoveResult,
    MoveStatus,
    ReportRecord,
    ResolvedSelection,
)
from .utils import normalize_identity

logger = logging.getLogger(__name__)

NOT_PROCESSED_OUTCOME = "NotProcessed"


class RunState(Enum):
    """Lifecycle of a migration run."""
    IDLE = "idle"
    VALIDATING = "validating"
    RESOLVING = "resolving"
    REPORTING = "reporting"
    EXECUTING = "executing"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class MigrationSummary:
    """What a finished run did."""
    run_id: str
    state: RunState
    results: List[MoveResult] = field(default_factory=list)
    resolution_failures: List[Candidate] = field(default_factory=list)
    report_path: Optional[Path] = None

    @property
    def moved(self) -> int:
        """Computers actually moved by this run."""
        return sum(1 for r in self.results if r.status is MoveStatus.MOVED)

    @property
    def unchanged(self) -> int:
        """Successful results that changed nothing (already in place or dry run)."""
        return self.succeeded - self.moved

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.succeeded) + len(self.resolution_failures)


class MigrationRun:
    """
    Sequences resolver, snapshot, mover and report for one run.

    Each instance is meant to be run once; ``state`` shows how far it got.
    """

    def __init__(self, client: DirectoryClient, config: MigrationConfig):
        self.client = client
        self.config = config
        self.state = RunState.IDLE
        self.run_id = make_run_id()

    def _enter(self, state: RunState) -> None:
        logger.debug(f"Run {self.run_id}: {self.state.value} -> {state.value}")
        self.state = state

    def run(self) -> MigrationSummary:
        """
        Execute the run.

        Raises:
            NoSelectionProvided, SelectionConflict, InvalidDestination,
            InvalidSourceContainer, InputFileError, InvalidReportFormat,
            DirectoryUnavailable:
                fatal problems found before any computer was moved
        """
        try:
            self._enter(RunState.VALIDATING)
            report_format = self._validate()

            self._enter(RunState.RESOLVING)
            selection = self._resolve()

            records: List[ReportRecord] = []
            if report_format is not None:
                self._enter(RunState.REPORTING)
                records = self._snapshot(selection)
        except Exception:
            self._enter(RunState.ABORTED)
            raise

        self._enter(RunState.EXECUTING)
        mover = ComputerMover(
            self.client,
            self.config.destination,
            dry_run=self.config.dry_run,
            max_moves=self.config.max_moves,
            workers=self.config.workers,
            timeout=self.config.timeout,
        )
        results = mover.migrate(selection.identities)
        logger.info(mover.get_summary())

        report_path = None
        if report_format is not None:
            self._correlate(records, results)
            report_path = emit(
                records, report_format, self.config.report_sink, run_id=self.run_id
            )

        self._enter(RunState.DONE)
        return MigrationSummary(
            run_id=self.run_id,
            state=self.state,
            results=results,
            resolution_failures=selection.failures,
            report_path=report_path,
        )

    def _validate(self) -> Optional[ReportFormat]:
        if not self.config.has_selection():
            raise NoSelectionProvided()

        destination = self.config.destination
        if not destination or not destination.strip():
            raise InvalidDestination("A destination OU is required")

        report_format = None
        if self.config.report_format:
            report_format = ReportFormat.parse(self.config.report_format)

        if not self.client.container_exists(destination):
            raise InvalidDestination(f"Destination OU not found: {destination}")

        return report_format

    def _resolve(self) -> ResolvedSelection:
        selection = resolve(
            self.client,
            computer_names=self.config.computer_names,
            input_file=self.config.input_file,
            source_container=self.config.source_container,
            allow_combined=self.config.allow_combined_selection,
        )

        if self.config.skip_identities:
            skip = {normalize_identity(name) for name in self.config.skip_identities}
            kept = [i for i in selection.identities if normalize_identity(i) not in skip]
            skipped = len(selection.identities) - len(kept)
            if skipped:
                logger.info(f"Skipping {skipped} computers moved in an earlier run")
            selection.identities = kept
            selection.candidates = [
                c for c in selection.candidates
                if not (c.resolved and normalize_identity(c.identity) in skip)
            ]

        return selection

    def _snapshot(self, selection: ResolvedSelection) -> List[ReportRecord]:
        """Report records for every candidate, in candidate order."""
        destination = self.config.destination
        snapshots: Dict[str, ReportRecord] = {
            normalize_identity(record.computer_name): record
            for record in snapshot_all(self.client, selection.identities, destination)
        }

        records: List[ReportRecord] = []
        for candidate in selection.candidates:
            if candidate.resolved:
                records.append(snapshots[normalize_identity(candidate.identity)])
            else:
                reason = candidate.failure_reason or FailureReason.NOT_FOUND
                records.append(ReportRecord(
                    computer_name=candidate.identity,
                    source_container_path="",
                    destination_container_path=destination,
                    outcome=f"Failed({reason.value})",
                ))
        return records

    @staticmethod
    def _correlate(records: List[ReportRecord], results: List[MoveResult]) -> None:
        by_name = {normalize_identity(r.identity): r for r in results}
        for record in records:
            result = by_name.get(normalize_identity(record.computer_name))
            if result is not None:
                record.outcome = result.outcome
                if not record.source_container_path:
                    # Snapshot could not read the source OU
                    record.source_container_path = result.source_path
            elif record.outcome is None:
                # Beyond the --max-moves limit
                record.outcome = NOT_PROCESSED_OUTCOME


def run_migration(client: DirectoryClient, config: MigrationConfig) -> MigrationSummary:
    """Run one migration with ``config`` against ``client``."""
    return MigrationRun(client, config).run()
