"""
Type definitions and data classes for the computer mover application.

This module defines:
- DirectoryObject: Data class for a computer as returned by the directory
- Candidate: Data class for an identity under consideration for migration
- ResolvedSelection: The validated move set plus resolution failures
- MoveStatus / FailureReason: Enums for move operation outcomes
- MoveResult: Data class representing the result of a move operation
- ReportRecord: Data class for before/after report rows
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(slots=True)
class DirectoryObject:
    """
    Represents a computer object as seen by the directory.

    Attributes:
        name: The computer name (e.g., "SRV01")
        full_path: The distinguished name (e.g., "CN=SRV01,OU=Old,DC=corp,DC=com")
    """
    name: str
    full_path: str


@dataclass
class Candidate:
    """An identity under consideration before validation."""
    identity: str
    resolved: bool = False
    reason: str = ""
    failure_reason: Optional["FailureReason"] = None


@dataclass
class ResolvedSelection:
    """Result of merging and validating all selection channels."""
    identities: List[str] = field(default_factory=list)
    failures: List[Candidate] = field(default_factory=list)
    candidates: List[Candidate] = field(default_factory=list)


class MoveStatus(Enum):
    """Status of a computer move operation."""
    MOVED = "moved"                    # Moved successfully
    SKIPPED_EXISTS = "skipped_exists"  # Already in the destination OU
    DRY_RUN = "dry_run"                # Would move (dry run mode)
    FAILED = "failed"                  # Failed, see FailureReason


class FailureReason(Enum):
    """Why a move failed."""
    NOT_FOUND = "NotFound"
    MOVE_REJECTED = "MoveRejected"
    TIMEOUT = "Timeout"
    ERROR = "Error"


@dataclass
class MoveResult:
    """Result of a move operation."""
    identity: str
    source_path: str
    status: MoveStatus
    reason: Optional[FailureReason] = None
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status is not MoveStatus.FAILED

    @property
    def outcome(self) -> str:
        """Report-friendly outcome: ``Success``, ``DryRun`` or ``Failed(<reason>)``."""
        if self.status is MoveStatus.DRY_RUN:
            return "DryRun"
        if self.succeeded:
            return "Success"
        reason = self.reason or FailureReason.ERROR
        return f"Failed({reason.value})"


@dataclass
class ReportRecord:
    """Entry for the before/after report."""
    computer_name: str
    source_container_path: str
    destination_container_path: str
    outcome: Optional[str] = None
