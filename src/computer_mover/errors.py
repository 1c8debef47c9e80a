"""
Exception hierarchy for the computer mover.

Fatal errors (selection, input file, destination and source OU validation)
abort a run before any directory change is made. DirectoryUnavailable (the
directory itself is unusable) is fatal as well. ObjectNotFound and
MoveRejected are raised by directory clients for a single computer and are
turned into per-computer results by the mover. ReportWriteFailed is only
ever surfaced as a warning.
"""


class ComputerMoverError(Exception):
    """Base error for the project."""


class NoSelectionProvided(ComputerMoverError):
    """None of the computer names, input file or source OU was given."""

    def __init__(self, message: str = "No computers selected: supply names, an input file or a source OU"):
        super().__init__(message)


class SelectionConflict(ComputerMoverError):
    """More than one selection channel was given while they are exclusive."""


class InputFileError(ComputerMoverError):
    """The computer list file could not be read."""


class InvalidDestination(ComputerMoverError):
    """The destination OU is missing or unknown to the directory."""


class InvalidSourceContainer(ComputerMoverError):
    """The source OU could not be searched."""


class ObjectNotFound(ComputerMoverError):
    """A computer could not be found in the directory."""

    def __init__(self, identity: str, message: str = ""):
        self.identity = identity
        super().__init__(message or f"Computer not found: {identity}")


class MoveRejected(ComputerMoverError):
    """The directory refused to move a computer."""

    def __init__(self, identity: str, message: str = ""):
        self.identity = identity
        super().__init__(message or f"Move rejected for {identity}")


class InvalidReportFormat(ComputerMoverError):
    """The requested report format is not supported."""


class ReportWriteFailed(ComputerMoverError):
    """The report could not be written."""


class DirectoryUnavailable(ComputerMoverError):
    """The directory cannot be used at all (tooling, connection or access)."""
