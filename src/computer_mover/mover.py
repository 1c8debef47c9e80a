"""
Computer mover for relocating computers into the destination OU.

This module is responsible for:
- Moving computers from their current OU to the destination OU
- Supporting dry-run mode (no actual moves)
- Ensuring idempotency (skip if already in the destination)
- Catching and recording errors per computer (not found, access denied, timeouts)
- Running moves on a bounded set of worker threads while keeping input order
- Logging all operations
- Returning detailed results for reporting
"""

import logging
import queue
import threading
import time
from collections import deque
from typing import Dict, List, Optional, Tuple

from .directory import DirectoryClient
from .errors import MoveRejected, ObjectNotFound
from .types import FailureReason, MoveResult, MoveStatus
from .utils import parent_container, same_container

logger = logging.getLogger(__name__)


def move_computer(
    client: DirectoryClient,
    identity: str,
    destination: str,
    dry_run: bool = False
) -> MoveResult:
    """
    Move a single computer into the destination OU.

    Never raises for problems with the computer itself; every failure is
    returned as a FAILED result with a reason.

    Args:
        client: The directory to operate on
        identity: Computer name
        destination: Destination OU distinguished name
        dry_run: If True, simulate the move without performing it

    Returns:
        MoveResult with status and details
    """
    try:
        obj = client.lookup(identity)
    except ObjectNotFound as e:
        logger.warning(f"Computer not found: {identity}")
        return MoveResult(
            identity=identity,
            source_path="",
            status=MoveStatus.FAILED,
            reason=FailureReason.NOT_FOUND,
            message=str(e)
        )
    except TimeoutError as e:
        return _timeout_result(identity, "", e)
    except Exception as e:
        logger.error(f"Unexpected error looking up {identity}: {e}")
        return MoveResult(
            identity=identity,
            source_path="",
            status=MoveStatus.FAILED,
            reason=FailureReason.ERROR,
            message=f"Unexpected error: {e}"
        )

    try:
        source = parent_container(obj.full_path)
    except ValueError as e:
        source = ""
        logger.debug(f"Cannot derive source OU for {identity}: {e}")

    # Already there: a successful no-op
    if source and same_container(source, destination):
        logger.info(f"Already in destination: {identity}")
        return MoveResult(
            identity=identity,
            source_path=source,
            status=MoveStatus.SKIPPED_EXISTS,
            message="Already in destination OU"
        )

    if dry_run:
        logger.info(f"[DRY RUN] {identity}: {source} -> {destination}")
        return MoveResult(
            identity=identity,
            source_path=source,
            status=MoveStatus.DRY_RUN,
            message=f"Would move to {destination}"
        )

    try:
        logger.info(f"Moving: {identity} ({source}) -> {destination}")
        client.move(identity, destination)
        return MoveResult(
            identity=identity,
            source_path=source,
            status=MoveStatus.MOVED,
            message="Moved successfully"
        )

    except ObjectNotFound as e:
        logger.warning(f"Computer disappeared before move: {identity}")
        return MoveResult(
            identity=identity,
            source_path=source,
            status=MoveStatus.FAILED,
            reason=FailureReason.NOT_FOUND,
            message=str(e)
        )

    except (MoveRejected, PermissionError) as e:
        logger.warning(f"Move rejected for {identity}: {e}")
        return MoveResult(
            identity=identity,
            source_path=source,
            status=MoveStatus.FAILED,
            reason=FailureReason.MOVE_REJECTED,
            message=str(e)
        )

    except TimeoutError as e:
        return _timeout_result(identity, source, e)

    except Exception as e:
        logger.error(f"Unexpected error moving {identity}: {e}")
        return MoveResult(
            identity=identity,
            source_path=source,
            status=MoveStatus.FAILED,
            reason=FailureReason.ERROR,
            message=f"Unexpected error: {e}"
        )


def _timeout_result(identity: str, source: str, error: Exception) -> MoveResult:
    logger.warning(f"Timed out processing {identity}: {error}")
    return MoveResult(
        identity=identity,
        source_path=source,
        status=MoveStatus.FAILED,
        reason=FailureReason.TIMEOUT,
        message=f"Timed out: {error}" if str(error) else "Timed out"
    )


class ComputerMover:
    """
    Moves computers into a single destination OU.

    Supports dry-run mode for previewing operations and an optional worker
    pool for large batches. Results always come back in input order.
    """

    def __init__(
        self,
        client: DirectoryClient,
        destination: str,
        dry_run: bool = False,
        max_moves: Optional[int] = None,
        workers: int = 1,
        timeout: Optional[float] = None
    ):
        """
        Initialize the mover with destination settings.

        Args:
            client: The directory to operate on
            destination: Destination OU distinguished name
            dry_run: If True, simulate moves without actually performing them
            max_moves: Optional limit on number of moves (for safety testing)
            workers: Number of computers processed concurrently
            timeout: Optional seconds to wait for any single computer
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")

        self.client = client
        self.destination = destination
        self.dry_run = dry_run
        self.max_moves = max_moves
        self.workers = workers
        self.timeout = timeout

        self._lock = threading.Lock()
        self._stats: Dict[MoveStatus, int] = {status: 0 for status in MoveStatus}

    def _record(self, result: MoveResult) -> MoveResult:
        with self._lock:
            self._stats[result.status] += 1
        return result

    def move_computer(self, identity: str) -> MoveResult:
        """Move one computer and count the outcome."""
        return self._record(
            move_computer(self.client, identity, self.destination, self.dry_run)
        )

    def migrate(
        self,
        identities: List[str],
        progress_callback=None
    ) -> List[MoveResult]:
        """
        Move all computers to the destination OU.

        A failure on one computer never stops the others and nothing is
        rolled back.

        Args:
            identities: Computer names to process
            progress_callback: Optional callable(current, total, result) for progress

        Returns:
            List of MoveResult objects, in the order of ``identities``
        """
        total = len(identities)

        # Apply max_moves limit if set
        if self.max_moves is not None and total > self.max_moves:
            logger.warning(
                f"Limiting moves to {self.max_moves} of {total} "
                f"(--max-moves safety limit)"
            )
            identities = identities[:self.max_moves]
            total = len(identities)

        logger.info(f"Processing {total} computers into {self.destination}...")

        if self.workers > 1 or self.timeout is not None:
            results = self._migrate_pooled(identities, progress_callback)
        else:
            results = []
            for i, identity in enumerate(identities):
                result = self.move_computer(identity)
                results.append(result)
                self._progress(i + 1, total, result, progress_callback)

        logger.info(f"Completed processing {total} computers")
        return results

    def _migrate_pooled(self, identities: List[str], progress_callback) -> List[MoveResult]:
        """
        Run at most ``workers`` computers at a time, each on its own thread.

        A computer's timeout counts from the moment its thread starts, so
        computers waiting for a free slot are never charged for a hung one.
        A timed-out thread is abandoned (daemon threads do not hold up
        interpreter exit) and its slot goes to the next computer.
        """
        total = len(identities)
        results: List[Optional[MoveResult]] = [None] * total
        pending = deque(enumerate(identities))
        running: Dict[int, Tuple[str, Optional[float]]] = {}
        finished: "queue.Queue[Tuple[int, MoveResult]]" = queue.Queue()
        completed = 0

        def work(index: int, identity: str) -> None:
            finished.put((
                index,
                move_computer(self.client, identity, self.destination, self.dry_run),
            ))

        while pending or running:
            while pending and len(running) < self.workers:
                index, identity = pending.popleft()
                deadline = None
                if self.timeout is not None:
                    deadline = time.monotonic() + self.timeout
                running[index] = (identity, deadline)
                threading.Thread(
                    target=work,
                    args=(index, identity),
                    name=f"computer-mover-{index}",
                    daemon=True,
                ).start()

            deadlines = [d for _, d in running.values() if d is not None]
            wait = max(0.0, min(deadlines) - time.monotonic()) if deadlines else None

            try:
                index, result = finished.get(timeout=wait)
            except queue.Empty:
                now = time.monotonic()
                expired = [
                    i for i, (_, deadline) in running.items()
                    if deadline is not None and deadline <= now
                ]
                for index in expired:
                    identity, _ = running.pop(index)
                    results[index] = self._record(_timeout_result(
                        identity,
                        "",
                        TimeoutError(
                            f"no answer within {self.timeout}s; "
                            "the directory may still complete the operation"
                        ),
                    ))
                    completed += 1
                    self._progress(completed, total, results[index], progress_callback)
                continue

            if index not in running:
                logger.warning(
                    f"{result.identity} finished after its timeout: "
                    f"{result.status.value} ({result.message})"
                )
                continue

            del running[index]
            results[index] = self._record(result)
            completed += 1
            self._progress(completed, total, result, progress_callback)

        return results

    @staticmethod
    def _progress(current: int, total: int, result: MoveResult, progress_callback) -> None:
        if progress_callback:
            progress_callback(current, total, result)

        # Log progress every 100 computers
        if current % 100 == 0:
            logger.info(f"Processed {current}/{total} computers...")

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about move operations.

        Returns:
            Dictionary mapping status names to counts
        """
        with self._lock:
            return {status.value: count for status, count in self._stats.items()}

    def get_summary(self) -> str:
        """
        Get a human-readable summary of move operations.

        Returns:
            Formatted summary string
        """
        stats = self.get_stats()
        total = sum(stats.values())

        lines = [f"Move Summary ({total} total):"]

        if self.dry_run:
            lines.append(f"  Would move: {stats['dry_run']}")
        else:
            lines.append(f"  Moved: {stats['moved']}")

        if stats["skipped_exists"]:
            lines.append(f"  Already in destination: {stats['skipped_exists']}")

        if stats["failed"]:
            lines.append(f"  Failed: {stats['failed']}")

        return "\n".join(lines)

    def reset_stats(self) -> None:
        """Reset statistics for a new batch."""
        with self._lock:
            self._stats = {status: 0 for status in MoveStatus}


def migrate(
    client: DirectoryClient,
    identities: List[str],
    destination: str,
    dry_run: bool = False,
    workers: int = 1,
    timeout: Optional[float] = None
) -> List[MoveResult]:
    """Move ``identities`` into ``destination`` with a one-off ComputerMover."""
    mover = ComputerMover(
        client, destination, dry_run=dry_run, workers=workers, timeout=timeout
    )
    return mover.migrate(identities)
