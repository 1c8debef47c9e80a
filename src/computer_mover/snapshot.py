"""
Audit snapshots of where each computer lives before it is moved.
"""

import logging
from typing import Iterable, List

from .directory import DirectoryClient
from .errors import DirectoryUnavailable, ObjectNotFound
from .types import FailureReason, ReportRecord
from .utils import parent_container

logger = logging.getLogger(__name__)


def snapshot(
    client: DirectoryClient,
    identity: str,
    destination: str
) -> ReportRecord:
    """
    Build the report record for one computer from its current location.

    Only reads from the directory.

    Raises:
        ObjectNotFound: If the computer does not exist
    """
    obj = client.lookup(identity)
    try:
        source = parent_container(obj.full_path)
    except ValueError as e:
        raise ObjectNotFound(identity, f"Unusable path for {identity}: {e}") from e

    return ReportRecord(
        computer_name=identity,
        source_container_path=source,
        destination_container_path=destination,
    )


def snapshot_all(
    client: DirectoryClient,
    identities: Iterable[str],
    destination: str
) -> List[ReportRecord]:
    """
    Snapshot a batch; computers that cannot be read get a failed record.

    Only DirectoryUnavailable stops the batch.
    """
    records: List[ReportRecord] = []

    for identity in identities:
        try:
            records.append(snapshot(client, identity, destination))
            continue
        except DirectoryUnavailable:
            raise
        except ObjectNotFound as e:
            reason, error = FailureReason.NOT_FOUND, e
        except TimeoutError as e:
            reason, error = FailureReason.TIMEOUT, e
        except Exception as e:
            logger.error(f"Unexpected error reading {identity}: {e}")
            reason, error = FailureReason.ERROR, e

        logger.warning(f"Could not snapshot {identity}: {error or reason.value}")
        records.append(ReportRecord(
            computer_name=identity,
            source_container_path="",
            destination_container_path=destination,
            outcome=f"Failed({reason.value})",
        ))

    return records
