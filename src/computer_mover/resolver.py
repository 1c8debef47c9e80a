"""
Selector resolver for turning user input into a validated move set.

This module is responsible for:
- Collecting names from the explicit list, the input file and the source OU
- Merging the channels case-insensitively, keeping first-seen order
- Optionally rejecting more than one channel (exclusive selection)
- Validating every name against the directory
- Recording names that fail validation instead of aborting the batch
  (only an unusable directory stops resolution)
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from .directory import DirectoryClient
from .errors import (
    DirectoryUnavailable,
    NoSelectionProvided,
    ObjectNotFound,
    SelectionConflict,
)
from .input_list import load_identities
from .types import Candidate, FailureReason, ResolvedSelection
from .utils import normalize_identity

logger = logging.getLogger(__name__)


def merge_identities(*channels: Iterable[str]) -> List[str]:
    """
    Union several name lists case-insensitively.

    The first spelling seen for a name is kept, as is first-seen order.
    Whitespace is trimmed and blank entries are dropped.
    """
    merged: List[str] = []
    seen = set()
    duplicate_count = 0

    for channel in channels:
        for raw in channel:
            name = raw.strip()
            if not name:
                continue
            key = normalize_identity(name)
            if key in seen:
                duplicate_count += 1
                continue
            seen.add(key)
            merged.append(name)

    if duplicate_count:
        logger.debug(f"Dropped {duplicate_count} duplicate names")
    return merged


def collect_candidates(
    client: DirectoryClient,
    computer_names: Optional[Sequence[str]] = None,
    input_file: Optional[Union[str, Path]] = None,
    source_container: Optional[str] = None,
    allow_combined: bool = True
) -> List[str]:
    """
    Gather and merge names from all supplied channels, without validation.

    Raises:
        NoSelectionProvided: If no channel was supplied
        SelectionConflict: If several channels were supplied and
                           ``allow_combined`` is False
        InputFileError: If the input file cannot be read
        InvalidSourceContainer: If the source OU cannot be searched
    """
    names = [n for n in (computer_names or []) if n and n.strip()]
    supplied = [
        label
        for label, present in (
            ("computer names", bool(names)),
            ("input file", bool(input_file)),
            ("source OU", bool(source_container)),
        )
        if present
    ]

    if not supplied:
        raise NoSelectionProvided()

    if len(supplied) > 1 and not allow_combined:
        raise SelectionConflict(
            f"Only one selection may be used, got: {', '.join(supplied)}"
        )

    channels: List[List[str]] = [names]

    if input_file:
        channels.append(load_identities(input_file))

    if source_container:
        logger.info(f"Searching for computers in {source_container}")
        found = [obj.name for obj in client.search(source_container)]
        logger.info(f"Found {len(found)} computers in {source_container}")
        channels.append(found)

    return merge_identities(*channels)


def validate_candidates(
    client: DirectoryClient,
    identities: Iterable[str]
) -> ResolvedSelection:
    """
    Look every name up in the directory.

    Names that resolve go to ``identities``; names that do not are recorded
    in ``failures`` with the reason. ``candidates`` keeps every name in
    input order.
    """
    selection = ResolvedSelection()

    for identity in identities:
        candidate = Candidate(identity=identity)
        selection.candidates.append(candidate)
        try:
            client.lookup(identity)
        except DirectoryUnavailable:
            raise
        except ObjectNotFound as e:
            _reject(selection, candidate, FailureReason.NOT_FOUND, e)
            continue
        except TimeoutError as e:
            _reject(selection, candidate, FailureReason.TIMEOUT, e)
            continue
        except Exception as e:
            logger.error(f"Unexpected error looking up {identity}: {e}")
            _reject(selection, candidate, FailureReason.ERROR, e)
            continue

        candidate.resolved = True
        selection.identities.append(identity)

    logger.info(
        f"Resolved {len(selection.identities)} computers "
        f"({len(selection.failures)} could not be validated)"
    )
    return selection


def _reject(
    selection: ResolvedSelection,
    candidate: Candidate,
    reason: FailureReason,
    error: Exception
) -> None:
    candidate.failure_reason = reason
    candidate.reason = str(error) or reason.value
    selection.failures.append(candidate)
    logger.warning(f"Skipping {candidate.identity}: {candidate.reason}")


def resolve(
    client: DirectoryClient,
    computer_names: Optional[Sequence[str]] = None,
    input_file: Optional[Union[str, Path]] = None,
    source_container: Optional[str] = None,
    allow_combined: bool = True
) -> ResolvedSelection:
    """
    Merge all selection channels into one validated, deduplicated move set.

    Args:
        client: Directory used for searching and validation
        computer_names: Explicit computer names
        input_file: Path to a text or XLSX list of names
        source_container: OU whose computers should all be selected
        allow_combined: If False, supplying more than one channel is an error

    Returns:
        ResolvedSelection with validated identities and lookup failures
    """
    identities = collect_candidates(
        client,
        computer_names=computer_names,
        input_file=input_file,
        source_container=source_container,
        allow_combined=allow_combined,
    )
    return validate_candidates(client, identities)
