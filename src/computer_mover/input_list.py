"""
Input list reader for extracting computer names.

This module is responsible for:
- Reading newline-delimited text files of computer names
- Reading XLSX files using openpyxl (names in Column A)
- Treating all values as strings and trimming whitespace
- Skipping blank lines and empty cells
- Logging skipped rows

Deduplication is left to the resolver, which merges this list with the
other selection channels.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import openpyxl

from .errors import InputFileError

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


def load_identities(
    input_path: Union[str, Path],
    sheet_name: Optional[str] = None
) -> List[str]:
    """
    Load computer names from a list file.

    Files ending in .xlsx/.xlsm are read from Column A of the given (or
    active) sheet; anything else is read as UTF-8 text, one name per line.

    Args:
        input_path: Path to the list file
        sheet_name: Optional sheet name for spreadsheets

    Returns:
        List of trimmed, non-blank names in file order

    Raises:
        InputFileError: If the file is missing or cannot be read
    """
    path = Path(input_path)

    if not path.exists():
        raise InputFileError(f"Input file not found: {path}")

    if not path.is_file():
        raise InputFileError(f"Path is not a file: {path}")

    logger.info(f"Loading computer names from: {path}")

    if path.suffix.lower() in EXCEL_SUFFIXES:
        names = _load_from_workbook(path, sheet_name)
    else:
        names = _load_from_text(path)

    if not names:
        logger.warning(f"No computer names found in {path}")
    else:
        logger.info(f"Loaded {len(names)} computer names from {path.name}")

    return names


def _load_from_text(path: Path) -> List[str]:
    try:
        with path.open("r", encoding="utf-8-sig") as f:
            lines = f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise InputFileError(f"Failed to read input file {path}: {e}") from e

    names: List[str] = []
    for line_number, line in enumerate(lines, start=1):
        name = line.strip()
        if not name:
            logger.debug(f"Line {line_number}: blank, skipping")
            continue
        names.append(name)
    return names


def _load_from_workbook(path: Path, sheet_name: Optional[str]) -> List[str]:
    try:
        # data_only=True to get values instead of formulas
        workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except Exception as e:
        raise InputFileError(f"Failed to open Excel file: {e}") from e

    try:
        if sheet_name:
            if sheet_name not in workbook.sheetnames:
                available = ", ".join(workbook.sheetnames)
                raise InputFileError(
                    f"Sheet '{sheet_name}' not found. Available: {available}"
                )
            worksheet = workbook[sheet_name]
        else:
            worksheet = workbook.active

        names: List[str] = []
        for row_number, row in enumerate(
            worksheet.iter_rows(min_col=1, max_col=1, values_only=True), start=1
        ):
            cell_value = row[0]
            if cell_value is None:
                logger.debug(f"Row {row_number}: Empty cell, skipping")
                continue

            name = str(cell_value).strip()
            if not name:
                logger.debug(f"Row {row_number}: Empty after trim, skipping")
                continue
            names.append(name)
    finally:
        workbook.close()

    return names
