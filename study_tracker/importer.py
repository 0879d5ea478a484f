"""
Bulk import of row names.

Reads the first column of a spreadsheet-like file into an ordered list of
names for StudyTracker.add_rows. Supported: .xlsx (first sheet), .csv and
.txt (one name per line). Legacy .xls workbooks are refused; openpyxl
only reads the OOXML formats.
"""

from __future__ import annotations

import csv
import zipfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from loguru import logger
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from study_tracker.tracker.errors import ImportSourceError

SUPPORTED_SUFFIXES = (".xlsx", ".csv", ".txt")


def _clean(values: Iterable[Any]) -> list[str]:
    names = []
    for value in values:
        if value is None:
            continue
        name = str(value).strip()
        if name:
            names.append(name)
    return names


def _first_column_xlsx(path: Path) -> list[Any]:
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        return [row[0] if row else None for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def _first_column_csv(path: Path) -> list[Any]:
    with path.open(newline="", encoding="utf-8-sig") as handle:
        return [row[0] if row else None for row in csv.reader(handle)]


def _lines(path: Path) -> list[Any]:
    return path.read_text(encoding="utf-8-sig").splitlines()


def read_names(path: Path | str) -> list[str]:
    """
    Read row names from the first column of a file.

    Values are trimmed and blanks skipped; order is preserved.

    Raises:
        ImportSourceError: unsupported, unreadable, or no names found
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".xls":
        raise ImportSourceError(
            f"{path.name} is a legacy .xls workbook; save it as .xlsx or .csv and try again"
        )
    if suffix not in SUPPORTED_SUFFIXES:
        raise ImportSourceError(
            f"Unsupported file type {suffix or '(none)'}; use {', '.join(SUPPORTED_SUFFIXES)}"
        )

    try:
        if suffix == ".xlsx":
            values = _first_column_xlsx(path)
        elif suffix == ".csv":
            values = _first_column_csv(path)
        else:
            values = _lines(path)
    except (OSError, ValueError, KeyError, zipfile.BadZipFile, InvalidFileException) as e:
        raise ImportSourceError(f"Failed to parse {path.name}: {e}") from e

    names = _clean(values)
    if not names:
        raise ImportSourceError("No data found in the file. Put names in the first column.")

    logger.debug("Read {} names from {}", len(names), path)
    return names
