"""
Loader - Parse uploaded spreadsheets into NamePairs.

The upload must have a header row containing an "Original" and a
"Duplicates" column (any case, any position). Everything else is ignored.
Only the first worksheet is read; blank rows above the header are skipped.
"""

import csv
import io
import logging
from pathlib import Path
from typing import BinaryIO, Iterable, Optional
from zipfile import BadZipFile

import xlrd
from xlrd.compdoc import CompDocError
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .exceptions import FormatError, InputReadError
from .models import NamePair

logger = logging.getLogger(__name__)

ORIGINAL_COLUMN = "original"
DUPLICATES_COLUMN = "duplicates"

EXCEL_EXTENSIONS = (".xlsx", ".xlsm")
LEGACY_EXCEL_EXTENSIONS = (".xls",)
CSV_EXTENSIONS = (".csv",)


def _find_column_index(headers: list, name: str) -> Optional[int]:
    """Find the column whose header equals name (case-insensitive)."""
    for i, header in enumerate(headers):
        if header is None:
            continue
        if str(header).strip().lower() == name:
            return i
    return None


def _cell_text(value) -> str:
    """Coerce a cell value to text. Empty cells become ""."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_blank(row: Iterable) -> bool:
    return all(value is None or str(value).strip() == "" for value in row)


def _rows_to_pairs(rows: Iterable[tuple], source_name: str) -> list[NamePair]:
    """Turn raw rows into NamePairs. The first non-blank row is the header."""
    rows = iter(rows)
    headers = next(rows, None)
    while headers is not None and _is_blank(headers):
        headers = next(rows, None)
    if headers is None:
        raise FormatError(f"{source_name} is empty - expected a header row")

    headers = list(headers)
    original_idx = _find_column_index(headers, ORIGINAL_COLUMN)
    duplicate_idx = _find_column_index(headers, DUPLICATES_COLUMN)

    missing = []
    if original_idx is None:
        missing.append("Original")
    if duplicate_idx is None:
        missing.append("Duplicates")
    if missing:
        raise FormatError(
            f'File must contain "Original" and "Duplicates" columns (missing: {", ".join(missing)})'
        )

    pairs = []
    for row in rows:
        if row is None or _is_blank(row):
            continue

        def get_val(idx):
            return row[idx] if idx < len(row) else None

        original = get_val(original_idx)
        duplicate = get_val(duplicate_idx)
        if _is_blank((original, duplicate)):
            continue  # Row has data only in ignored columns

        pairs.append(NamePair(original=_cell_text(original), duplicate=_cell_text(duplicate)))

    return pairs


def _read_excel(source, source_name: str) -> list[NamePair]:
    try:
        workbook = load_workbook(source, read_only=True, data_only=True)
    except (OSError, BadZipFile, InvalidFileException, KeyError) as e:
        raise InputReadError(f"Error reading file {source_name}: {e}") from e

    try:
        if not workbook.worksheets:
            raise FormatError(f"No worksheet found in {source_name}")
        sheet = workbook.worksheets[0]
        return _rows_to_pairs(sheet.iter_rows(values_only=True), source_name)
    finally:
        workbook.close()


def _read_xls(source, source_name: str) -> list[NamePair]:
    try:
        if isinstance(source, (str, Path)):
            workbook = xlrd.open_workbook(str(source))
        else:
            workbook = xlrd.open_workbook(file_contents=source.read())
    except (OSError, xlrd.XLRDError, CompDocError) as e:
        raise InputReadError(f"Error reading file {source_name}: {e}") from e

    try:
        if workbook.nsheets == 0:
            raise FormatError(f"No worksheet found in {source_name}")
        sheet = workbook.sheet_by_index(0)
        rows = (sheet.row_values(r) for r in range(sheet.nrows))
        return _rows_to_pairs(rows, source_name)
    finally:
        workbook.release_resources()


def _read_csv(source, source_name: str) -> list[NamePair]:
    try:
        if isinstance(source, (str, Path)):
            with open(source, "rb") as f:
                raw = f.read()
        else:
            raw = source.read()
        text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
    except (OSError, UnicodeDecodeError) as e:
        raise InputReadError(f"Error reading file {source_name}: {e}") from e

    reader = csv.reader(io.StringIO(text, newline=""))
    return _rows_to_pairs((tuple(row) for row in reader), source_name)


def load_pairs(source: str | Path | BinaryIO, filename: Optional[str] = None) -> list[NamePair]:
    """
    Load name pairs from an uploaded spreadsheet.

    Args:
        source: Path to the file, or a binary file handle (e.g. an upload)
        filename: Original file name, used to pick the parser when source
                  is a handle. Handles without a name are read as XLSX.

    Returns:
        NamePairs in file row order

    Raises:
        InputReadError: File missing or not readable
        FormatError: Unsupported file type or required columns missing
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise InputReadError(f"File not found: {path}")
        source_name = filename or path.name
    else:
        handle_name = getattr(source, "name", None)
        source_name = filename or (handle_name if isinstance(handle_name, str) else "upload")

    suffix = Path(source_name).suffix.lower()
    if suffix in CSV_EXTENSIONS:
        pairs = _read_csv(source, source_name)
    elif suffix in LEGACY_EXCEL_EXTENSIONS:
        pairs = _read_xls(source, source_name)
    elif suffix in EXCEL_EXTENSIONS or suffix == "":
        pairs = _read_excel(source, source_name)
    else:
        raise FormatError(f"Unsupported file type '{suffix}' - upload an .xlsx, .xls or .csv file")

    logger.info(f"Loaded {len(pairs)} name pairs from {source_name}")
    return pairs
