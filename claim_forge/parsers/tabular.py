"""Workbook and delimited-text decoding for NCCI edit files.

Provides parsing for:
- Excel workbooks (one row set per non-empty sheet) via openpyxl
- CSV and tab-delimited text files (a single row set)

CMS files carry copyright and notice lines above the real header row, so
the header is detected rather than assumed to be the first row.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from openpyxl import load_workbook

from ..errors import DecodeFailed

logger = logging.getLogger(__name__)

WORKBOOK_EXTENSIONS = (".xlsx", ".xlsm")
DELIMITED_EXTENSIONS = (".csv", ".txt")
TABULAR_EXTENSIONS = WORKBOOK_EXTENSIONS + DELIMITED_EXTENSIONS

# Rows scanned when looking for the header line
HEADER_SCAN_ROWS = 25


@dataclass
class RowSet:
    """Rows decoded from one sheet or one delimited file."""

    source: str
    sheet: str | None
    rows: list[dict[str, Any]] = field(default_factory=list)


def is_tabular(name: str) -> bool:
    return name.lower().endswith(TABULAR_EXTENSIONS)


def normalize_field_name(name: Any) -> str:
    """Normalize a header name.

    Lowercases, turns whitespace, dashes and underscores into single
    underscores, and drops other punctuation, so ``"Add-On_Code"`` and
    ``"Add-on Code"`` both become ``"add_on_code"``.

    Args:
        name: Original header cell value

    Returns:
        Normalized name, or an empty string if nothing survives
    """
    if name is None:
        return ""

    normalized = ""
    for char in str(name).strip():
        if char.isalnum():
            normalized += char.lower()
        elif char.isspace() or char in "-_":
            normalized += "_"

    while "__" in normalized:
        normalized = normalized.replace("__", "_")

    return normalized.strip("_")


def _clean_cell(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


@dataclass(frozen=True)
class HeaderHints:
    """Normalized header names expected for one kind of edit file.

    ``exact`` names must match a header cell exactly; ``prefixes`` also
    match longer cells such as ``deletion_date_no_data``.
    """

    exact: frozenset[str] = frozenset()
    prefixes: frozenset[str] = frozenset()

    def matches(self, key: str) -> bool:
        if not key:
            return False
        if key in self.exact or key in self.prefixes:
            return True
        return any(key.startswith(p + "_") for p in self.prefixes)


def find_header_row(
    rows: Sequence[Sequence[Any]], hints: HeaderHints | None = None
) -> int | None:
    """Find the header line within the first HEADER_SCAN_ROWS rows.

    Without hints the first row with at least two text cells wins. With
    hints the row must contain at least two recognized header names, so
    a notice line that a CSV reader split on its commas is passed over.

    Args:
        rows: Raw cell rows
        hints: Expected header names for the file's edit kind

    Returns:
        Row index, or None if no row qualifies
    """
    for idx, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        text_cells = [c for c in row if isinstance(c, str) and c.strip()]
        if hints is not None:
            known = [c for c in text_cells if hints.matches(normalize_field_name(c))]
            if len(known) >= 2:
                return idx
        elif len(text_cells) >= 2:
            return idx
    return None


def rows_to_records(
    raw_rows: Iterable[Sequence[Any]], hints: HeaderHints | None = None
) -> list[dict[str, Any]]:
    """Convert raw cell rows into dicts keyed by normalized header names.

    Blank rows are skipped; short rows are padded with None.
    """
    rows = [list(row) for row in raw_rows]
    header_idx = find_header_row(rows, hints)
    if header_idx is None:
        return []

    keys: list[str] = []
    for i, cell in enumerate(rows[header_idx]):
        key = normalize_field_name(cell) or f"column_{i}"
        if key in keys:
            key = f"{key}_{i}"
        keys.append(key)

    records: list[dict[str, Any]] = []
    for row in rows[header_idx + 1 :]:
        cells = [_clean_cell(c) for c in row[: len(keys)]]
        if all(c is None for c in cells):
            continue
        cells.extend([None] * (len(keys) - len(cells)))
        records.append(dict(zip(keys, cells)))
    return records


def decode_workbook(
    data: bytes, source: str, hints: HeaderHints | None = None
) -> list[RowSet]:
    """Decode every non-empty sheet of a workbook."""
    wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    try:
        row_sets = []
        for ws in wb.worksheets:
            records = rows_to_records(ws.iter_rows(values_only=True), hints)
            if records:
                row_sets.append(RowSet(source=source, sheet=ws.title, rows=records))
        return row_sets
    finally:
        wb.close()


def _decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def decode_delimited(
    data: bytes, source: str, hints: HeaderHints | None = None
) -> list[RowSet]:
    """Decode a CSV or tab-delimited text file into a single row set."""
    text = _decode_text(data)
    head = text.splitlines()[:HEADER_SCAN_ROWS]
    delimiter = "\t" if any("\t" in line for line in head) else ","

    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    records = rows_to_records(reader, hints)
    if not records:
        return []
    return [RowSet(source=source, sheet=None, rows=records)]


def decode_tabular(
    name: str, data: bytes, hints: HeaderHints | None = None
) -> list[RowSet]:
    """Decode a tabular file by extension.

    Legacy binary ``.xls`` workbooks are not supported.

    Raises:
        DecodeFailed: If the entry is not tabular or cannot be decoded
    """
    lowered = name.lower()
    try:
        if lowered.endswith(WORKBOOK_EXTENSIONS):
            return decode_workbook(data, name, hints)
        if lowered.endswith(DELIMITED_EXTENSIONS):
            return decode_delimited(data, name, hints)
    except Exception as e:
        raise DecodeFailed(f"Could not decode {name}: {e}", source=name) from e

    raise DecodeFailed(f"Unsupported tabular format: {name}", source=name)
