"""
CSV ingestion for uploaded sheets.

Turns uploaded bytes into the row dictionaries the validators consume:
- encoding detection + decoding
- newline normalization
- delimiter detection
- placeholder / blank header removal
- row width enforcement
- phase cells expanded on task sheets
- single-cell edits saved the way the table editor saves them
"""

from __future__ import annotations

import csv
import io
import json
from pathlib import PurePath
from typing import Any, Dict, List, Mapping, Tuple

from charset_normalizer import from_bytes
from loguru import logger

from .mapping import Row, classify_sheet, match_columns
from .normalize import (
    canonical_phase_cell,
    dump_json_cell,
    is_number,
    parse_attributes_json_result,
    to_number,
)
from .rules import CSV_DELIMITERS, PLACEHOLDER_COLUMN_PREFIX, SNIFF_SAMPLE_CHARS, TASKS


def sheet_name_from_filename(filename: str) -> str:
    """``"Clients 1.csv"`` -> ``"Clients 1"``."""
    return PurePath(filename).stem


def decode_csv_bytes(raw: bytes) -> Tuple[str, Dict[str, Any]]:
    """
    Decode uploaded bytes to text with LF newlines.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - A UTF-8 BOM is stripped rather than kept as a header character.
    - If decode fails, fall back to UTF-8, then to UTF-8 with replacement
      characters, and report it.
    """
    detected = None
    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    decode_used = detected or "utf-8"
    if raw.startswith(b"\xef\xbb\xbf") and decode_used.lower().replace("-", "_") in ("utf_8", "utf8"):
        decode_used = "utf-8-sig"

    decode_fallback = False
    try:
        text = raw.decode(decode_used)
    except (UnicodeDecodeError, LookupError):
        decode_fallback = True
        try:
            text = raw.decode("utf-8")
            decode_used = "utf-8"
        except UnicodeDecodeError:
            text = raw.decode("utf-8", errors="replace")
            decode_used = "utf-8"

    text = text.replace("\r\n", "\n").replace("\r", "\n")

    delimiter = ","
    sniffed = False
    try:
        dialect = csv.Sniffer().sniff(text[:SNIFF_SAMPLE_CHARS], delimiters=CSV_DELIMITERS)
        delimiter = dialect.delimiter
        sniffed = True
    except csv.Error:
        pass

    report = {
        "detected": detected,
        "decode_used": decode_used,
        "decode_fallback": decode_fallback,
        "delimiter": delimiter,
        "sniffed": sniffed,
    }
    return text, report


def _is_placeholder(header: str) -> bool:
    return not header.strip() or header.startswith(PLACEHOLDER_COLUMN_PREFIX)


def rows_from_csv(text: str, delimiter: str = ",") -> Tuple[List[Row], List[str]]:
    """
    Read CSV text into row dictionaries keyed by header.

    Columns with a blank or placeholder header are dropped and reported.
    Short rows are padded with empty cells; cells beyond the header are
    dropped. Fully blank lines are skipped.
    """
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    records = list(reader)
    if not records:
        return [], []

    header = records[0]
    keep = [i for i, name in enumerate(header) if not _is_placeholder(name)]
    dropped = [name for name in header if _is_placeholder(name)]

    rows = []
    for record in records[1:]:
        if not any(cell.strip() for cell in record):
            continue
        if len(record) < len(header):
            record = record + [""] * (len(header) - len(record))
        rows.append({header[i]: record[i] for i in keep})
    return rows, dropped


def canonicalize_sheet(sheet_name: str, rows: List[Row]) -> List[Row]:
    """Rewrite PreferredPhases on task sheets to the expanded form, in place."""
    if classify_sheet(sheet_name) != TASKS:
        return rows
    for row in rows:
        key = match_columns(TASKS, row.keys()).get("PreferredPhases")
        if key is not None:
            row[key] = canonical_phase_cell(row[key])
    return rows


def load_csv_sheet(filename: str, raw: bytes) -> Tuple[str, List[Row], Dict[str, Any]]:
    """Decode, parse and canonicalize one uploaded CSV file."""
    sheet_name = sheet_name_from_filename(filename)
    text, report = decode_csv_bytes(raw)
    rows, dropped = rows_from_csv(text, report["delimiter"])
    canonicalize_sheet(sheet_name, rows)

    report["rows"] = len(rows)
    report["dropped_columns"] = dropped
    logger.info(
        "Loaded sheet {!r} from {}: {} rows, encoding={}, delimiter={!r}",
        sheet_name,
        filename,
        len(rows),
        report["decode_used"],
        report["delimiter"],
    )
    return sheet_name, rows, report


def _convert_edit(column: str, value: str, original: Any) -> Any:
    name = column.strip().lower()
    if name == "attributesjson":
        result = parse_attributes_json_result(value)
        if result.was_repaired:
            return dump_json_cell(result.value)
        return value.strip()
    if name == "preferredphases":
        return canonical_phase_cell(value)

    # Keep the type the cell had before the edit.
    if isinstance(original, bool):
        return value.strip().lower() == "true"
    if isinstance(original, (int, float)):
        number = to_number(value)
        # Unparseable text stays as typed so the range checks report it.
        return number if is_number(number) else value
    if isinstance(original, (list, dict)):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def apply_cell_edit(
    sheets: Mapping[str, List[Row]],
    sheet_name: str,
    row_index: int,
    column: str,
    value: Any,
) -> Row:
    """
    Replace one cell the way the table editor saves it.

    Text edits are canonicalized: PreferredPhases is expanded to its JSON
    form, a plain-text AttributesJSON note is wrapped as
    ``{"message":"..."}``, and other cells keep the type they had. The row
    is replaced with a new dict and returned.

    Raises ``KeyError`` for an unknown sheet and ``IndexError`` for a row
    outside the sheet.
    """
    rows = sheets[sheet_name]
    if not 0 <= row_index < len(rows):
        raise IndexError(f"Row {row_index} is outside sheet {sheet_name!r}")

    row = rows[row_index]
    converted = value
    if isinstance(value, str):
        converted = _convert_edit(column, value, row.get(column))

    rows[row_index] = {**row, column: converted}
    logger.debug("Edited {}[{}].{}: {!r} -> {!r}", sheet_name, row_index, column, value, converted)
    return rows[row_index]
