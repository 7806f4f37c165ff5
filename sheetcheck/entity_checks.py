"""
Per-sheet checks for a single entity kind.

Every check takes the whole sheet, since duplicate detection needs the full
collection, and returns a list of issues tagged with the actual sheet name.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

from loguru import logger

from .mapping import (
    EntityRecord,
    Row,
    as_text,
    classify_sheet,
    header_columns,
    is_blank,
    match_columns,
)
from .models import ValidationIssue
from .normalize import dump_json_cell, is_number
from .rules import (
    CLIENTS,
    DURATION_RANGE,
    ID_COLUMNS,
    MAX_CONCURRENT_RANGE,
    MAX_LOAD_RANGE,
    PRIORITY_RANGE,
    REQUIRED_COLUMNS,
    REQUIRED_FIELDS,
    TASKS,
    WORKERS,
)


def issue(
    message: str,
    row_index: int,
    column: str,
    sheet_name: Optional[str],
    value: Any = None,
) -> ValidationIssue:
    return ValidationIssue(
        message=message,
        row_index=row_index,
        column=column,
        sheet_name=sheet_name,
        value=value,
    )


def check_required_columns(sheet_name: str, rows: Sequence[Row]) -> List[ValidationIssue]:
    """One sheet-level issue per required column the sheet's header lacks."""
    kind = classify_sheet(sheet_name)
    if kind is None or not rows:
        return []

    present = match_columns(kind, header_columns(rows))
    return [
        issue(f"Missing required column: {column}", -1, column, sheet_name)
        for column in REQUIRED_COLUMNS[kind]
        if column not in present
    ]


def check_duplicate_ids(sheet_name: str, rows: Sequence[Row]) -> List[ValidationIssue]:
    """
    Flag repeated IDs.

    The first occurrence of an ID is taken as the real one; only the second
    and later rows carrying it are reported.
    """
    kind = classify_sheet(sheet_name)
    if kind is None:
        return []
    id_column = ID_COLUMNS[kind]

    errors = []
    seen = set()
    for index, row in enumerate(rows):
        key = match_columns(kind, row.keys()).get(id_column)
        raw = row.get(key) if key is not None else None
        if is_blank(raw):
            continue
        text = as_text(raw)
        if text in seen:
            errors.append(issue(f"Duplicate {id_column}: {raw}", index, id_column, sheet_name, raw))
        seen.add(text)

    logger.debug("Duplicate {} check on {}: {} found", id_column, sheet_name, len(errors))
    return errors


def check_required_fields(
    sheet_name: str, kind: str, records: Sequence[EntityRecord]
) -> List[ValidationIssue]:
    """Row-level issue for each required field left empty.

    Columns missing from the whole sheet are reported once by
    ``check_required_columns`` and skipped here.
    """
    present = match_columns(kind, header_columns(record.source for record in records))
    errors = []
    for record in records:
        for field in REQUIRED_FIELDS[kind]:
            if field not in present:
                continue
            if is_blank(record.raw(field)):
                errors.append(
                    issue(f"{field} is required", record.row_index, field, sheet_name, record.raw(field))
                )
    return errors


def _in_domain(value: Any, bounds: Tuple[int, Optional[int]]) -> bool:
    low, high = bounds
    if not is_number(value) or not float(value).is_integer():
        return False
    if value < low:
        return False
    return high is None or value <= high


def _domain_text(bounds: Tuple[int, Optional[int]]) -> str:
    low, high = bounds
    if high is None:
        return f"must be >= {low}"
    return f"must be between {low}-{high}"


def _check_range(
    sheet_name: str,
    records: Sequence[EntityRecord],
    field: str,
    bounds: Tuple[int, Optional[int]],
) -> List[ValidationIssue]:
    # Empty cells are the required-field check's business.
    errors = []
    for record in records:
        raw = record.raw(field)
        if is_blank(raw):
            continue
        if _in_domain(getattr(record, field), bounds):
            continue
        errors.append(
            issue(
                f"{field} {_domain_text(bounds)}, got: {raw}",
                record.row_index,
                field,
                sheet_name,
                raw,
            )
        )
    return errors


def check_priority_levels(sheet_name, records):
    return _check_range(sheet_name, records, "PriorityLevel", PRIORITY_RANGE)


def check_durations(sheet_name, records):
    return _check_range(sheet_name, records, "Duration", DURATION_RANGE)


def check_max_load(sheet_name, records):
    return _check_range(sheet_name, records, "MaxLoadPerPhase", MAX_LOAD_RANGE)


def check_max_concurrent(sheet_name, records):
    return _check_range(sheet_name, records, "MaxConcurrent", MAX_CONCURRENT_RANGE)


def check_available_slots(sheet_name: str, records: Sequence[EntityRecord]) -> List[ValidationIssue]:
    """AvailableSlots must decode to numbers only."""
    errors = []
    for record in records:
        raw = record.raw("AvailableSlots")
        if is_blank(raw):
            continue
        slots = record.AvailableSlots or []
        if record.is_malformed("AvailableSlots") or not all(is_number(slot) for slot in slots):
            errors.append(
                issue(
                    f"AvailableSlots contains non-numeric values: {raw}",
                    record.row_index,
                    "AvailableSlots",
                    sheet_name,
                    raw,
                )
            )
    return errors


def check_attributes_json(sheet_name: str, records: Sequence[EntityRecord]) -> List[ValidationIssue]:
    """
    Repair plain-text notes and report broken JSON in AttributesJSON.

    A repaired note is written back into the source row as
    ``{"message":"<text>"}``; callers keep the rows they passed in.
    """
    errors = []
    for record in records:
        raw = record.raw("AttributesJSON")
        if record.was_repaired("AttributesJSON"):
            repaired = dump_json_cell(record.AttributesJSON)
            record.write_back("AttributesJSON", repaired)
            logger.debug("Row {}: converted note {!r} to {}", record.row_index, raw, repaired)
        elif record.is_malformed("AttributesJSON"):
            errors.append(
                issue(
                    f"Invalid JSON in AttributesJSON: {raw}",
                    record.row_index,
                    "AttributesJSON",
                    sheet_name,
                    raw,
                )
            )
    return errors


def validate_clients(sheet_name: str, records: Sequence[EntityRecord]) -> List[ValidationIssue]:
    return (
        check_required_fields(sheet_name, CLIENTS, records)
        + check_priority_levels(sheet_name, records)
        + check_attributes_json(sheet_name, records)
    )


def validate_workers(sheet_name: str, records: Sequence[EntityRecord]) -> List[ValidationIssue]:
    return (
        check_required_fields(sheet_name, WORKERS, records)
        + check_available_slots(sheet_name, records)
        + check_max_load(sheet_name, records)
    )


def validate_tasks(sheet_name: str, records: Sequence[EntityRecord]) -> List[ValidationIssue]:
    return (
        check_required_fields(sheet_name, TASKS, records)
        + check_durations(sheet_name, records)
        + check_max_concurrent(sheet_name, records)
    )
