"""
Row mapper: raw spreadsheet rows -> typed entity records.

This is the one place where untyped cells are narrowed into the per-entity
record types. Validators only ever see records.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from loguru import logger
from pydantic import BaseModel, PrivateAttr

from .normalize import (
    ParseResult,
    parse_attributes_json_result,
    parse_comma_list_result,
    parse_number_sequence_result,
    parse_phase_expression_result,
    to_number,
)
from .rules import (
    CLIENTS,
    FIELD_TYPES,
    JSON_OBJECT,
    NUMBER,
    NUMBER_LIST,
    PHASES,
    SCALAR,
    SHEET_PREFIXES,
    STRING,
    STRING_LIST,
    TASKS,
    WORKERS,
)

Number = Union[int, float]
Row = Dict[str, Any]

_WHITESPACE_RE = re.compile(r"\s+")


def classify_sheet(sheet_name: str) -> Optional[str]:
    """Map a user-chosen sheet name ("Clients 1", "worker list") to its entity kind."""
    clean = _WHITESPACE_RE.sub(" ", str(sheet_name)).strip().lower()
    for prefix, kind in SHEET_PREFIXES:
        if clean.startswith(prefix):
            return kind
    return None


def is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def header_columns(rows: Iterable[Row]) -> List[str]:
    """Union of the keys of all rows, in first-seen order."""
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


def match_columns(kind: str, keys: Iterable[Any]) -> Dict[str, Any]:
    """
    Find the raw key for each canonical field of ``kind``.

    Matching ignores case and surrounding whitespace; when two raw keys
    collide the first one encountered wins.
    """
    lookup: Dict[str, Any] = {}
    for key in keys:
        lookup.setdefault(str(key).strip().lower(), key)
    matched = {}
    for field in FIELD_TYPES[kind]:
        key = lookup.get(field.lower())
        if key is not None:
            matched[field] = key
    return matched


class EntityRecord(BaseModel):
    """
    Typed view of one raw row.

    A field is ``None`` when the sheet has no column for it; a present but
    empty cell maps to the empty value of the field's type.
    """

    row_index: int = -1

    _source: Row = PrivateAttr(default_factory=dict)
    _columns: Dict[str, Any] = PrivateAttr(default_factory=dict)
    _malformed: Set[str] = PrivateAttr(default_factory=set)
    _repaired: Set[str] = PrivateAttr(default_factory=set)

    @property
    def source(self) -> Row:
        return self._source

    def has_column(self, field: str) -> bool:
        return field in self._columns

    def raw(self, field: str) -> Any:
        """The cell exactly as it arrived, or ``None`` when the column is missing."""
        key = self._columns.get(field)
        if key is None:
            return None
        return self._source.get(key)

    def is_malformed(self, field: str) -> bool:
        return field in self._malformed

    def was_repaired(self, field: str) -> bool:
        return field in self._repaired

    def write_back(self, field: str, value: Any) -> None:
        """Replace the cell in the source row (used for in-place repairs)."""
        key = self._columns.get(field)
        if key is not None:
            self._source[key] = value


class ClientRecord(EntityRecord):
    ClientID: Optional[str] = None
    ClientName: Optional[str] = None
    PriorityLevel: Optional[Number] = None
    RequestedTaskIDs: Optional[List[str]] = None
    GroupTag: Optional[str] = None
    AttributesJSON: Any = None


class WorkerRecord(EntityRecord):
    WorkerID: Optional[str] = None
    WorkerName: Optional[str] = None
    Skills: Optional[List[str]] = None
    AvailableSlots: Optional[List[Number]] = None
    MaxLoadPerPhase: Optional[Number] = None
    WorkerGroup: Optional[str] = None
    QualificationLevel: Optional[Union[str, int, float]] = None


class TaskRecord(EntityRecord):
    TaskID: Optional[str] = None
    TaskName: Optional[str] = None
    Category: Optional[str] = None
    Duration: Optional[Number] = None
    RequiredSkills: Optional[List[str]] = None
    PreferredPhases: Optional[List[int]] = None
    MaxConcurrent: Optional[Number] = None


RECORD_TYPES = {
    CLIENTS: ClientRecord,
    WORKERS: WorkerRecord,
    TASKS: TaskRecord,
}


def as_text(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        # Spreadsheet readers hand back 101.0 for an ID typed as 101.
        return str(int(raw))
    return str(raw)


def _as_scalar(raw: Any) -> Union[str, int, float]:
    if isinstance(raw, (str, int, float)) and not isinstance(raw, bool):
        return raw
    return as_text(raw)


def _normalize_cell(field_type: str, raw: Any) -> ParseResult:
    if field_type == STRING:
        return ParseResult(as_text(raw))
    if field_type == NUMBER:
        return ParseResult(to_number(raw))
    if field_type == SCALAR:
        return ParseResult(_as_scalar(raw))
    if field_type == STRING_LIST:
        return parse_comma_list_result(raw)
    if field_type == NUMBER_LIST:
        return parse_number_sequence_result(raw)
    if field_type == PHASES:
        return parse_phase_expression_result(raw)
    if field_type == JSON_OBJECT:
        return parse_attributes_json_result(raw)
    raise ValueError(f"Unknown field type: {field_type}")


def map_row(kind: str, raw_row: Row, index: int = -1) -> EntityRecord:
    """Narrow one raw row into the record type for ``kind``."""
    columns = match_columns(kind, raw_row.keys())
    values: Dict[str, Any] = {}
    malformed = set()
    repaired = set()

    for field, field_type in FIELD_TYPES[kind].items():
        key = columns.get(field)
        if key is None:
            values[field] = None
            continue
        result = _normalize_cell(field_type, raw_row[key])
        values[field] = result.value
        if result.was_malformed:
            malformed.add(field)
        if result.was_repaired:
            repaired.add(field)

    record = RECORD_TYPES[kind](row_index=index, **values)
    record._source = raw_row
    record._columns = columns
    record._malformed = malformed
    record._repaired = repaired
    return record


def map_sheet(kind: str, rows: List[Row]) -> List[EntityRecord]:
    records = [map_row(kind, row, index) for index, row in enumerate(rows)]
    logger.debug("Mapped {} {} rows", len(records), kind)
    return records
