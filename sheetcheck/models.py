from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .mapping import classify_sheet


class ValidationIssue(BaseModel):
    """One problem found in the data; ``row_index == -1`` marks a sheet-level issue."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["error", "warning"] = "error"
    message: str
    row_index: int = Field(alias="rowIndex")
    column: str
    sheet_name: Optional[str] = Field(default=None, alias="sheetName")
    value: Any = None

    @property
    def is_sheet_level(self) -> bool:
        return self.row_index == -1


class ValidationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(alias="isValid")
    errors: List[ValidationIssue] = Field(default_factory=list)

    def for_sheet(self, sheet_name: str) -> List[ValidationIssue]:
        """
        Issues to show on one sheet.

        Row-level issues must name the sheet exactly. Sheet-level issues also
        match any sheet of the same kind ("Tasks" matches "tasks 2").
        """
        kind = classify_sheet(sheet_name)
        selected = []
        for issue in self.errors:
            if issue.sheet_name == sheet_name:
                selected.append(issue)
            elif issue.is_sheet_level and kind is not None and issue.sheet_name is not None:
                if classify_sheet(issue.sheet_name) == kind:
                    selected.append(issue)
        return selected

    def for_column(self, column: str) -> List[ValidationIssue]:
        return [issue for issue in self.errors if issue.column == column]

    def cell_index(self) -> Dict[Tuple[int, str], ValidationIssue]:
        """Row-level issues keyed by ``(row_index, column)``; a later issue replaces an earlier one."""
        index = {}
        for issue in self.errors:
            if not issue.is_sheet_level:
                index[(issue.row_index, issue.column)] = issue
        return index


# --- API envelopes ---


class ValidateRequest(BaseModel):
    sheets: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)


class CellEditRequest(BaseModel):
    """One cell change against a snapshot of sheets."""

    model_config = ConfigDict(populate_by_name=True)

    sheets: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    sheet_name: str = Field(alias="sheetName")
    row_index: int = Field(alias="rowIndex")
    column: str
    value: Any = None


class ValidateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(alias="isValid")
    errors: List[ValidationIssue] = Field(default_factory=list)
    sheets: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)


class IngestReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    filename: str
    sheet_name: str = Field(alias="sheetName")
    encoding: Optional[str] = None
    delimiter: str = ","
    rows: int = 0
    dropped_columns: List[str] = Field(default_factory=list, alias="droppedColumns")


class CsvValidateResponse(ValidateResponse):
    ingest: List[IngestReport] = Field(default_factory=list)


class HealthResponse(BaseModel):
    ok: bool = True
