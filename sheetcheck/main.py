from typing import List

from fastapi import FastAPI, File, HTTPException, UploadFile

from .ingest import apply_cell_edit, canonicalize_sheet, load_csv_sheet
from .logging_config import setup_logging
from .models import (
    CellEditRequest,
    CsvValidateResponse,
    HealthResponse,
    IngestReport,
    ValidateRequest,
    ValidateResponse,
)
from .settings import settings
from .validate import validate_all

setup_logging()

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Normalization and consistency checks for client, worker and task sheets",
    version="0.1.0",
)


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/validate", response_model=ValidateResponse)
def validate_sheets(request: ValidateRequest):
    # Rows come back canonicalized and repaired so the caller can keep them.
    for sheet_name, rows in request.sheets.items():
        canonicalize_sheet(sheet_name, rows)
    result = validate_all(request.sheets)
    return ValidateResponse(is_valid=result.is_valid, errors=result.errors, sheets=request.sheets)


@app.post("/edit", response_model=ValidateResponse)
def edit_cell(request: CellEditRequest):
    try:
        apply_cell_edit(request.sheets, request.sheet_name, request.row_index, request.column, request.value)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown sheet: {request.sheet_name}")
    except IndexError:
        raise HTTPException(status_code=404, detail=f"Unknown row {request.row_index} in {request.sheet_name}")

    result = validate_all(request.sheets)
    return ValidateResponse(is_valid=result.is_valid, errors=result.errors, sheets=request.sheets)


@app.post("/validate/csv", response_model=CsvValidateResponse)
async def validate_csv(files: List[UploadFile] = File(...)):
    sheets = {}
    reports = []
    for file in files:
        if not file.filename or not file.filename.lower().endswith(".csv"):
            raise HTTPException(status_code=422, detail=f"Only CSV files are supported: {file.filename}")

        # One byte past the limit is enough to tell an oversize upload.
        raw = await file.read(settings.MAX_UPLOAD_BYTES + 1)
        if len(raw) > settings.MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=413, detail=f"File too large: {file.filename}")

        sheet_name, rows, report = load_csv_sheet(file.filename, raw)
        sheets[sheet_name] = rows
        reports.append(
            IngestReport(
                filename=file.filename,
                sheet_name=sheet_name,
                encoding=report["decode_used"],
                delimiter=report["delimiter"],
                rows=report["rows"],
                dropped_columns=report["dropped_columns"],
            )
        )

    result = validate_all(sheets)
    return CsvValidateResponse(
        is_valid=result.is_valid,
        errors=result.errors,
        sheets=sheets,
        ingest=reports,
    )
