"""
Validation orchestrator.

``validate_all`` takes the complete current snapshot of uploaded sheets and
recomputes every issue from scratch. Callers re-run it after each edit.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from loguru import logger

from . import cross_checks
from .entity_checks import (
    check_duplicate_ids,
    check_required_columns,
    validate_clients,
    validate_tasks,
    validate_workers,
)
from .mapping import Row, classify_sheet, map_sheet
from .models import ValidationIssue, ValidationResult
from .rules import CLIENTS, TASKS, WORKERS

ENTITY_VALIDATORS = {
    CLIENTS: validate_clients,
    WORKERS: validate_workers,
    TASKS: validate_tasks,
}


def _retag(errors: List[ValidationIssue], sheet_name: str) -> List[ValidationIssue]:
    for error in errors:
        error.sheet_name = sheet_name
    return errors


def validate_all(sheets: Mapping[str, List[Row]]) -> ValidationResult:
    """
    Validate every sheet and the consistency between them.

    Sheet kinds are recognised by name prefix ("client", "worker", "task");
    other sheets are carried along but not checked. When several sheets share
    a kind, the first one takes part in the cross-sheet checks.

    AttributesJSON notes are repaired in place in ``sheets``.
    """
    errors: List[ValidationIssue] = []
    primary: Dict[str, str] = {}
    records = {}

    logger.debug("Validating sheets: {}", list(sheets))

    for sheet_name, rows in sheets.items():
        errors.extend(check_required_columns(sheet_name, rows))
        errors.extend(check_duplicate_ids(sheet_name, rows))

        kind = classify_sheet(sheet_name)
        if kind is None:
            logger.debug("Sheet {!r} has no recognised kind; skipping entity checks", sheet_name)
            continue

        mapped = map_sheet(kind, rows)
        errors.extend(ENTITY_VALIDATORS[kind](sheet_name, mapped))
        if kind not in primary:
            primary[kind] = sheet_name
            records[kind] = mapped

    clients_sheet: Optional[str] = primary.get(CLIENTS)
    workers_sheet: Optional[str] = primary.get(WORKERS)
    tasks_sheet: Optional[str] = primary.get(TASKS)

    if clients_sheet and tasks_sheet:
        errors.extend(
            _retag(
                cross_checks.check_task_references(records[CLIENTS], records[TASKS]),
                clients_sheet,
            )
        )

    if workers_sheet:
        errors.extend(_retag(cross_checks.check_worker_overload(records[WORKERS]), workers_sheet))

    if workers_sheet and tasks_sheet:
        workers, tasks = records[WORKERS], records[TASKS]
        errors.extend(_retag(cross_checks.check_skill_coverage(workers, tasks), tasks_sheet))
        errors.extend(_retag(cross_checks.check_max_concurrency(tasks, workers), tasks_sheet))
        errors.extend(_retag(cross_checks.check_phase_saturation(tasks, workers), tasks_sheet))

    if clients_sheet:
        errors.extend(_retag(cross_checks.check_co_run_groups(records[CLIENTS]), clients_sheet))

    if tasks_sheet:
        errors.extend(_retag(cross_checks.check_business_rules(records[TASKS]), tasks_sheet))

    if errors:
        logger.info("Validation found {} issue(s) across {} sheet(s)", len(errors), len(sheets))
    else:
        logger.info("Validation passed for {} sheet(s)", len(sheets))

    return ValidationResult(is_valid=not errors, errors=errors)
