"""
Consistency checks spanning more than one sheet.

Issues are tagged with the logical sheet role (Clients, Workers, Tasks); the
orchestrator swaps in the real sheet name.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from loguru import logger

from .entity_checks import issue
from .mapping import ClientRecord, TaskRecord, WorkerRecord
from .models import ValidationIssue
from .normalize import Number, is_number
from .rules import CLIENTS, TASKS, WORKERS


def _fmt(value: Number) -> str:
    return f"{value:g}" if isinstance(value, float) else str(value)


def check_task_references(
    clients: Sequence[ClientRecord], tasks: Sequence[TaskRecord]
) -> List[ValidationIssue]:
    task_ids = {task.TaskID for task in tasks if task.TaskID}
    errors = []
    for client in clients:
        for task_id in client.RequestedTaskIDs or []:
            if task_id not in task_ids:
                errors.append(
                    issue(
                        f'RequestedTaskID "{task_id}" not found in Tasks sheet',
                        client.row_index,
                        "RequestedTaskIDs",
                        CLIENTS,
                        task_id,
                    )
                )
    return errors


def check_worker_overload(workers: Sequence[WorkerRecord]) -> List[ValidationIssue]:
    """A worker cannot carry more load per phase than it has available slots."""
    errors = []
    for worker in workers:
        slots = worker.AvailableSlots or []
        max_load = worker.MaxLoadPerPhase
        if not is_number(max_load):
            continue
        if len(slots) < max_load:
            errors.append(
                issue(
                    f"Worker has {len(slots)} available slots but MaxLoadPerPhase is {_fmt(max_load)}",
                    worker.row_index,
                    "MaxLoadPerPhase",
                    WORKERS,
                    max_load,
                )
            )
    return errors


def check_skill_coverage(
    workers: Sequence[WorkerRecord], tasks: Sequence[TaskRecord]
) -> List[ValidationIssue]:
    available = set()
    for worker in workers:
        available.update(worker.Skills or [])

    errors = []
    for task in tasks:
        for skill in task.RequiredSkills or []:
            if skill not in available:
                errors.append(
                    issue(
                        f'Required skill "{skill}" not available in any worker',
                        task.row_index,
                        "RequiredSkills",
                        TASKS,
                        skill,
                    )
                )
    return errors


def check_max_concurrency(
    tasks: Sequence[TaskRecord], workers: Sequence[WorkerRecord]
) -> List[ValidationIssue]:
    """
    MaxConcurrent must not exceed the number of qualified workers.

    A worker is qualified for a task when it has at least one of the task's
    required skills; full coverage is not needed.
    """
    worker_skills = [set(worker.Skills or []) for worker in workers]
    errors = []
    for task in tasks:
        max_concurrent = task.MaxConcurrent
        if not is_number(max_concurrent):
            continue
        required = set(task.RequiredSkills or [])
        qualified = sum(1 for skills in worker_skills if skills & required)
        if qualified < max_concurrent:
            errors.append(
                issue(
                    f"MaxConcurrent ({_fmt(max_concurrent)}) exceeds qualified workers ({qualified})",
                    task.row_index,
                    "MaxConcurrent",
                    TASKS,
                    max_concurrent,
                )
            )
    return errors


def phase_supply(workers: Sequence[WorkerRecord]) -> Dict[int, Number]:
    """
    Slots offered per phase.

    Each worker contributes its full MaxLoadPerPhase to every phase it is
    available in.
    """
    supply: Dict[int, Number] = {}
    for worker in workers:
        max_load = worker.MaxLoadPerPhase
        if not is_number(max_load):
            continue
        for phase in worker.AvailableSlots or []:
            if not is_number(phase):
                continue
            supply[phase] = supply.get(phase, 0) + max_load
    return supply


def phase_demand(tasks: Sequence[TaskRecord]) -> Dict[int, Number]:
    """Slots requested per phase: Duration x MaxConcurrent for each preferred phase."""
    demand: Dict[int, Number] = {}
    for task in tasks:
        if not (is_number(task.Duration) and is_number(task.MaxConcurrent)):
            continue
        load = task.Duration * task.MaxConcurrent
        for phase in task.PreferredPhases or []:
            demand[phase] = demand.get(phase, 0) + load
    return demand


def check_phase_saturation(
    tasks: Sequence[TaskRecord], workers: Sequence[WorkerRecord]
) -> List[ValidationIssue]:
    supply = phase_supply(workers)
    demand = phase_demand(tasks)
    logger.debug("Phase supply {} vs demand {}", supply, demand)

    errors = []
    for phase, required in demand.items():
        available = supply.get(phase, 0)
        if required > available:
            errors.append(
                issue(
                    f"Phase {phase} requires {_fmt(required)} slots but only {_fmt(available)} are available",
                    -1,
                    "PreferredPhases",
                    TASKS,
                    f"Phase {phase}",
                )
            )
    return errors


def check_co_run_groups(clients: Sequence[ClientRecord]) -> List[ValidationIssue]:
    """Extension point for co-run group cycle detection. Reports nothing."""
    return []


def check_business_rules(tasks: Sequence[TaskRecord]) -> List[ValidationIssue]:
    """Extension point for custom business-rule validation. Reports nothing."""
    return []
