from sheetcheck.cross_checks import (
    check_business_rules,
    check_co_run_groups,
    check_max_concurrency,
    check_phase_saturation,
    check_skill_coverage,
    check_task_references,
    check_worker_overload,
    phase_supply,
)
from sheetcheck.mapping import map_sheet


def test_unknown_task_reference():
    clients = map_sheet("Clients", [{"ClientID": "C1", "RequestedTaskIDs": ["T001", "T999"]}])
    tasks = map_sheet("Tasks", [{"TaskID": "T001"}])
    errors = check_task_references(clients, tasks)
    assert len(errors) == 1
    assert errors[0].value == "T999"
    assert errors[0].row_index == 0
    assert errors[0].column == "RequestedTaskIDs"
    assert "T999" in errors[0].message


def test_worker_overload():
    workers = map_sheet(
        "Workers",
        [
            {"WorkerID": "W1", "AvailableSlots": "[1]", "MaxLoadPerPhase": 2},
            {"WorkerID": "W2", "AvailableSlots": "1-2", "MaxLoadPerPhase": 2},
            {"WorkerID": "W3", "AvailableSlots": "1-2", "MaxLoadPerPhase": "lots"},
        ],
    )
    errors = check_worker_overload(workers)
    assert [e.row_index for e in errors] == [0]
    assert errors[0].message == "Worker has 1 available slots but MaxLoadPerPhase is 2"


def test_skill_coverage():
    workers = map_sheet("Workers", [{"Skills": "coding, testing"}])
    tasks = map_sheet("Tasks", [{"RequiredSkills": "coding,welding"}])
    errors = check_skill_coverage(workers, tasks)
    assert len(errors) == 1
    assert errors[0].value == "welding"
    assert errors[0].column == "RequiredSkills"


def test_max_concurrency_counts_any_shared_skill():
    workers = map_sheet("Workers", [{"Skills": "coding"}, {"Skills": "design"}, {"Skills": "testing"}])
    tasks = map_sheet(
        "Tasks",
        [
            {"RequiredSkills": "coding,design", "MaxConcurrent": 2},
            {"RequiredSkills": "coding", "MaxConcurrent": 3},
        ],
    )
    errors = check_max_concurrency(tasks, workers)
    assert [e.row_index for e in errors] == [1]
    assert errors[0].message == "MaxConcurrent (3) exceeds qualified workers (1)"


def test_phase_saturation_single_phase():
    workers = map_sheet("Workers", [{"AvailableSlots": "[1,2]", "MaxLoadPerPhase": 2}])
    tasks = map_sheet("Tasks", [{"PreferredPhases": "[1]", "Duration": 3, "MaxConcurrent": 1}])
    errors = check_phase_saturation(tasks, workers)
    assert len(errors) == 1
    assert errors[0].row_index == -1
    assert errors[0].value == "Phase 1"
    assert errors[0].message == "Phase 1 requires 3 slots but only 2 are available"


def test_supply_counts_full_load_in_every_phase():
    workers = map_sheet(
        "Workers",
        [
            {"AvailableSlots": "1-3", "MaxLoadPerPhase": 2},
            {"AvailableSlots": "[3]", "MaxLoadPerPhase": 1},
        ],
    )
    assert phase_supply(workers) == {1: 2, 2: 2, 3: 3}


def test_phase_with_no_supply_is_saturated():
    tasks = map_sheet("Tasks", [{"PreferredPhases": "4", "Duration": 1, "MaxConcurrent": 1}])
    errors = check_phase_saturation(tasks, [])
    assert errors[0].message == "Phase 4 requires 1 slots but only 0 are available"


def test_extension_points_report_nothing():
    assert check_co_run_groups(map_sheet("Clients", [{"GroupTag": "G1"}])) == []
    assert check_business_rules(map_sheet("Tasks", [{"TaskID": "T1"}])) == []
