from sheetcheck.mapping import classify_sheet, header_columns, map_row, map_sheet


def test_classify_sheet_by_prefix():
    assert classify_sheet("Clients 1") == "Clients"
    assert classify_sheet("  WORKER   list") == "Workers"
    assert classify_sheet("tasks") == "Tasks"
    assert classify_sheet("Summary") is None


def test_map_row_matches_keys_case_insensitively():
    record = map_row(
        "Clients",
        {"clientid": "C1", "CLIENTNAME": "Acme", "priorityLevel": "3", "Extra": 1},
    )
    assert record.ClientID == "C1"
    assert record.ClientName == "Acme"
    assert record.PriorityLevel == 3


def test_missing_column_is_none_and_empty_cell_is_empty():
    record = map_row("Clients", {"ClientID": "C1", "GroupTag": ""})
    assert record.RequestedTaskIDs is None
    assert record.GroupTag == ""
    assert not record.has_column("RequestedTaskIDs")
    assert record.has_column("GroupTag")


def test_first_colliding_key_wins():
    record = map_row("Clients", {"ClientID": "A", "clientid": "B"})
    assert record.ClientID == "A"


def test_numeric_ids_are_stringified():
    record = map_row("Tasks", {"TaskID": 101.0, "Duration": "2"})
    assert record.TaskID == "101"
    assert record.Duration == 2


def test_list_fields_are_normalized():
    record = map_row(
        "Tasks",
        {"RequiredSkills": "coding, design", "PreferredPhases": "2-4"},
    )
    assert record.RequiredSkills == ["coding", "design"]
    assert record.PreferredPhases == [2, 3, 4]


def test_malformed_flag_is_kept():
    record = map_row("Workers", {"WorkerID": "W1", "AvailableSlots": "1,x"})
    assert record.AvailableSlots == [1]
    assert record.is_malformed("AvailableSlots")
    assert record.raw("AvailableSlots") == "1,x"


def test_map_sheet_assigns_row_indexes():
    rows = [{"WorkerID": "W1"}, {"WorkerID": "W2"}]
    records = map_sheet("Workers", rows)
    assert [r.row_index for r in records] == [0, 1]
    assert records[1].source is rows[1]


def test_header_columns_union_in_order():
    assert header_columns([{"a": 1}, {"b": 2, "a": 3}]) == ["a", "b"]
