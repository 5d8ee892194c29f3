import pytest

from alchemist.errors import DataError
from alchemist.validator.field_checks import (
    check_broken_json,
    check_duplicates,
    check_malformed,
    check_missing_columns,
    check_out_of_range,
    check_overloaded,
    check_phase_window_constraints,
)


def test_missing_columns_sampled_from_first_record(dataset):
    """
    @brief
    Each absent required column is reported once, not per row.
    """
    # --- Arrange ---
    clients = dataset["clients"]
    for c in clients:
        del c["GroupTag"]
    required = ("ClientID", "GroupTag")

    # --- Act ---
    findings = check_missing_columns(clients, required)

    # --- Assert ---
    assert len(findings) == 1
    assert findings[0].type == "missing_column"
    assert findings[0].message == "Missing required column: GroupTag"
    assert findings[0].row_index is None
    assert check_missing_columns([], required) == []


def test_duplicates_reported_at_second_occurrence(dataset):
    """
    @brief
    Two rows sharing an id give exactly one finding at the later row.
    """
    # --- Arrange ---
    clients = dataset["clients"]
    clients[1]["ClientID"] = "C1"

    # --- Act ---
    findings = check_duplicates(clients, "ClientID")

    # --- Assert ---
    assert len(findings) == 1
    assert findings[0].row_index == 1
    assert findings[0].column_id == "ClientID"
    assert findings[0].message == "Duplicate ClientID: C1"


def test_duplicates_tolerate_unhashable_ids():
    records = [{"ClientID": ["x"]}, {"ClientID": ["x"]}]

    assert len(check_duplicates(records, "ClientID")) == 1


def test_malformed_arrays_and_numbers(dataset):
    # --- Arrange ---
    tasks = dataset["tasks"]
    tasks[0]["RequiredSkills"] = "A"
    tasks[1]["Duration"] = "two"
    tasks[1]["PreferredPhases"] = None

    # --- Act ---
    findings = check_malformed(
        tasks, ("RequiredSkills", "PreferredPhases"), ("Duration", "MaxConcurrent")
    )

    # --- Assert ---
    assert [(f.type, f.row_index, f.column_id) for f in findings] == [
        ("malformed_array", 0, "RequiredSkills"),
        ("malformed_number", 1, "Duration"),
    ]


def test_malformed_skips_falsy_array_cells(dataset):
    # --- Arrange ---
    workers = dataset["workers"]
    workers[0]["Skills"] = 0
    workers[0]["AvailableSlots"] = False
    workers[1]["Skills"] = "B"

    # --- Act ---
    findings = check_malformed(workers, ("Skills", "AvailableSlots"), ())

    # --- Assert ---
    assert [(f.type, f.row_index, f.column_id) for f in findings] == [
        ("malformed_array", 1, "Skills"),
    ]


def test_out_of_range_empty_when_all_in_range(dataset):
    assert check_out_of_range(dataset["clients"]) == []


def test_out_of_range_locates_offending_cell(dataset):
    """
    @brief
    PriorityLevel 6 at row 0 is an error located at (0, PriorityLevel).
    """
    # --- Arrange ---
    clients = dataset["clients"]
    clients[0]["PriorityLevel"] = 6

    # --- Act ---
    findings = check_out_of_range(clients)

    # --- Assert ---
    assert len(findings) == 1
    f = findings[0]
    assert f.type == "out_of_range"
    assert f.severity == "error"
    assert f.row_index == 0
    assert f.column_id == "PriorityLevel"
    assert f.message == "PriorityLevel must be between 1-5, got: 6"


def test_out_of_range_skips_non_numeric(dataset):
    clients = dataset["clients"]
    clients[0]["PriorityLevel"] = "high"

    assert check_out_of_range(clients) == []


def test_broken_json_flags_invalid_and_non_object_text(dataset):
    # --- Arrange ---
    clients = dataset["clients"]
    clients[0]["AttributesJSON"] = "{bad"
    clients[1]["AttributesJSON"] = "[1, 2]"

    # --- Act ---
    findings = check_broken_json(clients)

    # --- Assert ---
    assert [f.row_index for f in findings] == [0, 1]
    assert all(f.column_id == "AttributesJSON" for f in findings)
    assert findings[0].message == "Invalid JSON in AttributesJSON: {bad"


def test_broken_json_ignores_decoded_mappings(dataset):
    clients = dataset["clients"]
    clients[0]["AttributesJSON"] = {"already": "decoded"}

    assert check_broken_json(clients) == []


def test_overloaded_worker_is_a_warning(dataset):
    # --- Arrange ---
    workers = dataset["workers"]
    workers[0]["MaxLoadPerPhase"] = 5

    # --- Act ---
    findings = check_overloaded(workers)

    # --- Assert ---
    assert len(findings) == 1
    assert findings[0].severity == "warning"
    assert findings[0].row_index == 0
    assert findings[0].column_id == "MaxLoadPerPhase"


def test_phase_window_constraints_lists_bad_entries(dataset):
    # --- Arrange ---
    tasks = dataset["tasks"]
    tasks[1]["PreferredPhases"] = [0, 3, 11]

    # --- Act ---
    findings = check_phase_window_constraints(tasks)

    # --- Assert ---
    assert len(findings) == 1
    assert findings[0].type == "invalid_phase"
    assert findings[0].row_index == 1
    assert findings[0].message == "Invalid phases in PreferredPhases: 0, 11"


def test_dict_instead_of_list_is_a_caller_error(dataset):
    with pytest.raises(DataError):
        check_duplicates(dataset["clients"][0], "ClientID")
