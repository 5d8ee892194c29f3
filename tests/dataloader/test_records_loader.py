# tests/dataloader/test_records_loader.py
import logging

import pytest

from alchemist.dataloader.records_loader import EntityLoader
from alchemist.dataloader.types import LoadResult
from alchemist.errors import DataError
from alchemist.schemas.models import EntityKind, Task


def _as_sheet(rows):
    """Render rows the way a spreadsheet reader delivers them: every cell is text."""
    return [
        {
            f" {k} ": " " + (",".join(str(x) for x in v) if isinstance(v, list) else str(v)) + " "
            for k, v in row.items()
        }
        for row in rows
    ]


# ------------------------------------------------------------------------------
# Happy path
# ------------------------------------------------------------------------------
def test_string_rows_parse_into_entities(dataset):
    # --- Arrange ---
    rows = _as_sheet(dataset["tasks"])

    # --- Act ---
    result = EntityLoader("task").load(rows)

    # --- Assert ---
    assert isinstance(result, LoadResult)
    assert result.success is True
    assert result.kind == EntityKind.TASK
    assert all(isinstance(t, Task) for t in result.entities)
    assert [t.task_id for t in result.entities] == ["T1", "T2"]
    assert result.entities[1].preferred_phases == [2, 3]
    assert (result.total_rows, result.kept_rows) == (2, 2)


# ------------------------------------------------------------------------------
# Row-level issues (non-fatal but lead to success=False)
# ------------------------------------------------------------------------------
def test_bad_rows_reported_and_skipped(dataset, caplog):
    """
    @brief
    Rows failing to parse become issues and are left out of entities.
    """
    # --- Arrange ---
    rows = _as_sheet(dataset["clients"])
    rows[0][" PriorityLevel "] = "high"

    # --- Act ---
    with caplog.at_level(logging.WARNING):
        result = EntityLoader(EntityKind.CLIENT).load(rows)

    # --- Assert ---
    assert result.success is False
    assert [c.client_id for c in result.entities] == ["C2"]
    assert result.errors == [
        {
            "kind": "parse_error",
            "row_index": 0,
            "record_id": "C1",
            "reasons": ["PriorityLevel must be an integer"],
            "fields": ["PriorityLevel"],
        }
    ]
    assert "PriorityLevel=1" in caplog.text
    assert result.rows[0]["PriorityLevel"] == "high"
    assert result.rows[1] is result.entities[0]


# ------------------------------------------------------------------------------
# Fatal errors
# ------------------------------------------------------------------------------
def test_unknown_kind_raises():
    with pytest.raises(DataError):
        EntityLoader("project")


def test_single_mapping_instead_of_rows_raises(dataset):
    with pytest.raises(DataError):
        EntityLoader("worker").load(dataset["workers"][0])


def test_non_mapping_row_raises():
    with pytest.raises(DataError):
        EntityLoader("worker").load([["W1", "Ann"]])
