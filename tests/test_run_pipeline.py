import csv
import json
from pathlib import Path

import pytest

from alchemist.errors import DataError, ExportError
from scripts.run import run_pipeline


def _snapshot(tmp_path: Path, data) -> Path:
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_run_pipeline_validates_and_exports(tmp_path: Path, dataset):
    """
    @brief
    Clean snapshot: report written, package exported.

    @details
    A missing config file falls back to defaults; rules in the snapshot
    travel through to the exported configuration.
    """
    # --- Arrange ---
    dataset["rules"] = [{"type": "phaseWindow", "task": "T1", "phases": "1-2"}]
    snapshot = _snapshot(tmp_path, dataset)
    out_dir = tmp_path / "out"

    # --- Act ---
    result = run_pipeline(
        tmp_path / "no_config.yaml",
        snapshot,
        out_dir,
        export=True,
        preset="Priority-Driven",
    )

    # --- Assert ---
    assert result["report"]["exportable"] is True
    assert (out_dir / "validation_report.json").exists()
    assert set(result["files"]) == {"clients", "workers", "tasks", "config"}
    payload = json.loads(result["files"]["config"].read_text(encoding="utf-8"))
    assert payload["rules"]["businessRules"][0]["phases"] == [1, 2]
    assert payload["priorities"]["criteria"]["priorityLevel"] == pytest.approx(0.4)


def test_run_pipeline_refuses_export_on_errors(tmp_path: Path, dataset):
    # --- Arrange ---
    dataset["clients"][0]["RequestedTaskIDs"] = ["T9"]
    snapshot = _snapshot(tmp_path, dataset)

    # --- Act ---
    result = run_pipeline(tmp_path / "none.yaml", snapshot, tmp_path / "out")

    # --- Assert ---
    assert result["report"]["exportable"] is False
    assert result["files"] == {}
    with pytest.raises(ExportError):
        run_pipeline(tmp_path / "none.yaml", snapshot, tmp_path / "out", export=True)


def test_run_pipeline_rejects_non_object_snapshot(tmp_path: Path):
    snapshot = _snapshot(tmp_path, [1, 2, 3])

    with pytest.raises(DataError):
        run_pipeline(tmp_path / "none.yaml", snapshot, tmp_path / "out")


def test_run_pipeline_expands_compact_cells(tmp_path: Path, dataset):
    """
    @brief
    Range, comma and tag-list cell encodings are expanded before validation.

    @details
    The exported sheets carry the expanded lists.
    """
    # --- Arrange ---
    dataset["tasks"][0]["PreferredPhases"] = "1-2"
    dataset["workers"][0]["AvailableSlots"] = "1,2,3"
    dataset["workers"][0]["Skills"] = "A,B"
    snapshot = _snapshot(tmp_path, dataset)
    out_dir = tmp_path / "out"

    # --- Act ---
    result = run_pipeline(tmp_path / "none.yaml", snapshot, out_dir, export=True)

    # --- Assert ---
    assert result["report"]["exportable"] is True
    assert result["report"]["summary"]["total"] == 0
    with result["files"]["tasks"].open("r", encoding="utf-8", newline="") as f:
        tasks = list(csv.DictReader(f))
    assert tasks[0]["PreferredPhases"] == "1,2"
    with result["files"]["workers"].open("r", encoding="utf-8", newline="") as f:
        workers = list(csv.DictReader(f))
    assert (workers[0]["Skills"], workers[0]["AvailableSlots"]) == ("A,B", "1,2,3")


def test_run_pipeline_keeps_unparsed_rows_for_findings(tmp_path: Path, dataset):
    # --- Arrange ---
    dataset["tasks"][1]["Duration"] = "long"
    snapshot = _snapshot(tmp_path, dataset)

    # --- Act ---
    result = run_pipeline(tmp_path / "none.yaml", snapshot, tmp_path / "out")

    # --- Assert ---
    findings = result["report"]["findings"]
    assert result["report"]["exportable"] is False
    assert ("malformed_number", 1, "Duration") in [
        (f["type"], f["rowIndex"], f["columnId"]) for f in findings
    ]
