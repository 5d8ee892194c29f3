import copy
import sys
from pathlib import Path
from typing import Any

import pytest

# (1) Add repository root to sys.path to enable absolute imports
#     The root directory contains scripts/, src/, and config/.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


# (2) A small, fully consistent dataset: every check returns nothing for it.
#     Phase capacity: 1->2, 2->5, 3->5, 4->3; demand: 1->1, 2->3, 3->2.
_CLEAN: dict[str, list[dict[str, Any]]] = {
    "clients": [
        {
            "ClientID": "C1",
            "ClientName": "Acme",
            "PriorityLevel": 3,
            "RequestedTaskIDs": ["T1", "T2"],
            "GroupTag": "GA",
            "AttributesJSON": '{"location": "NY"}',
        },
        {
            "ClientID": "C2",
            "ClientName": "Globex",
            "PriorityLevel": 5,
            "RequestedTaskIDs": ["T2"],
            "GroupTag": "GB",
            "AttributesJSON": "{}",
        },
    ],
    "workers": [
        {
            "WorkerID": "W1",
            "WorkerName": "Ann",
            "Skills": ["A", "B"],
            "AvailableSlots": [1, 2, 3],
            "MaxLoadPerPhase": 2,
            "WorkerGroup": "G1",
            "QualificationLevel": 3,
        },
        {
            "WorkerID": "W2",
            "WorkerName": "Bob",
            "Skills": ["B", "C"],
            "AvailableSlots": [2, 3, 4],
            "MaxLoadPerPhase": 3,
            "WorkerGroup": "G1",
            "QualificationLevel": 4,
        },
    ],
    "tasks": [
        {
            "TaskID": "T1",
            "TaskName": "Intake",
            "Category": "ops",
            "Duration": 1,
            "RequiredSkills": ["A"],
            "PreferredPhases": [1, 2],
            "MaxConcurrent": 1,
        },
        {
            "TaskID": "T2",
            "TaskName": "Review",
            "Category": "ops",
            "Duration": 2,
            "RequiredSkills": ["B"],
            "PreferredPhases": [2, 3],
            "MaxConcurrent": 2,
        },
    ],
}


@pytest.fixture()
def dataset() -> dict[str, list[dict[str, Any]]]:
    """Fresh deep copy of the clean dataset; tests may mutate it freely."""
    return copy.deepcopy(_CLEAN)
