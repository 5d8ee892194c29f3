from alchemist.metrics.summary import findings_frame, summarize_findings
from alchemist.schemas.models import Finding, FindingType, Severity


# -------------------------
# Helper utilities
# -------------------------
def _f(type_, severity, row=None, col=None) -> Finding:
    return Finding(type=type_, message="m", severity=severity, row_index=row, column_id=col)


def test_empty_findings_give_zero_summary():
    # --- Act ---
    summary = summarize_findings([])

    # --- Assert ---
    assert summary == {
        "total": 0,
        "by_severity": {"error": 0, "warning": 0, "info": 0},
        "by_type": {},
        "cells_flagged": 0,
        "blocking": 0,
    }
    assert list(findings_frame([]).columns) == [
        "type",
        "severity",
        "message",
        "rowIndex",
        "columnId",
        "suggestion",
    ]


def test_summary_counts_by_severity_type_and_cell():
    """
    @brief
    Types are ordered by count, then name; cells are counted once.
    """
    # --- Arrange ---
    findings = [
        _f(FindingType.OUT_OF_RANGE, Severity.ERROR, 0, "PriorityLevel"),
        _f(FindingType.BROKEN_JSON, Severity.ERROR, 0, "AttributesJSON"),
        _f(FindingType.UNKNOWN_REFERENCE, Severity.ERROR, 1, "RequestedTaskIDs"),
        _f(FindingType.UNKNOWN_REFERENCE, Severity.ERROR, 1, "RequestedTaskIDs"),
        _f(FindingType.PHASE_SATURATION, Severity.WARNING),
    ]

    # --- Act ---
    summary = summarize_findings(findings)

    # --- Assert ---
    assert summary["total"] == 5
    assert summary["by_severity"] == {"error": 4, "warning": 1, "info": 0}
    assert list(summary["by_type"].items()) == [
        ("unknown_reference", 2),
        ("broken_json", 1),
        ("out_of_range", 1),
        ("phase_saturation", 1),
    ]
    assert summary["cells_flagged"] == 3
    assert summary["blocking"] == 4
