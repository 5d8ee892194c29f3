# src/alchemist/metrics/summary.py
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pandas as pd

from alchemist.schemas.models import Finding, Severity

_SEVERITIES = tuple(s.value for s in Severity)


def findings_frame(findings: Iterable[Finding]) -> pd.DataFrame:
    """
    @brief
    Tabular view of findings, one row per finding.

    @details
    Columns: type, severity, message, rowIndex, columnId, suggestion.
    An empty input yields an empty frame with the same columns.
    """
    columns = ["type", "severity", "message", "rowIndex", "columnId", "suggestion"]
    rows = [f.model_dump(by_alias=True) for f in findings]
    return pd.DataFrame(rows, columns=columns)


def summarize_findings(findings: Iterable[Finding]) -> dict[str, Any]:
    """
    @brief
    Builds a JSON-serializable summary of a validation pass.

    @details
    Counts findings in total, per severity (all three keys always present),
    and per finding type, plus the number of distinct grid cells flagged.
    Type counts are ordered by descending count, then by name.
    """
    df = findings_frame(findings)

    # (1) Severity counts with stable keys
    by_severity = {s: 0 for s in _SEVERITIES}
    if not df.empty:
        for severity, count in df["severity"].value_counts().items():
            by_severity[str(severity)] = int(count)

    # (2) Type counts ordered by frequency
    by_type: dict[str, int] = {}
    if not df.empty:
        counts = df.groupby("type").size().reset_index(name="n")
        counts = counts.sort_values(["n", "type"], ascending=[False, True])
        by_type = {str(r.type): int(r.n) for r in counts.itertuples(index=False)}

    # (3) Distinct located cells
    located = df.dropna(subset=["rowIndex", "columnId"]) if not df.empty else df
    cells = 0
    if not located.empty:
        cells = int(located[["rowIndex", "columnId"]].drop_duplicates().shape[0])

    return {
        "total": int(len(df)),
        "by_severity": by_severity,
        "by_type": by_type,
        "cells_flagged": cells,
        "blocking": by_severity[Severity.ERROR.value],
    }


__all__ = ["findings_frame", "summarize_findings"]
