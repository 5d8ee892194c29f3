# src/alchemist/validator/field_checks.py
"""
@brief
Field-level checks over a single entity collection.

@details
Each check takes one collection (models or column-keyed dicts), knows
nothing about the other entity kinds, and returns findings in row order.
Checks never raise on malformed data: a value of the wrong shape is either
reported here or skipped so that the check owning that shape reports it.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from typing import Any

from alchemist.schemas.models import Finding, FindingType, Severity
from alchemist.validator.records import (
    as_records,
    fmt_number,
    list_value,
    make_finding,
    number_value,
)


def check_missing_columns(collection: Iterable[Any], required: Sequence[str]) -> list[Finding]:
    """
    @brief
    Report required columns absent from the sheet.

    @details
    Only the first record is sampled; each missing column is reported once,
    not per row. An empty collection has no columns to check.
    """
    records = as_records(collection)
    if not records:
        return []

    first = records[0]
    return [
        make_finding(
            FindingType.MISSING_COLUMN,
            f"Missing required column: {column}",
            Severity.ERROR,
            suggestion=f"Add a {column} column to the sheet",
        )
        for column in required
        if column not in first
    ]


def check_duplicates(collection: Iterable[Any], id_column: str) -> list[Finding]:
    """
    @brief
    Flag every repeated identifier after its first occurrence.

    @details
    Iterates rows in order and remembers seen ids; the second and later
    rows carrying an id are reported at their own row index.
    """
    findings: list[Finding] = []
    seen: set[Any] = set()

    for index, record in enumerate(as_records(collection)):
        value = record.get(id_column)
        # unhashable cells (lists, dicts) compare by their text form
        key = value if isinstance(value, (str, int, float, type(None))) else repr(value)

        if key in seen:
            findings.append(
                make_finding(
                    FindingType.DUPLICATE_ID,
                    f"Duplicate {id_column}: {value}",
                    Severity.ERROR,
                    row_index=index,
                    column_id=id_column,
                    suggestion=f"Ensure each {id_column} is unique",
                )
            )
        else:
            seen.add(key)

    return findings


def check_malformed(
    collection: Iterable[Any],
    array_columns: Sequence[str],
    numeric_columns: Sequence[str],
) -> list[Finding]:
    """
    @brief
    Report list columns that are not lists and numeric columns that are not numbers.

    @details
    Empty or falsy list cells (None, "", 0, False) are left alone. An
    absent numeric column is the missing-column check's concern, while an
    explicit None or a non-finite value is malformed.
    """
    findings: list[Finding] = []

    for index, record in enumerate(as_records(collection)):
        # (1) Array columns
        for column in array_columns:
            value = record.get(column)
            if not value or isinstance(value, list):
                continue
            findings.append(
                make_finding(
                    FindingType.MALFORMED_ARRAY,
                    f"Column {column} should be an array, got: {type(value).__name__}",
                    Severity.ERROR,
                    row_index=index,
                    column_id=column,
                    suggestion="Convert to array format: [value1, value2, ...]",
                )
            )

        # (2) Numeric columns
        for column in numeric_columns:
            if column not in record:
                continue
            if number_value(record, column) is not None:
                continue
            findings.append(
                make_finding(
                    FindingType.MALFORMED_NUMBER,
                    f"Column {column} should be a number, got: {record.get(column)!r}",
                    Severity.ERROR,
                    row_index=index,
                    column_id=column,
                    suggestion="Enter a valid number",
                )
            )

    return findings


def check_out_of_range(clients: Iterable[Any], low: int = 1, high: int = 5) -> list[Finding]:
    """Client PriorityLevel must lie in [low, high]; non-numbers are check_malformed's concern."""
    findings: list[Finding] = []
    for index, record in enumerate(as_records(clients)):
        level = number_value(record, "PriorityLevel")
        if level is None or low <= level <= high:
            continue
        findings.append(
            make_finding(
                FindingType.OUT_OF_RANGE,
                f"PriorityLevel must be between {low}-{high}, got: {fmt_number(level)}",
                Severity.ERROR,
                row_index=index,
                column_id="PriorityLevel",
                suggestion=f"Set PriorityLevel to a value between {low} and {high}",
            )
        )
    return findings


def check_broken_json(clients: Iterable[Any]) -> list[Finding]:
    """
    @brief
    AttributesJSON still held as text must decode to a JSON object.
    """
    findings: list[Finding] = []
    for index, record in enumerate(as_records(clients)):
        raw = record.get("AttributesJSON")
        if not isinstance(raw, str) or not raw.strip():
            continue
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            message = f"Invalid JSON in AttributesJSON: {raw}"
        else:
            if isinstance(decoded, dict):
                continue
            message = f"AttributesJSON must be a JSON object, got: {raw}"
        findings.append(
            make_finding(
                FindingType.BROKEN_JSON,
                message,
                Severity.ERROR,
                row_index=index,
                column_id="AttributesJSON",
                suggestion="Fix JSON syntax or use valid JSON object",
            )
        )
    return findings


def check_overloaded(workers: Iterable[Any]) -> list[Finding]:
    """Advisory: a worker with fewer available slots than MaxLoadPerPhase."""
    findings: list[Finding] = []
    for index, record in enumerate(as_records(workers)):
        slots = list_value(record, "AvailableSlots")
        max_load = number_value(record, "MaxLoadPerPhase")
        if slots is None or max_load is None:
            continue
        if len(slots) < max_load:
            findings.append(
                make_finding(
                    FindingType.OVERLOADED_WORKER,
                    (
                        f"Worker {record.get('WorkerID')} has {len(slots)} available slots "
                        f"but MaxLoadPerPhase is {fmt_number(max_load)}"
                    ),
                    Severity.WARNING,
                    row_index=index,
                    column_id="MaxLoadPerPhase",
                    suggestion=(
                        f"Increase AvailableSlots or decrease MaxLoadPerPhase to {len(slots)}"
                    ),
                )
            )
    return findings


def check_phase_window_constraints(
    tasks: Iterable[Any], low: int = 1, high: int = 10
) -> list[Finding]:
    """
    @brief
    Every PreferredPhases entry must be an integer in [low, high].

    @details
    One finding per task lists all offending entries.
    """
    findings: list[Finding] = []
    for index, record in enumerate(as_records(tasks)):
        phases = list_value(record, "PreferredPhases")
        if phases is None:
            continue
        invalid = [p for p in phases if not _is_phase(p, low, high)]
        if invalid:
            findings.append(
                make_finding(
                    FindingType.INVALID_PHASE,
                    f"Invalid phases in PreferredPhases: {', '.join(str(p) for p in invalid)}",
                    Severity.ERROR,
                    row_index=index,
                    column_id="PreferredPhases",
                    suggestion=f"Phases must be numbers between {low} and {high}",
                )
            )
    return findings


def _is_phase(value: Any, low: int, high: int) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return low <= value <= high


__all__ = [
    "check_broken_json",
    "check_duplicates",
    "check_malformed",
    "check_missing_columns",
    "check_out_of_range",
    "check_overloaded",
    "check_phase_window_constraints",
]
