# src/alchemist/validator/records.py
from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from alchemist.errors import DataError
from alchemist.schemas.models import Finding, FindingType, Severity
from alchemist.schemas.parsing import to_record


def as_records(collection: Iterable[Any] | None) -> list[dict[str, Any]]:
    """
    @brief
    Normalize an entity collection into column-keyed records.

    @details
    Accepts entity models, plain mappings, or a mix of both. A plain dict
    passed as the whole collection is rejected because iterating it would
    walk its keys.

    @raises
        DataError if the collection is a mapping or not iterable.
    """
    if collection is None:
        return []
    if isinstance(collection, Mapping) or isinstance(collection, (str, bytes)):
        raise DataError(
            "Entity collection must be a list of records.",
            source="validator.as_records",
            suggested_action="Pass list[dict] or a list of entity models.",
        )
    return [to_record(row) for row in collection]


def list_value(record: Mapping[str, Any], column: str) -> list[Any] | None:
    """Return the column value when it is a list, otherwise None."""
    value = record.get(column)
    return value if isinstance(value, list) else None


def number_value(record: Mapping[str, Any], column: str) -> float | None:
    """Return the column value when it is a finite number (bool excluded), otherwise None."""
    value = record.get(column)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


def make_finding(
    type_: FindingType,
    message: str,
    severity: Severity,
    *,
    row_index: int | None = None,
    column_id: str | None = None,
    suggestion: str | None = None,
) -> Finding:
    return Finding(
        type=type_,
        message=message,
        severity=severity,
        row_index=row_index,
        column_id=column_id,
        suggestion=suggestion,
    )


def fmt_number(value: float) -> str:
    """Render whole floats without a trailing '.0' in messages."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
