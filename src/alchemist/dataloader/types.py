# src/alchemist/dataloader/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from alchemist.schemas.models import EntityKind


@dataclass(slots=True)
class LoadResult:
    """
    Structured result of turning uploaded rows into entities.

    Fields:
        kind: Entity kind the rows were parsed as.
        success: True if every row parsed, False otherwise.
        entities: Parsed entities in row order (rows that failed are left out).
        errors: One issue dict per failed row.
                Each item contains: kind, row_index, record_id, reasons, fields.
        total_rows: Number of rows offered to the loader.
        kept_rows: Number of successfully parsed entities (len(entities)).
        rows: Every row in order: the parsed entity, or the stripped raw
              record when parsing failed.
    """

    kind: EntityKind
    success: bool
    entities: list[Any] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    total_rows: int = 0
    kept_rows: int = 0
    rows: list[Any] = field(default_factory=list)
