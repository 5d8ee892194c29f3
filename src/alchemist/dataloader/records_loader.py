# src/alchemist/dataloader/records_loader.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from alchemist.dataloader.types import LoadResult
from alchemist.errors import DataError
from alchemist.schemas.models import ENTITY_COLUMNS, EntityKind
from alchemist.schemas.parsing import ParseFailure, parse_entity

logger = logging.getLogger(__name__)


class EntityLoader:
    """
    Rows (already read from CSV/XLSX by the caller) → LoadResult[entity].

    Rules:
      - Every row is a mapping keyed by column name; values are usually strings.
      - Keys and string values are stripped of surrounding whitespace.
      - Each row is parsed through the entity schema:
          * parse failure → issue + continue (row left out of entities,
            kept raw in `rows` so the validators can locate it)
      - Unlike the validators, the loader does not judge duplicates or
        references; the caller runs the full validation pass on the result.

    Fatal errors (raise DataError immediately):
      - rows is a single mapping instead of an iterable of rows
      - a row is not a mapping
    """

    def __init__(self, kind: EntityKind | str) -> None:
        try:
            self.kind = EntityKind(kind)
        except ValueError as e:
            raise DataError(
                message=f"Unknown entity kind: {kind!r}",
                source="EntityLoader.__init__",
                suggested_action="Use one of: client, worker, task.",
            ) from e

    def load(self, rows: Iterable[Mapping[str, Any]]) -> LoadResult:
        records = self._normalize_rows(rows)
        result = self._rows_to_result(records)
        self._report_summary(result)
        return result

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _normalize_rows(self, rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
        if isinstance(rows, Mapping):
            raise DataError(
                message="Expected an iterable of rows, got a single mapping.",
                source="EntityLoader._normalize_rows",
                suggested_action="Wrap a single row in a list.",
            )
        out: list[dict[str, Any]] = []
        for row in rows:
            if not isinstance(row, Mapping):
                raise DataError(
                    message=f"Row must be a mapping, got {type(row).__name__}",
                    source="EntityLoader._normalize_rows",
                    suggested_action="Read the sheet with a header row (dict per row).",
                )
            out.append(self._strip_row(row))
        return out

    def _strip_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        return {
            (k.strip() if isinstance(k, str) else k): (v.strip() if isinstance(v, str) else v)
            for k, v in row.items()
        }

    def _rows_to_result(self, rows: list[dict[str, Any]]) -> LoadResult:
        id_column = ENTITY_COLUMNS[self.kind].id_column
        issues: list[dict[str, Any]] = []
        entities: list[Any] = []
        merged: list[Any] = []

        for idx, row in enumerate(rows):
            parsed = parse_entity(self.kind, row)
            if isinstance(parsed, ParseFailure):
                merged.append(row)
                issues.append(
                    {
                        "kind": "parse_error",
                        "row_index": idx,
                        "record_id": row.get(id_column) or None,
                        "reasons": list(parsed.reasons),
                        "fields": list(parsed.fields),
                    }
                )
                continue
            entities.append(parsed)
            merged.append(parsed)

        return LoadResult(
            kind=self.kind,
            success=not issues,
            entities=entities,
            errors=issues,
            total_rows=len(rows),
            kept_rows=len(entities),
            rows=merged,
        )

    def _report_summary(self, result: LoadResult) -> None:
        if result.success:
            logger.info(
                "EntityLoader OK: kind=%s kept=%d/%d",
                result.kind.value,
                result.kept_rows,
                result.total_rows,
            )
        else:
            # aggregate by offending field
            counts: dict[str, int] = {}
            for it in result.errors:
                for name in it["fields"]:
                    counts[name] = counts.get(name, 0) + 1
            summary = ", ".join(f"{k}={v}" for k, v in counts.items())
            logger.warning(
                "EntityLoader: kind=%s %d of %d row(s) failed to parse [%s]",
                result.kind.value,
                len(result.errors),
                result.total_rows,
                summary or "no-summary",
            )


__all__ = ["EntityLoader"]
