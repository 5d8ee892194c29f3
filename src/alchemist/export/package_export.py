# src/alchemist/export/package_export.py
from __future__ import annotations

import csv
import io
import json
import logging
import os
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from alchemist.errors import ExportError
from alchemist.schemas.models import ENTITY_COLUMNS, EntityKind, ExportConfig, Finding
from alchemist.schemas.priorities import PrioritizationWeights
from alchemist.schemas.rules import order_rules, parse_rule, rule_to_dict
from alchemist.validator.records import as_records
from alchemist.validator.validator import blocking_findings, validate_all

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExportResult:
    """Paths written by one export, keyed by artifact name."""

    files: dict[str, Path] = field(default_factory=dict)
    total_records: int = 0


def _cell(value: Any) -> str:
    """
    @brief
    Serialize one entity value into a CSV cell.

    @details
    Lists are comma-joined (the same encoding the schemas accept on
    upload). A list holding an entry with a comma is written as a JSON list
    instead, so the entry survives the next upload. Mappings are
    JSON-encoded; None becomes an empty cell.
    """
    if value is None:
        return ""
    if isinstance(value, list):
        if any("," in str(v) for v in value):
            return json.dumps(value, ensure_ascii=False)
        return ",".join(str(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _entities_csv(records: list[dict[str, Any]], columns: Sequence[str]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=list(columns), extrasaction="ignore")
    writer.writeheader()
    for record in records:
        writer.writerow({c: _cell(record.get(c)) for c in columns})
    return buf.getvalue()


def _atomic_write_text(path: Path, text: str) -> None:
    """
    @brief
    Write text through a temporary file in the same directory and swap it in.

    @raises
        ExportError
            On write or rename failure.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=path.name + ".", dir=str(path.parent))
    try:
        with open(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise ExportError(
            f"atomic write failed for {path}: {e}",
            source="export._atomic_write_text",
            suggested_action="Check output directory permissions and disk space.",
        ) from e


class PackageExporter:
    """
    @brief
    Writes the validated configuration package.

    @details
    Export is gated on the full validation pass: any error-severity finding
    refuses the export. Warnings and info findings do not block. The package
    holds one CSV per entity sheet plus a JSON configuration carrying the
    rules (ordered by priority) and the prioritization weights.
    """

    def __init__(self, out_dir: Path, cfg: ExportConfig | None = None) -> None:
        self.out_dir = Path(out_dir)
        self.cfg = cfg or ExportConfig()

    def export(
        self,
        clients: Sequence[Any],
        workers: Sequence[Any],
        tasks: Sequence[Any],
        rules: Sequence[Any] | None = None,
        *,
        findings: list[Finding] | None = None,
        weights: PrioritizationWeights | None = None,
    ) -> ExportResult:
        """
        @brief
        Validate (unless findings are supplied) and write the package.

        @params
            findings : list[Finding] | None
                Result of the latest full pass. When None a fresh full pass
                is run here; a pass over other data must not be passed in.

        @raises
            ExportError
                Raised when blocking findings exist or a file cannot be written.
        """
        rule_list = list(rules or [])

        # (1) Gate on the full validation pass
        if findings is None:
            findings = validate_all(clients, workers, tasks, rule_list)
        blocking = blocking_findings(findings)
        if blocking:
            logger.error("Export refused: %d blocking finding(s)", len(blocking))
            raise ExportError(
                f"Export blocked by {len(blocking)} validation error(s): {blocking[0].message}",
                source="PackageExporter.export",
                suggested_action="Fix all validation errors before exporting.",
            )

        now = datetime.now(timezone.utc)
        suffix = f"-{now.strftime('%Y%m%dT%H%M%SZ')}" if self.cfg.timestamp_files else ""
        result = ExportResult()

        # (2) Entity sheets
        sheets = {
            "clients": (EntityKind.CLIENT, as_records(clients)),
            "workers": (EntityKind.WORKER, as_records(workers)),
            "tasks": (EntityKind.TASK, as_records(tasks)),
        }
        for name, (kind, records) in sheets.items():
            path = self.out_dir / f"{name}{suffix}.csv"
            _atomic_write_text(path, _entities_csv(records, ENTITY_COLUMNS[kind].required))
            result.files[name] = path
            result.total_records += len(records)

        # (3) Combined configuration
        parsed_rules = order_rules([parse_rule(r) for r in rule_list])
        payload = self._config_payload(sheets, parsed_rules, weights, now)
        config_path = self.out_dir / self._config_filename(suffix)
        text = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
        _atomic_write_text(config_path, text + "\n")
        result.files["config"] = config_path

        logger.info(
            "Export completed: %d record(s), %d rule(s) -> %s",
            result.total_records,
            len(parsed_rules),
            self.out_dir,
        )
        return result

    def _config_filename(self, suffix: str) -> str:
        stem, dot, ext = self.cfg.config_filename.rpartition(".")
        if not dot:
            return f"{self.cfg.config_filename}{suffix}"
        return f"{stem}{suffix}.{ext}"

    def _config_payload(
        self,
        sheets: dict[str, tuple[EntityKind, list[dict[str, Any]]]],
        rules: list[Any],
        weights: PrioritizationWeights | None,
        now: datetime,
    ) -> dict[str, Any]:
        normalized = (weights or PrioritizationWeights()).normalized()
        return {
            "exportInfo": {
                "timestamp": now.isoformat(timespec="seconds"),
                "version": self.cfg.version,
                "application": self.cfg.application,
                "totalRecords": {name: len(records) for name, (_, records) in sheets.items()},
                "validationStatus": "passed",
            },
            "data": {name: records for name, (_, records) in sheets.items()},
            "rules": {
                "businessRules": [rule_to_dict(r) for r in rules],
                "ruleCount": len(rules),
                "ruleTypes": list(dict.fromkeys(r.type for r in rules)),
            },
            "priorities": {
                "criteria": normalized.weights,
                "totalWeight": round(normalized.total, 6),
            },
        }


__all__ = ["ExportResult", "PackageExporter"]
