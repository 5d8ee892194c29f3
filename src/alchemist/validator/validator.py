# src/alchemist/validator/validator.py
from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from alchemist.errors import DataError, RuleError
from alchemist.metrics.summary import summarize_findings
from alchemist.schemas.models import (
    ENTITY_COLUMNS,
    Config,
    EntityKind,
    Finding,
    FindingType,
    Severity,
    ValidationConfig,
)
from alchemist.schemas.rules import parse_rule
from alchemist.validator.field_checks import (
    check_broken_json,
    check_duplicates,
    check_malformed,
    check_missing_columns,
    check_out_of_range,
    check_overloaded,
    check_phase_window_constraints,
)
from alchemist.validator.records import make_finding
from alchemist.validator.reference_checks import (
    check_cross_entity_relationships,
    check_max_concurrency,
    check_phase_slot_saturation,
    check_skill_coverage,
    check_unknown_refs,
)
from alchemist.validator.rule_checks import check_rule_conflicts, detect_circular_dependencies

logger = logging.getLogger(__name__)


# ----------------------------
# AUXILIARY STRUCTURES / FUNCTIONS
# ----------------------------
@dataclass
class ValidationContext:
    """
    @brief
    Snapshot of the full dataset handed to an incremental pass.

    @details
    Owned by the caller; the engine only reads it. Collections may hold
    entity models or column-keyed dicts.
    """

    clients: list[Any] = field(default_factory=list)
    workers: list[Any] = field(default_factory=list)
    tasks: list[Any] = field(default_factory=list)
    rules: list[Any] = field(default_factory=list)


def _coerce_rules(rules: Iterable[Any] | None) -> tuple[list[Any], list[Finding]]:
    """
    @brief
    Convert rule payloads into rule variants.

    @details
    Already-parsed rules pass through. A payload that cannot be parsed is
    dropped from the analysis and reported as a rule_conflict error instead
    of aborting the pass.
    """
    parsed: list[Any] = []
    findings: list[Finding] = []
    for position, raw in enumerate(rules or ()):
        try:
            parsed.append(parse_rule(raw))
        except RuleError as e:
            findings.append(
                make_finding(
                    FindingType.RULE_CONFLICT,
                    f"Rule #{position + 1} is not a valid rule: {e.args[0]}",
                    Severity.ERROR,
                    suggestion=e.suggested_action,
                )
            )
    return parsed, findings


def has_blocking_errors(findings: Iterable[Finding]) -> bool:
    """Export gate: any error-severity finding blocks export."""
    return any(f.severity == Severity.ERROR for f in findings)


def blocking_findings(findings: Iterable[Finding]) -> list[Finding]:
    return [f for f in findings if f.severity == Severity.ERROR]


# ----------------------------
# FULL PASS
# ----------------------------
def validate_all(
    clients: Sequence[Any],
    workers: Sequence[Any],
    tasks: Sequence[Any],
    rules: Sequence[Any] | None = None,
    cfg: ValidationConfig | None = None,
) -> list[Finding]:
    """
    @brief
    Run every check over the whole dataset in a fixed order.

    @details
    Order: missing columns, duplicates, malformed values (clients, workers,
    tasks each), out-of-range, broken JSON, unknown references, co-run
    cycles, phase windows, overloaded workers, phase saturation, skill
    coverage, max concurrency, rule checks, cross-entity relationships.
    The result is the authoritative list for display and the export gate;
    inputs are never mutated and equal inputs give equal output.
    """
    vcfg = cfg or ValidationConfig()
    rule_list, rule_parse_findings = _coerce_rules(rules)

    c_cols = ENTITY_COLUMNS[EntityKind.CLIENT]
    w_cols = ENTITY_COLUMNS[EntityKind.WORKER]
    t_cols = ENTITY_COLUMNS[EntityKind.TASK]

    findings: list[Finding] = []

    # (1) Structural checks per collection
    findings += check_missing_columns(clients, c_cols.required)
    findings += check_missing_columns(workers, w_cols.required)
    findings += check_missing_columns(tasks, t_cols.required)

    findings += check_duplicates(clients, c_cols.id_column)
    findings += check_duplicates(workers, w_cols.id_column)
    findings += check_duplicates(tasks, t_cols.id_column)

    findings += check_malformed(clients, c_cols.array_columns, c_cols.numeric_columns)
    findings += check_malformed(workers, w_cols.array_columns, w_cols.numeric_columns)
    findings += check_malformed(tasks, t_cols.array_columns, t_cols.numeric_columns)

    # (2) Value and reference checks
    findings += check_out_of_range(clients, vcfg.priority_min, vcfg.priority_max)
    findings += check_broken_json(clients)
    findings += check_unknown_refs(clients, tasks)
    findings += detect_circular_dependencies(rule_list)
    findings += check_phase_window_constraints(tasks, vcfg.phase_min, vcfg.phase_max)
    findings += check_overloaded(workers)
    findings += check_phase_slot_saturation(tasks, workers)
    findings += check_skill_coverage(tasks, workers)
    findings += check_max_concurrency(tasks, workers)

    # (3) Rule checks, then the composite cross-entity check
    findings += rule_parse_findings
    findings += check_rule_conflicts(rule_list, tasks, workers, vcfg.phase_min, vcfg.phase_max)
    findings += check_cross_entity_relationships(clients, workers, tasks, rule_list)

    return findings


# ----------------------------
# INCREMENTAL PASS
# ----------------------------
def validate_change(
    entity: Any,
    kind: EntityKind | str,
    context: ValidationContext,
    *,
    row_index: int | None = None,
    cfg: ValidationConfig | None = None,
) -> list[Finding]:
    """
    @brief
    Re-run only the checks relevant to one edited entity.

    @details
    client -> out-of-range, broken JSON, unknown references;
    worker -> overloaded, phase saturation (all tasks vs. this worker);
    task   -> phase windows, skill coverage, max concurrency.
    This is a responsiveness shortcut for grid edits and never replaces
    `validate_all` at the export gate. When `row_index` is given, row-level
    findings are relocated to that grid row.

    @raises
        DataError
            Raised for an unknown entity kind (caller bug).
    """
    vcfg = cfg or ValidationConfig()
    try:
        entity_kind = EntityKind(kind)
    except ValueError as e:
        raise DataError(
            message=f"Unknown entity kind: {kind!r}",
            source="validator.validate_change",
            suggested_action="Use one of: client, worker, task.",
        ) from e

    single = [entity]
    findings: list[Finding] = []

    if entity_kind is EntityKind.CLIENT:
        findings += check_out_of_range(single, vcfg.priority_min, vcfg.priority_max)
        findings += check_broken_json(single)
        findings += check_unknown_refs(single, context.tasks)
    elif entity_kind is EntityKind.WORKER:
        findings += check_overloaded(single)
        findings += check_phase_slot_saturation(context.tasks, single)
    else:
        findings += check_phase_window_constraints(single, vcfg.phase_min, vcfg.phase_max)
        findings += check_skill_coverage(single, context.workers)
        findings += check_max_concurrency(single, context.workers)

    if row_index is None:
        return findings
    return [
        f.model_copy(update={"row_index": row_index}) if f.row_index is not None else f
        for f in findings
    ]


# ---------------------------
# VALIDATOR CLASS (instance core)
# ----------------------------
class Validator:
    """
    @brief
    Dataset validator with report lifecycle.

    @details
    Wraps the full pass and turns its findings into a structured report.
    Data problems never raise; only unusable inputs (e.g. a dict passed
    where a list of records is expected) surface as DataError.
    """

    def __init__(
        self,
        clients: Sequence[Any],
        workers: Sequence[Any],
        tasks: Sequence[Any],
        rules: Sequence[Any] | None = None,
        cfg: Config | None = None,
    ) -> None:
        self.clients = clients
        self.workers = workers
        self.tasks = tasks
        self.rules = list(rules or [])
        self.cfg = cfg or Config()
        self.findings: list[Finding] = []

    def run_all_checks(self) -> list[Finding]:
        """Execute the full pass and keep its findings on the instance."""
        self.findings = validate_all(
            self.clients, self.workers, self.tasks, self.rules, self.cfg.validation
        )
        logger.info(
            "Validation finished: %d finding(s), %d blocking",
            len(self.findings),
            len(blocking_findings(self.findings)),
        )
        return self.findings

    def build_report(self) -> dict[str, Any]:
        """
        @brief
        Assemble validation results into a serializable dictionary.

        @details
        `exportable` is False whenever an error-severity finding exists.
        `valid` additionally turns False on warnings when
        `validation.fail_on_warnings` is set.
        """
        exportable = not has_blocking_errors(self.findings)
        has_warnings = any(f.severity == Severity.WARNING for f in self.findings)
        valid = exportable and not (self.cfg.validation.fail_on_warnings and has_warnings)

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "valid": bool(valid),
            "exportable": bool(exportable),
            "findings": [f.to_dict() for f in self.findings],
            "summary": summarize_findings(self.findings),
        }

    def save_report(
        self,
        report: dict[str, Any],
        out_dir: Path | None = None,
        filename: str = "validation_report.json",
    ) -> Path:
        """
        Writes the report atomically to disk.

        Args:
            report: Validation report dictionary.
            out_dir: Target directory (defaults to cfg.output_dir).
            filename: Target filename (default 'validation_report.json').

        Returns:
            Path to the written JSON file.
        """
        target_dir = out_dir or Path(self.cfg.output_dir or "data/output")
        target_dir.mkdir(parents=True, exist_ok=True)
        final_path = target_dir / filename

        tmp_path = final_path.with_suffix(".tmp")

        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(report, f, indent=2, ensure_ascii=False)
            tmp_path.replace(final_path)
        except OSError as e:
            raise DataError(
                f"Failed to write validation report: {e}",
                source="Validator.save_report",
                suggested_action="Check disk permissions and free space.",
            ) from e

        logger.info("Validation report saved: %s", final_path)
        return final_path


# ----------------------------
# THIN FACADE (static script call)
# ----------------------------
def validate_dataset(
    clients: Sequence[Any],
    workers: Sequence[Any],
    tasks: Sequence[Any],
    rules: Sequence[Any] | None = None,
    cfg: Config | None = None,
    *,
    write_report: bool | None = None,
    out_dir: Path | None = None,
    filename: str = "validation_report.json",
) -> dict[str, Any]:
    """
    @brief
    High-level convenience wrapper: full pass, report, optional write.

    @details
    `write_report=None` defers to `cfg.validation.write_report`. The
    in-memory report is always returned.
    """
    validator = Validator(clients, workers, tasks, rules, cfg)
    validator.run_all_checks()
    report = validator.build_report()

    should_write = validator.cfg.validation.write_report if write_report is None else write_report
    if should_write:
        validator.save_report(report, out_dir=out_dir, filename=filename)

    return report


__all__ = [
    "ValidationContext",
    "Validator",
    "blocking_findings",
    "has_blocking_errors",
    "validate_all",
    "validate_change",
    "validate_dataset",
]
