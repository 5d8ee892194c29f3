# src/alchemist/validator/reference_checks.py
"""
@brief
Cross-entity reference and capacity checks.

@details
These checks join two or three collections: client requests against the
task list, task skill demands against the worker pool, and per-phase
demand against per-phase worker capacity. Values of the wrong shape are
skipped here; the field-level checks report them.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from alchemist.schemas.models import Finding, FindingType, Severity
from alchemist.schemas.rules import LoadLimitRule, PhaseWindowRule
from alchemist.validator.records import (
    as_records,
    fmt_number,
    list_value,
    make_finding,
    number_value,
)


# ----------------------------
# AUXILIARY FUNCTIONS
# ----------------------------
def _scalars(values: Iterable[Any] | None) -> list[Any]:
    """Drop unhashable entries (nested lists, dicts) from a loose list cell."""
    return [v for v in values or () if isinstance(v, (str, int, float))]


def _worker_skills(workers: list[dict[str, Any]]) -> list[set[str]]:
    return [set(_scalars(list_value(w, "Skills"))) for w in workers]


def _qualified_count(required: list[Any], skill_sets: list[set[str]]) -> int:
    """Workers holding at least one of the required skills."""
    wanted = set(_scalars(required))
    return sum(1 for skills in skill_sets if skills & wanted)


def _phase_totals(
    records: list[dict[str, Any]], list_column: str, value_column: str | None
) -> dict[Any, float]:
    """
    @brief
    Sum a per-record amount over every phase listed in `list_column`.

    @details
    With `value_column=None` every record counts 1 per phase. Records with
    a non-list phase column contribute nothing; a non-numeric amount
    counts as 0. Insertion order follows first appearance of each phase.
    """
    totals: dict[Any, float] = {}
    for record in records:
        phases = list_value(record, list_column)
        if phases is None:
            continue
        amount = 1 if value_column is None else (number_value(record, value_column) or 0)
        for phase in _scalars(phases):
            totals[phase] = totals.get(phase, 0) + amount
    return totals


# ----------------------------
# CHECKS
# ----------------------------
def check_unknown_refs(clients: Iterable[Any], tasks: Iterable[Any]) -> list[Finding]:
    """Every RequestedTaskIDs entry must name an existing TaskID."""
    known = set(_scalars(t.get("TaskID") for t in as_records(tasks)))
    findings: list[Finding] = []

    for index, client in enumerate(as_records(clients)):
        for task_id in list_value(client, "RequestedTaskIDs") or ():
            if isinstance(task_id, (str, int, float)) and task_id in known:
                continue
            findings.append(
                make_finding(
                    FindingType.UNKNOWN_REFERENCE,
                    f"Client references unknown task: {task_id}",
                    Severity.ERROR,
                    row_index=index,
                    column_id="RequestedTaskIDs",
                    suggestion=f"Remove {task_id} or ensure task exists in tasks data",
                )
            )
    return findings


def check_skill_coverage(tasks: Iterable[Any], workers: Iterable[Any]) -> list[Finding]:
    """
    @brief
    Every required skill must be held by at least one worker.

    @details
    Builds the union of all worker skills and reports, per task, the
    required skills outside that union in one finding.
    """
    available: set[str] = set()
    for skills in _worker_skills(as_records(workers)):
        available |= skills

    findings: list[Finding] = []
    for index, task in enumerate(as_records(tasks)):
        required = list_value(task, "RequiredSkills")
        if required is None:
            continue
        uncovered = [
            s for s in required if not isinstance(s, (str, int, float)) or s not in available
        ]
        if uncovered:
            joined = ", ".join(str(s) for s in uncovered)
            findings.append(
                make_finding(
                    FindingType.SKILL_COVERAGE,
                    f"Task {task.get('TaskID')} requires skills not available: {joined}",
                    Severity.ERROR,
                    row_index=index,
                    column_id="RequiredSkills",
                    suggestion=f"Add workers with skills: {joined} or modify required skills",
                )
            )
    return findings


def check_max_concurrency(tasks: Iterable[Any], workers: Iterable[Any]) -> list[Finding]:
    """MaxConcurrent should not exceed the number of workers sharing a required skill."""
    skill_sets = _worker_skills(as_records(workers))
    findings: list[Finding] = []

    for index, task in enumerate(as_records(tasks)):
        max_concurrent = number_value(task, "MaxConcurrent")
        required = list_value(task, "RequiredSkills")
        if not max_concurrent or required is None:
            continue
        qualified = _qualified_count(required, skill_sets)
        if qualified < max_concurrent:
            findings.append(
                make_finding(
                    FindingType.MAX_CONCURRENCY,
                    (
                        f"Task {task.get('TaskID')} MaxConcurrent ({fmt_number(max_concurrent)}) "
                        f"exceeds qualified workers ({qualified})"
                    ),
                    Severity.WARNING,
                    row_index=index,
                    column_id="MaxConcurrent",
                    suggestion=(
                        f"Reduce MaxConcurrent to {qualified} or add more qualified workers"
                    ),
                )
            )
    return findings


def check_phase_slot_saturation(tasks: Iterable[Any], workers: Iterable[Any]) -> list[Finding]:
    """
    @brief
    Per-phase task demand must not exceed per-phase worker capacity.

    @details
    Capacity of a phase = Σ MaxLoadPerPhase of workers listing it in
    AvailableSlots. Demand of a phase = Σ Duration of tasks listing it in
    PreferredPhases. Findings are not tied to a row and follow the order
    in which phases first appear in the task list.
    """
    capacity = _phase_totals(as_records(workers), "AvailableSlots", "MaxLoadPerPhase")
    demand = _phase_totals(as_records(tasks), "PreferredPhases", "Duration")

    findings: list[Finding] = []
    for phase, required in demand.items():
        available = capacity.get(phase, 0)
        if required > available:
            findings.append(
                make_finding(
                    FindingType.PHASE_SATURATION,
                    (
                        f"Phase {phase} is oversaturated: demand {fmt_number(required)}, "
                        f"capacity {fmt_number(available)}"
                    ),
                    Severity.WARNING,
                    suggestion=f"Add more workers for phase {phase} or reduce task durations",
                )
            )
    return findings


def check_cross_entity_relationships(
    clients: Iterable[Any],
    workers: Iterable[Any],
    tasks: Iterable[Any],
    rules: Iterable[Any],
) -> list[Finding]:
    """
    @brief
    Composite client/worker/task/rule consistency check.

    @details
    Runs, in order:
      (a) requested tasks no worker is qualified for (skill_coverage_gap);
      (b) preferred phases with fewer available workers than MaxConcurrent
          (phase_availability_mismatch);
      (c) phase-window rules disjoint from the task's PreferredPhases
          (rule_conflict);
      (d) load-limit rules above the summed MaxLoadPerPhase of the group
          (rule_capacity_mismatch).
    """
    client_records = as_records(clients)
    worker_records = as_records(workers)
    task_records = as_records(tasks)
    rule_list = list(rules or ())

    findings: list[Finding] = []
    findings.extend(_skill_gaps(client_records, worker_records, task_records))
    findings.extend(_phase_availability(worker_records, task_records))
    findings.extend(_phase_window_conflicts(rule_list, task_records))
    findings.extend(_load_limit_capacity(rule_list, worker_records))
    return findings


def _first_by_id(records: list[dict[str, Any]], id_column: str) -> dict[Any, dict[str, Any]]:
    index: dict[Any, dict[str, Any]] = {}
    for record in records:
        key = record.get(id_column)
        if isinstance(key, str) and key not in index:
            index[key] = record
    return index


def _skill_gaps(
    clients: list[dict[str, Any]], workers: list[dict[str, Any]], tasks: list[dict[str, Any]]
) -> list[Finding]:
    # (a) client -> task -> worker skill chain
    tasks_by_id = _first_by_id(tasks, "TaskID")
    skill_sets = _worker_skills(workers)
    findings: list[Finding] = []

    for index, client in enumerate(clients):
        for task_id in list_value(client, "RequestedTaskIDs") or ():
            task = tasks_by_id.get(task_id) if isinstance(task_id, str) else None
            if task is None:
                continue  # reported by check_unknown_refs
            required = list_value(task, "RequiredSkills") or []
            if _qualified_count(required, skill_sets) > 0:
                continue
            joined = ", ".join(str(s) for s in required)
            findings.append(
                make_finding(
                    FindingType.SKILL_COVERAGE_GAP,
                    (
                        f"Client {client.get('ClientID')} requests task {task_id} "
                        f"but no workers have required skills: {joined}"
                    ),
                    Severity.ERROR,
                    row_index=index,
                    column_id="RequestedTaskIDs",
                    suggestion=f"Add workers with skills: {joined} or modify task requirements",
                )
            )
    return findings


def _phase_availability(
    workers: list[dict[str, Any]], tasks: list[dict[str, Any]]
) -> list[Finding]:
    # (b) available workers per phase vs. task MaxConcurrent
    workers_per_phase = _phase_totals(workers, "AvailableSlots", None)
    findings: list[Finding] = []

    for index, task in enumerate(tasks):
        phases = list_value(task, "PreferredPhases")
        if phases is None:
            continue
        max_concurrent = number_value(task, "MaxConcurrent") or 0
        short = [
            p
            for p in _scalars(phases)
            if p not in workers_per_phase or workers_per_phase[p] < max_concurrent
        ]
        if short:
            joined = ", ".join(str(p) for p in short)
            findings.append(
                make_finding(
                    FindingType.PHASE_AVAILABILITY_MISMATCH,
                    (
                        f"Task {task.get('TaskID')} prefers phases {joined} "
                        f"but insufficient workers available"
                    ),
                    Severity.WARNING,
                    row_index=index,
                    column_id="PreferredPhases",
                    suggestion=(
                        f"Adjust preferred phases or add more workers for phases: {joined}"
                    ),
                )
            )
    return findings


def _phase_window_conflicts(rules: list[Any], tasks: list[dict[str, Any]]) -> list[Finding]:
    # (c) phase-window rule vs. task preference
    tasks_by_id = _first_by_id(tasks, "TaskID")
    findings: list[Finding] = []

    for rule in rules:
        if not isinstance(rule, PhaseWindowRule):
            continue
        task = tasks_by_id.get(rule.task)
        preferred = list_value(task, "PreferredPhases") if task is not None else None
        if preferred is None:
            continue
        if not set(_scalars(preferred)) & set(rule.phases):
            findings.append(
                make_finding(
                    FindingType.RULE_CONFLICT,
                    f"Phase window rule conflicts with task {rule.task} preferred phases",
                    Severity.WARNING,
                    suggestion=(
                        "Adjust phase window rule or task preferred phases to resolve conflict"
                    ),
                )
            )
    return findings


def _load_limit_capacity(rules: list[Any], workers: list[dict[str, Any]]) -> list[Finding]:
    # (d) load-limit rule vs. summed group capacity
    findings: list[Finding] = []

    for rule in rules:
        if not isinstance(rule, LoadLimitRule) or not rule.max_slots_per_phase:
            continue
        capacity = sum(
            number_value(w, "MaxLoadPerPhase") or 0
            for w in workers
            if w.get("WorkerGroup") == rule.worker_group
        )
        if capacity < rule.max_slots_per_phase:
            findings.append(
                make_finding(
                    FindingType.RULE_CAPACITY_MISMATCH,
                    (
                        f"Load limit rule for group {rule.worker_group} exceeds actual "
                        f"worker capacity ({rule.max_slots_per_phase} > {fmt_number(capacity)})"
                    ),
                    Severity.WARNING,
                    suggestion=(
                        f"Reduce maxSlotsPerPhase to {fmt_number(capacity)} "
                        f"or add more workers to group"
                    ),
                )
            )
    return findings


__all__ = [
    "check_cross_entity_relationships",
    "check_max_concurrency",
    "check_phase_slot_saturation",
    "check_skill_coverage",
    "check_unknown_refs",
]
