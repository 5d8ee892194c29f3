# src/alchemist/validator/rule_checks.py
"""
@brief
Rule graph analysis: co-run cycle detection and per-rule structural checks.

@details
Co-run rules are turned into a directed task graph and searched for
cycles. The remaining rule variants are checked for dangling references
and for internal consistency. Phase-window vs. task preference and
load-limit vs. group capacity conflicts are reported by
`check_cross_entity_relationships`, not here.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

from alchemist.schemas.models import Finding, FindingType, Severity
from alchemist.schemas.rules import (
    RULE_TYPES,
    CoRunRule,
    PatternMatchRule,
    PhaseWindowRule,
    PrecedenceOverrideRule,
    SlotRestrictionRule,
)
from alchemist.validator.records import as_records, list_value, make_finding

TaskGraph = dict[str, list[str]]


# ----------------------------
# CO-RUN GRAPH
# ----------------------------
def mutual_corun_edges(task_ids: Sequence[str]) -> list[tuple[str, str]]:
    """
    @brief
    Edges contributed by one co-run rule.

    @details
    Every ordered pair of distinct tasks becomes an edge, so each pair is
    linked in both directions (A->B and B->A). As a consequence any rule
    naming two or more tasks forms a 2-cycle and is reported as circular.
    Changing how co-run rules relate tasks is a change to this function only.
    """
    unique = list(dict.fromkeys(task_ids))
    return [(a, b) for a in unique for b in unique if a != b]


def build_corun_graph(rules: Iterable[Any]) -> TaskGraph:
    """Adjacency lists over all co-run rules; nodes keep first-mention order."""
    graph: TaskGraph = {}
    for rule in rules:
        if not isinstance(rule, CoRunRule):
            continue
        for task_id in rule.tasks:
            graph.setdefault(task_id, [])
        for src, dst in mutual_corun_edges(rule.tasks):
            if dst not in graph[src]:
                graph[src].append(dst)
    return graph


def find_cycles(graph: TaskGraph) -> list[list[str]]:
    """
    @brief
    Depth-first cycle search with an explicit recursion stack.

    @details
    Starts a traversal from every node not yet visited, in graph order.
    Reaching a node that is still on the active stack closes a cycle;
    at most one cycle is recorded per traversal root. Each cycle is
    returned as the node path starting and ending at the node where the
    back edge was detected.
    """
    visited: set[str] = set()
    cycles: list[list[str]] = []

    for root in graph:
        if root in visited:
            continue

        # (1) Iterative DFS: stack of (node, iterator over its neighbours)
        path: list[str] = [root]
        on_path: set[str] = {root}
        iters = [iter(graph.get(root, ()))]
        visited.add(root)

        while iters:
            nxt = next(iters[-1], None)
            if nxt is None:
                on_path.discard(path.pop())
                iters.pop()
                continue

            # (2) Back edge to a node on the active stack -> cycle
            if nxt in on_path:
                start = path.index(nxt)
                cycles.append(path[start:] + [nxt])
                break

            if nxt in visited:
                continue

            visited.add(nxt)
            path.append(nxt)
            on_path.add(nxt)
            iters.append(iter(graph.get(nxt, ())))
    return cycles


def detect_circular_dependencies(rules: Iterable[Any]) -> list[Finding]:
    """One circular_dependency error per detected co-run cycle."""
    findings: list[Finding] = []
    for cycle in find_cycles(build_corun_graph(rules)):
        findings.append(
            make_finding(
                FindingType.CIRCULAR_DEPENDENCY,
                (
                    f"Circular dependency detected involving task: {cycle[0]} "
                    f"({' -> '.join(cycle)})"
                ),
                Severity.ERROR,
                suggestion="Review co-run rules to eliminate circular dependencies",
            )
        )
    return findings


# ----------------------------
# STRUCTURAL / CONSISTENCY CHECKS
# ----------------------------
def check_rule_conflicts(
    rules: Iterable[Any],
    tasks: Iterable[Any],
    workers: Iterable[Any],
    phase_min: int = 1,
    phase_max: int = 10,
) -> list[Finding]:
    """
    @brief
    Validate every rule against the dataset and the rest of the rule list.

    @details
    Findings follow rule order. Per variant:
      - CoRun / PhaseWindow: referenced TaskIDs must exist;
      - PhaseWindow: phases must lie in [phase_min, phase_max];
      - SlotRestriction: workers of the group must share at least
        `minCommonSlots` available slots;
      - PatternMatch: regex must compile and template must be a rule type;
      - PrecedenceOverride: target rule id must exist among the rules.
    LoadLimit rules have no structural constraints beyond their schema.
    """
    rule_list = list(rules or ())
    task_ids = {t.get("TaskID") for t in as_records(tasks) if isinstance(t.get("TaskID"), str)}
    worker_records = as_records(workers)
    rule_ids = {r.id for r in rule_list if getattr(r, "id", None)}

    findings: list[Finding] = []
    for position, rule in enumerate(rule_list):
        label = rule.id or f"#{position + 1}"

        if isinstance(rule, CoRunRule):
            findings.extend(_unknown_tasks(label, rule.type, rule.tasks, task_ids))

        elif isinstance(rule, PhaseWindowRule):
            findings.extend(_unknown_tasks(label, rule.type, [rule.task], task_ids))
            bad = [p for p in rule.phases if not phase_min <= p <= phase_max]
            if bad:
                findings.append(
                    make_finding(
                        FindingType.INVALID_PHASE,
                        (
                            f"Phase window rule {label} uses invalid phases: "
                            f"{', '.join(str(p) for p in bad)}"
                        ),
                        Severity.ERROR,
                        suggestion=f"Phases must be numbers between {phase_min} and {phase_max}",
                    )
                )

        elif isinstance(rule, SlotRestrictionRule):
            finding = _slot_restriction(label, rule, worker_records)
            if finding is not None:
                findings.append(finding)

        elif isinstance(rule, PatternMatchRule):
            findings.extend(_pattern_match(label, rule))

        elif isinstance(rule, PrecedenceOverrideRule):
            if rule.target_rule not in rule_ids:
                findings.append(
                    make_finding(
                        FindingType.UNKNOWN_REFERENCE,
                        f"Precedence override {label} targets unknown rule: {rule.target_rule}",
                        Severity.ERROR,
                        suggestion="Point targetRule at the id of an existing rule",
                    )
                )

    return findings


def _unknown_tasks(
    label: str, rule_type: str, referenced: Sequence[str], known: set[str]
) -> list[Finding]:
    return [
        make_finding(
            FindingType.UNKNOWN_REFERENCE,
            f"Rule {label} ({rule_type}) references unknown task: {task_id}",
            Severity.ERROR,
            suggestion=f"Remove {task_id} from the rule or add it to the tasks data",
        )
        for task_id in dict.fromkeys(referenced)
        if task_id not in known
    ]


def _slot_restriction(
    label: str, rule: SlotRestrictionRule, workers: list[dict[str, Any]]
) -> Finding | None:
    members = [w for w in workers if w.get("WorkerGroup") == rule.group]
    if not members:
        return make_finding(
            FindingType.UNKNOWN_REFERENCE,
            f"Slot restriction rule {label} names a group with no workers: {rule.group}",
            Severity.WARNING,
            suggestion="Check the group name or assign workers to the group",
        )

    common: set[Any] | None = None
    for member in members:
        slots = {s for s in list_value(member, "AvailableSlots") or () if isinstance(s, int)}
        common = slots if common is None else common & slots

    shared = len(common or ())
    if shared < rule.min_common_slots:
        return make_finding(
            FindingType.RULE_CONFLICT,
            (
                f"Slot restriction rule {label} requires {rule.min_common_slots} common slots "
                f"for group {rule.group}, but its workers share {shared}"
            ),
            Severity.WARNING,
            suggestion=f"Lower minCommonSlots to {shared} or align the group's AvailableSlots",
        )
    return None


def _pattern_match(label: str, rule: PatternMatchRule) -> list[Finding]:
    findings: list[Finding] = []
    try:
        re.compile(rule.regex)
    except re.error as e:
        findings.append(
            make_finding(
                FindingType.RULE_CONFLICT,
                f"Pattern match rule {label} has an invalid regular expression: {e}",
                Severity.ERROR,
                suggestion="Fix the regex syntax",
            )
        )
    if rule.template not in RULE_TYPES:
        findings.append(
            make_finding(
                FindingType.UNKNOWN_REFERENCE,
                f"Pattern match rule {label} expands to unknown template: {rule.template}",
                Severity.ERROR,
                suggestion=f"Use one of the rule types: {', '.join(RULE_TYPES)}",
            )
        )
    return findings


__all__ = [
    "build_corun_graph",
    "check_rule_conflicts",
    "detect_circular_dependencies",
    "find_cycles",
    "mutual_corun_edges",
]
