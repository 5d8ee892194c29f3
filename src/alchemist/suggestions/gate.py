# src/alchemist/suggestions/gate.py
"""
@brief
Funnel for externally suggested rules and record corrections.

@details
Suggestion sources (an LLM helper, a heuristic, a human reviewer) are
advisory. Whatever they return goes through the same parse step as an
upload and then through the full validation pass over the dataset as it
would look after applying the candidate. Nothing is applied to the
caller's data here; the caller decides based on the returned review.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from alchemist.errors import RuleError, SuggestionError
from alchemist.schemas.models import EntityKind, Finding, ValidationConfig
from alchemist.schemas.parsing import ParseFailure, parse_entity
from alchemist.schemas.rules import rule_from_suggestion
from alchemist.validator.validator import (
    ValidationContext,
    blocking_findings,
    validate_all,
)

logger = logging.getLogger(__name__)


class SuggestionSource(Protocol):
    """Anything that proposes a candidate (rule or record) for a context."""

    def suggest(self, context: Mapping[str, Any]) -> Mapping[str, Any]: ...


@dataclass(slots=True)
class SuggestionReview:
    """
    Outcome of re-validating one candidate.

    Fields:
        candidate: The parsed rule or entity, or None if it did not parse.
        accepted: True when the candidate parsed and the resulting dataset
                  has no blocking findings.
        findings: Full-pass findings for the dataset with the candidate applied.
        reasons: Parse problems that prevented evaluation.
    """

    candidate: Any = None
    accepted: bool = False
    findings: list[Finding] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)


class SuggestionGate:
    """
    @brief
    Re-validates suggestions before a caller may accept them.
    """

    def __init__(self, context: ValidationContext, cfg: ValidationConfig | None = None) -> None:
        self.context = context
        self.cfg = cfg

    def request(self, source: SuggestionSource, prompt: Mapping[str, Any]) -> Mapping[str, Any]:
        """
        @brief
        Ask a source for a candidate, wrapping its failures.

        @raises
            SuggestionError
                Raised if the source fails or returns a non-mapping.
        """
        try:
            candidate = source.suggest(prompt)
        except Exception as e:
            raise SuggestionError(
                message=f"Suggestion source failed: {e}",
                source="SuggestionGate.request",
                suggested_action="Retry or continue without suggestions.",
            ) from e
        if not isinstance(candidate, Mapping):
            raise SuggestionError(
                message=f"Suggestion source returned {type(candidate).__name__}, expected mapping",
                source="SuggestionGate.request",
            )
        return candidate

    def review_rule(self, candidate: Mapping[str, Any]) -> SuggestionReview:
        """Parse a suggested rule and run the full pass with it appended."""
        try:
            rule = rule_from_suggestion(candidate)
        except RuleError as e:
            logger.info("Suggested rule rejected at parse: %s", e.args[0])
            return SuggestionReview(reasons=[str(e.args[0])])

        ctx = self.context
        findings = validate_all(
            ctx.clients, ctx.workers, ctx.tasks, [*ctx.rules, rule], self.cfg
        )
        return self._review(rule, findings)

    def review_correction(
        self, kind: EntityKind | str, row_index: int, candidate: Mapping[str, Any]
    ) -> SuggestionReview:
        """
        @brief
        Parse a suggested replacement for one row and run the full pass.

        @details
        `row_index` equal to the collection length appends a new row.
        """
        parsed = parse_entity(kind, candidate)
        if isinstance(parsed, ParseFailure):
            return SuggestionReview(reasons=list(parsed.reasons))

        entity_kind = EntityKind(kind)
        ctx = self.context
        collections = {
            EntityKind.CLIENT: list(ctx.clients),
            EntityKind.WORKER: list(ctx.workers),
            EntityKind.TASK: list(ctx.tasks),
        }
        target = collections[entity_kind]
        if not 0 <= row_index <= len(target):
            raise SuggestionError(
                message=f"Row {row_index} out of range for {entity_kind.value} collection",
                source="SuggestionGate.review_correction",
            )
        if row_index == len(target):
            target.append(parsed)
        else:
            target[row_index] = parsed

        findings = validate_all(
            collections[EntityKind.CLIENT],
            collections[EntityKind.WORKER],
            collections[EntityKind.TASK],
            ctx.rules,
            self.cfg,
        )
        return self._review(parsed, findings)

    def _review(self, candidate: Any, findings: list[Finding]) -> SuggestionReview:
        blocking = blocking_findings(findings)
        logger.info(
            "Suggestion re-validated: %d finding(s), %d blocking", len(findings), len(blocking)
        )
        return SuggestionReview(candidate=candidate, accepted=not blocking, findings=findings)


__all__ = ["SuggestionGate", "SuggestionReview", "SuggestionSource"]
