"""
@brief
Business-rule model: a tagged union of six rule variants.

@details
Every rule carries a `type` tag (the discriminator), an optional `id` that
precedence overrides can point at, and a `priority` where 1 is highest.
Priority only orders application; conflicting rules may coexist and are
reported by the rule checks, never auto-resolved.

Rule payloads from the rules editor or from an external suggestion source
are loosely typed JSON; `parse_rule` is the single entry point that turns
them into a variant instance or raises `RuleError`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from alchemist.errors import RuleError
from alchemist.schemas.normalize import normalize_int_list, normalize_str_list


class _RuleBase(BaseModel):
    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
        "frozen": True,
    }

    id: str | None = Field(None, description="Identifier referenced by precedence overrides")
    priority: int = Field(1, ge=1, description="Application order, 1 = highest")


class CoRunRule(_RuleBase):
    """Tasks that must be scheduled together."""

    type: Literal["coRun"] = "coRun"
    tasks: list[str] = Field(..., min_length=1)

    @field_validator("tasks", mode="before")
    @classmethod
    def _split(cls, v: Any) -> Any:
        return normalize_str_list(v)


class SlotRestrictionRule(_RuleBase):
    """Members of `group` must share at least `min_common_slots` available slots."""

    type: Literal["slotRestriction"] = "slotRestriction"
    group: str
    min_common_slots: int = Field(..., ge=0, alias="minCommonSlots")


class LoadLimitRule(_RuleBase):
    """Caps the load units a worker group may take per phase."""

    type: Literal["loadLimit"] = "loadLimit"
    worker_group: str = Field(..., alias="workerGroup")
    max_slots_per_phase: int = Field(..., ge=0, alias="maxSlotsPerPhase")


class PhaseWindowRule(_RuleBase):
    """Restricts one task to an explicit list of phases."""

    type: Literal["phaseWindow"] = "phaseWindow"
    task: str
    phases: list[int]

    @field_validator("phases", mode="before")
    @classmethod
    def _normalize(cls, v: Any) -> Any:
        return normalize_int_list(v)


class PatternMatchRule(_RuleBase):
    """Expands every entity matching `regex` into a rule of type `template`."""

    type: Literal["patternMatch"] = "patternMatch"
    regex: str
    template: str
    params: dict[str, Any] = Field(default_factory=dict)


class PrecedenceOverrideRule(_RuleBase):
    """Raises `target_rule` above the others, globally or within its own scope."""

    type: Literal["precedenceOverride"] = "precedenceOverride"
    target_rule: str = Field(..., alias="targetRule")
    global_override: bool = Field(False, alias="global")


Rule = Annotated[
    Union[
        CoRunRule,
        SlotRestrictionRule,
        LoadLimitRule,
        PhaseWindowRule,
        PatternMatchRule,
        PrecedenceOverrideRule,
    ],
    Field(discriminator="type"),
]

RULE_TYPES: tuple[str, ...] = (
    "coRun",
    "slotRestriction",
    "loadLimit",
    "phaseWindow",
    "patternMatch",
    "precedenceOverride",
)

_RULE_ADAPTER: TypeAdapter[Any] = TypeAdapter(Rule)


def parse_rule(raw: Mapping[str, Any] | BaseModel) -> Any:
    """
    @brief
    Convert one loosely typed rule payload into its variant model.

    @raises
        RuleError
            Raised on an unknown `type` tag or a payload that does not match
            the variant's fields.
    """
    if isinstance(raw, _RuleBase):
        return raw
    if not isinstance(raw, Mapping):
        raise RuleError(
            message=f"Rule must be a mapping, got {type(raw).__name__}",
            source="rules.parse_rule",
            suggested_action="Pass rules as JSON objects with a 'type' field.",
        )
    try:
        return _RULE_ADAPTER.validate_python(dict(raw))
    except ValidationError as e:
        raise RuleError(
            message=f"Invalid rule {raw.get('type', '<missing type>')!r}: {e}",
            source="rules.parse_rule",
            suggested_action=f"Use one of the rule types: {', '.join(RULE_TYPES)}.",
        ) from e


def parse_rules(raws: Iterable[Mapping[str, Any] | BaseModel]) -> list[Any]:
    return [parse_rule(r) for r in raws]


def rule_from_suggestion(candidate: Mapping[str, Any]) -> Any:
    """
    @brief
    Convert a suggested rule of shape {"type": ..., "parameters": {...}}.

    @details
    Suggestion sources nest the variant fields under `parameters`; they are
    flattened next to the type tag before regular parsing. A flat payload
    is accepted as-is.
    """
    if not isinstance(candidate, Mapping):
        raise RuleError(
            message="Suggested rule must be a mapping",
            source="rules.rule_from_suggestion",
        )
    params = candidate.get("parameters")
    if isinstance(params, Mapping):
        flat = {k: v for k, v in candidate.items() if k not in ("parameters", "description")}
        flat.update(params)
        return parse_rule(flat)
    return parse_rule({k: v for k, v in candidate.items() if k != "description"})


def order_rules(rules: Sequence[Any]) -> list[Any]:
    """Stable sort by priority; rules sharing a priority keep their list order."""
    return sorted(rules, key=lambda r: r.priority)


def rule_to_dict(rule: Any) -> dict[str, Any]:
    return rule.model_dump(by_alias=True, exclude_none=True)


__all__ = [
    "CoRunRule",
    "LoadLimitRule",
    "PatternMatchRule",
    "PhaseWindowRule",
    "PrecedenceOverrideRule",
    "RULE_TYPES",
    "Rule",
    "SlotRestrictionRule",
    "order_rules",
    "parse_rule",
    "parse_rules",
    "rule_from_suggestion",
    "rule_to_dict",
]
