"""
@brief
Entity parse operations: loose record -> typed entity or ParseFailure.

@details
Records fresh from a spreadsheet are all string-valued. Parsing applies the
list/JSON normalizers of the schemas and pydantic's lax coercion. A record
that still fails yields a ParseFailure with one human-readable reason per
field instead of raising.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from alchemist.errors import DataError
from alchemist.schemas.models import ENTITY_MODELS, Client, EntityKind, Task, Worker

# Reasons for the checks users hit most often on upload
_FIELD_REASONS: dict[str, str] = {
    "PriorityLevel": "PriorityLevel must be an integer",
    "Duration": "Duration must be a positive integer",
    "MaxLoadPerPhase": "MaxLoadPerPhase must be an integer",
    "QualificationLevel": "QualificationLevel must be an integer",
    "MaxConcurrent": "MaxConcurrent must be an integer",
    "AvailableSlots": "AvailableSlots must be a list of phase numbers",
    "PreferredPhases": "PreferredPhases must be a list of phase numbers",
}


@dataclass(frozen=True)
class ParseFailure:
    """
    Structured parse failure for one record.

    Fields:
        kind: Entity kind the record was parsed as.
        reasons: One message per offending field.
        fields: Column names matching `reasons`, in the same order.
    """

    kind: EntityKind
    reasons: list[str] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)


def _coerce_kind(kind: EntityKind | str) -> EntityKind:
    try:
        return EntityKind(kind)
    except ValueError as e:
        raise DataError(
            message=f"Unknown entity kind: {kind!r}",
            source="parsing._coerce_kind",
            suggested_action="Use one of: client, worker, task.",
        ) from e


def _failure_from(kind: EntityKind, exc: ValidationError) -> ParseFailure:
    reasons: list[str] = []
    fields: list[str] = []
    for err in exc.errors():
        loc = err.get("loc") or ()
        column = str(loc[0]) if loc else "<record>"
        if err.get("type") == "missing":
            reason = f"{column} is required"
        else:
            reason = _FIELD_REASONS.get(column, f"{column}: {err.get('msg', 'invalid value')}")
        if column in fields and reason in reasons:
            continue
        fields.append(column)
        reasons.append(reason)
    return ParseFailure(kind=kind, reasons=reasons, fields=fields)


def parse_entity(kind: EntityKind | str, raw: Mapping[str, Any]) -> BaseModel | ParseFailure:
    """
    @brief
    Parse one loosely typed record as the given entity kind.

    @returns
        A Client, Worker or Task instance, or a ParseFailure.

    @raises
        DataError
            Raised for an unknown kind or a non-mapping record (caller bugs).
    """
    entity_kind = _coerce_kind(kind)
    if isinstance(raw, BaseModel):
        raw = to_record(raw)
    if not isinstance(raw, Mapping):
        raise DataError(
            message=f"Record must be a mapping, got {type(raw).__name__}",
            source="parsing.parse_entity",
            suggested_action="Pass each row as a dict keyed by column name.",
        )

    model = ENTITY_MODELS[entity_kind]
    try:
        return model.model_validate(dict(raw))
    except ValidationError as e:
        return _failure_from(entity_kind, e)


def parse_client(raw: Mapping[str, Any]) -> Client | ParseFailure:
    return parse_entity(EntityKind.CLIENT, raw)  # type: ignore[return-value]


def parse_worker(raw: Mapping[str, Any]) -> Worker | ParseFailure:
    return parse_entity(EntityKind.WORKER, raw)  # type: ignore[return-value]


def parse_task(raw: Mapping[str, Any]) -> Task | ParseFailure:
    return parse_entity(EntityKind.TASK, raw)  # type: ignore[return-value]


def to_record(entity: Any) -> dict[str, Any]:
    """
    @brief
    Column-keyed view of an entity for the validators.

    @details
    Models are dumped by alias. A Client whose AttributesJSON text failed to
    decode exposes that original text again, so BrokenJSON sees the field
    still string-typed. Plain mappings are shallow-copied.
    """
    if isinstance(entity, Client):
        record = entity.model_dump(by_alias=True)
        if entity.attributes_source is not None:
            record["AttributesJSON"] = entity.attributes_source
        return record
    if isinstance(entity, BaseModel):
        return entity.model_dump(by_alias=True)
    if isinstance(entity, Mapping):
        return dict(entity)
    raise DataError(
        message=f"Unsupported entity record type: {type(entity).__name__}",
        source="parsing.to_record",
        suggested_action="Pass entity models or dicts keyed by column name.",
    )


__all__ = [
    "ParseFailure",
    "parse_client",
    "parse_entity",
    "parse_task",
    "parse_worker",
    "to_record",
]
