"""
@brief
Pydantic data models for the Alchemist validation engine.

@details
Defines the canonical model types:
    - Client, Worker, Task: entity records uploaded as spreadsheets
    - Finding: one validation result (type, message, location, severity)
    - Config: runtime configuration (from config.yaml)

Entity fields use snake_case names and carry the spreadsheet column name as
alias, so `model_dump(by_alias=True)` yields the column-keyed record the
validators and exporters operate on.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from alchemist.schemas.normalize import decode_attributes, normalize_int_list, normalize_str_list


class _StrictBaseModel(BaseModel):
    """
    @brief
    Base model enforcing strict defaults for configuration and report contracts.

    @details
    Forbids unknown fields and preserves exact naming rules.
    """

    model_config = {
        "extra": "forbid",  # Reject unknown fields
        "populate_by_name": True,  # Allow population by field name
        "use_enum_values": True,  # Export raw enum values
    }


class _EntityBaseModel(BaseModel):
    """
    @brief
    Base model for uploaded entity records.

    @details
    Spreadsheets routinely carry extra columns, so unknown keys are ignored
    rather than rejected. Population works by column alias or field name.
    """

    model_config = {
        "extra": "ignore",
        "populate_by_name": True,
    }


class EntityKind(str, Enum):
    CLIENT = "client"
    WORKER = "worker"
    TASK = "task"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class FindingType(str, Enum):
    MISSING_COLUMN = "missing_column"
    DUPLICATE_ID = "duplicate_id"
    MALFORMED_ARRAY = "malformed_array"
    MALFORMED_NUMBER = "malformed_number"
    OUT_OF_RANGE = "out_of_range"
    BROKEN_JSON = "broken_json"
    UNKNOWN_REFERENCE = "unknown_reference"
    CIRCULAR_DEPENDENCY = "circular_dependency"
    SKILL_COVERAGE_GAP = "skill_coverage_gap"
    PHASE_AVAILABILITY_MISMATCH = "phase_availability_mismatch"
    RULE_CONFLICT = "rule_conflict"
    RULE_CAPACITY_MISMATCH = "rule_capacity_mismatch"
    OVERLOADED_WORKER = "overloaded_worker"
    PHASE_SATURATION = "phase_saturation"
    SKILL_COVERAGE = "skill_coverage"
    MAX_CONCURRENCY = "max_concurrency"
    INVALID_PHASE = "invalid_phase"


# ------------------------------------------------------------
# Entities
# ------------------------------------------------------------
class Client(_EntityBaseModel):
    """
    @brief
    One client record (clients sheet).

    @details
    AttributesJSON may arrive as a JSON string. Text that does not decode to
    an object leaves `attributes_json` empty and is kept in
    `attributes_source` (never serialized) so the BrokenJSON check can
    report it on the next validation pass.
    """

    client_id: str = Field(..., alias="ClientID", description="Unique identifier")
    client_name: str = Field(..., alias="ClientName")
    # bounds come from ValidationConfig and are checked by check_out_of_range
    priority_level: int = Field(..., alias="PriorityLevel")
    requested_task_ids: list[str] = Field(..., alias="RequestedTaskIDs")
    group_tag: str = Field(..., alias="GroupTag")
    attributes_json: dict[str, Any] = Field(..., alias="AttributesJSON")
    attributes_source: str | None = Field(None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _decode_attributes(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        key = "AttributesJSON" if "AttributesJSON" in data else "attributes_json"
        if key not in data:
            return data
        decoded, source = decode_attributes(data[key])
        out = dict(data)
        out[key] = decoded
        if source is not None:
            out["attributes_source"] = source
        return out

    @field_validator("requested_task_ids", mode="before")
    @classmethod
    def _split_task_ids(cls, v: Any) -> Any:
        return normalize_str_list(v)


class Worker(_EntityBaseModel):
    """One worker record (workers sheet)."""

    worker_id: str = Field(..., alias="WorkerID", description="Unique identifier")
    worker_name: str = Field(..., alias="WorkerName")
    skills: list[str] = Field(..., alias="Skills")
    available_slots: list[int] = Field(..., alias="AvailableSlots")
    max_load_per_phase: int = Field(..., alias="MaxLoadPerPhase")
    worker_group: str = Field(..., alias="WorkerGroup")
    qualification_level: int = Field(..., alias="QualificationLevel")

    @field_validator("skills", mode="before")
    @classmethod
    def _split_skills(cls, v: Any) -> Any:
        return normalize_str_list(v)

    @field_validator("available_slots", mode="before")
    @classmethod
    def _normalize_slots(cls, v: Any) -> Any:
        return normalize_int_list(v)


class Task(_EntityBaseModel):
    """One task record (tasks sheet). Duration counts phases and is at least 1."""

    task_id: str = Field(..., alias="TaskID", description="Unique identifier")
    task_name: str = Field(..., alias="TaskName")
    category: str = Field(..., alias="Category")
    duration: int = Field(..., ge=1, alias="Duration")
    required_skills: list[str] = Field(..., alias="RequiredSkills")
    preferred_phases: list[int] = Field(..., alias="PreferredPhases")
    max_concurrent: int = Field(..., alias="MaxConcurrent")

    @field_validator("required_skills", mode="before")
    @classmethod
    def _split_skills(cls, v: Any) -> Any:
        return normalize_str_list(v)

    @field_validator("preferred_phases", mode="before")
    @classmethod
    def _normalize_phases(cls, v: Any) -> Any:
        return normalize_int_list(v)


ENTITY_MODELS: dict[EntityKind, type[_EntityBaseModel]] = {
    EntityKind.CLIENT: Client,
    EntityKind.WORKER: Worker,
    EntityKind.TASK: Task,
}


@dataclass(frozen=True)
class EntityColumns:
    """Column contract of one entity sheet, as consumed by the field-level checks."""

    id_column: str
    required: tuple[str, ...]
    array_columns: tuple[str, ...]
    numeric_columns: tuple[str, ...]


ENTITY_COLUMNS: dict[EntityKind, EntityColumns] = {
    EntityKind.CLIENT: EntityColumns(
        id_column="ClientID",
        required=(
            "ClientID",
            "ClientName",
            "PriorityLevel",
            "RequestedTaskIDs",
            "GroupTag",
            "AttributesJSON",
        ),
        array_columns=("RequestedTaskIDs",),
        numeric_columns=("PriorityLevel",),
    ),
    EntityKind.WORKER: EntityColumns(
        id_column="WorkerID",
        required=(
            "WorkerID",
            "WorkerName",
            "Skills",
            "AvailableSlots",
            "MaxLoadPerPhase",
            "WorkerGroup",
            "QualificationLevel",
        ),
        array_columns=("Skills", "AvailableSlots"),
        numeric_columns=("MaxLoadPerPhase", "QualificationLevel"),
    ),
    EntityKind.TASK: EntityColumns(
        id_column="TaskID",
        required=(
            "TaskID",
            "TaskName",
            "Category",
            "Duration",
            "RequiredSkills",
            "PreferredPhases",
            "MaxConcurrent",
        ),
        array_columns=("RequiredSkills", "PreferredPhases"),
        numeric_columns=("Duration", "MaxConcurrent"),
    ),
}


# ------------------------------------------------------------
# Findings
# ------------------------------------------------------------
class Finding(_StrictBaseModel):
    """
    @brief
    A single validation result.

    @details
    Findings are pure values: equality is by content, they are regenerated
    wholesale on every pass and never diffed. `row_index`/`column_id`
    locate the offending grid cell when the problem belongs to one row.
    """

    model_config = {**_StrictBaseModel.model_config, "frozen": True}

    type: FindingType
    message: str
    row_index: int | None = Field(None, alias="rowIndex")
    column_id: str | None = Field(None, alias="columnId")
    severity: Severity
    suggestion: str | None = None

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ------------------------------------------------------------
# Runtime configuration
# ------------------------------------------------------------
class ValidationConfig(_StrictBaseModel):
    """
    @brief
    Controls behavior of the validation subsystem.

    @details
    Holds the inclusive value ranges enforced by the range checks and the
    report switches used by the orchestrator facade.
    """

    priority_min: int = Field(1, description="Lowest allowed PriorityLevel")
    priority_max: int = Field(5, description="Highest allowed PriorityLevel")
    phase_min: int = Field(1, description="First valid phase number")
    phase_max: int = Field(10, description="Last valid phase number")
    write_report: bool = True
    fail_on_warnings: bool = False

    @model_validator(mode="after")
    def _check_bounds(self) -> ValidationConfig:
        if self.priority_min > self.priority_max:
            raise ValueError("priority_min must not exceed priority_max")
        if self.phase_min > self.phase_max:
            raise ValueError("phase_min must not exceed phase_max")
        return self


class ExportConfig(_StrictBaseModel):
    """Controls the configuration package written by the export step."""

    application: str = "Data Alchemist"
    version: str = "1.0.0"
    config_filename: str = "allocation_config.json"
    timestamp_files: bool = Field(
        False, description="Append an export timestamp to every written filename"
    )


class Config(_StrictBaseModel):
    """
    @brief
    Represents the full runtime configuration loaded from config.yaml.
    """

    output_dir: str | None = "data/output"
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)


__all__ = [
    "Client",
    "Config",
    "ENTITY_COLUMNS",
    "ENTITY_MODELS",
    "EntityColumns",
    "EntityKind",
    "ExportConfig",
    "Finding",
    "FindingType",
    "Severity",
    "Task",
    "ValidationConfig",
    "Worker",
]
