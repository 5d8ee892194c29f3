from alchemist.schemas.models import (
    Client,
    Config,
    EntityKind,
    Finding,
    FindingType,
    Severity,
    Task,
    Worker,
)
from alchemist.schemas.parsing import (
    ParseFailure,
    parse_client,
    parse_entity,
    parse_task,
    parse_worker,
)
from alchemist.schemas.rules import parse_rule, parse_rules

__all__ = [
    "Client",
    "Config",
    "EntityKind",
    "Finding",
    "FindingType",
    "ParseFailure",
    "Severity",
    "Task",
    "Worker",
    "parse_client",
    "parse_entity",
    "parse_rule",
    "parse_rules",
    "parse_task",
    "parse_worker",
]
