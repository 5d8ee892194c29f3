from alchemist.validator.sequencing import PassSequencer
from alchemist.validator.validator import (
    ValidationContext,
    Validator,
    blocking_findings,
    has_blocking_errors,
    validate_all,
    validate_change,
    validate_dataset,
)

__all__ = [
    "PassSequencer",
    "ValidationContext",
    "Validator",
    "blocking_findings",
    "has_blocking_errors",
    "validate_all",
    "validate_change",
    "validate_dataset",
]
