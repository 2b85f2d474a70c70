"""Reference validation."""

from validate.validator import (
    ReferenceOutcome,
    ValidationContext,
    ValidationReport,
    validate_documents,
    validate_reference,
)

__all__ = [
    "ReferenceOutcome",
    "ValidationContext",
    "ValidationReport",
    "validate_documents",
    "validate_reference",
]
