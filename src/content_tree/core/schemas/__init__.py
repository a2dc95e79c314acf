"""
Schemas Package

JSON schema definition for course records and the integrity passes.
"""

from .validator import (
    IntegrityError,
    IntegrityReport,
    ValidationError,
    check_ids,
    check_integrity,
    check_tracking_ids,
    validate_record,
)

__all__ = [
    "IntegrityError",
    "IntegrityReport",
    "ValidationError",
    "check_ids",
    "check_integrity",
    "check_tracking_ids",
    "validate_record",
]
