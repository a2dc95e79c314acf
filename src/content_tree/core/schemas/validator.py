"""
Record Validation Utilities

Validates flat course records before the tree is built from them.

Two layers:
- `validate_record()` checks one record on its own: basic required
  fields always, the full JSON schema (record.schema.json) in strict mode.
- `check_integrity()` checks the record set as a whole: the identity pass
  (duplicate, orphaned, missing and empty ids) and the tracking pass
  (missing and duplicate _trackingId values). Every violation is
  collected before a single IntegrityError is raised, so an author can
  fix all of them in one go.
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import jsonschema

from content_tree.config import DEFAULT_CONFIG, EngineConfig

logger = logging.getLogger(__name__)


# Load schemas lazily
_SCHEMAS: dict[str, dict] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    if name not in _SCHEMAS:
        schema_path = Path(__file__).parent / f"{name}.schema.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        with open(schema_path, "r", encoding="utf-8") as f:
            _SCHEMAS[name] = json.load(f)
    return _SCHEMAS[name]


class ValidationError(Exception):
    """Raised when data fails schema validation."""

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.errors = errors or []


class IntegrityError(ValidationError):
    """
    Raised when the record set breaks the tree invariants.

    Attributes:
        ids: Every offending id across the fatal categories, deduplicated
        duplicate_ids: _id values used by more than one record
        orphaned_ids: Records with a missing or unresolvable _parentId
        missing_ids: _parentId values that do not resolve to a record
        empty_ids: Containers without children (fatal only if configured)
        missing_tracking_ids: Tracking units without a _trackingId
        duplicate_tracking_ids: _trackingId -> ids of the records sharing it
        unidentified: Positions of non-course records without an _id
    """

    def __init__(self, message: str, report: IntegrityReport):
        super().__init__(message, path="", errors=report.describe())
        self.report = report
        self.duplicate_ids = report.duplicate_ids
        self.orphaned_ids = report.orphaned_ids
        self.missing_ids = report.missing_ids
        self.empty_ids = report.empty_ids
        self.missing_tracking_ids = report.missing_tracking_ids
        self.duplicate_tracking_ids = report.duplicate_tracking_ids
        self.unidentified = report.unidentified
        self.ids = report.offending_ids()


@dataclass
class IntegrityReport:
    """Violations found by the identity and tracking passes."""

    duplicate_ids: list[str] = field(default_factory=list)
    orphaned_ids: list[str] = field(default_factory=list)
    missing_ids: list[str] = field(default_factory=list)
    empty_ids: list[str] = field(default_factory=list)
    missing_tracking_ids: list[str] = field(default_factory=list)
    duplicate_tracking_ids: dict[str, list[str]] = field(default_factory=dict)
    unidentified: list[int] = field(default_factory=list)
    empty_is_fatal: bool = False

    @property
    def has_errors(self) -> bool:
        return bool(
            self.duplicate_ids
            or self.orphaned_ids
            or self.missing_ids
            or self.missing_tracking_ids
            or self.duplicate_tracking_ids
            or self.unidentified
            or (self.empty_is_fatal and self.empty_ids)
        )

    def offending_ids(self) -> list[str]:
        groups = [
            self.duplicate_ids,
            self.orphaned_ids,
            self.missing_ids,
            self.missing_tracking_ids,
            [record_id for ids in self.duplicate_tracking_ids.values() for record_id in ids],
        ]
        if self.empty_is_fatal:
            groups.append(self.empty_ids)
        ids: list[str] = []
        for group in groups:
            for record_id in group:
                if record_id not in ids:
                    ids.append(record_id)
        return ids

    def describe(self) -> list[str]:
        lines = []
        if self.orphaned_ids:
            lines.append(f"Orphaned _ids: {_join(self.orphaned_ids)}")
        if self.missing_ids:
            lines.append(f"Missing _ids: {_join(self.missing_ids)}")
        if self.empty_ids:
            lines.append(f"Empty _ids: {_join(self.empty_ids)}")
        if self.duplicate_ids:
            lines.append(f"Duplicate _ids: {_join(self.duplicate_ids)}")
        if self.unidentified:
            lines.append(f"Records without _id at positions: {_join(self.unidentified)}")
        if self.missing_tracking_ids:
            lines.append(f"Missing _trackingIds: {_join(self.missing_tracking_ids)}")
        if self.duplicate_tracking_ids:
            shared = ", ".join(
                f"{tracking_id}:[{_join(ids)}]"
                for tracking_id, ids in self.duplicate_tracking_ids.items()
            )
            lines.append(f"Duplicate _trackingIds: {shared}")
        return lines


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


def _join(values: Iterable[Any]) -> str:
    # _id values come straight from JSON and are not always strings
    return ", ".join(str(value) for value in values)


def _record_label(record: Mapping[str, Any], position: int) -> Any:
    """The record's _id, or its load position when it has none."""
    record_id = record.get("_id")
    return record_id if record_id else f"#{position}"


def check_ids(
    records: Iterable[Mapping[str, Any]],
    config: EngineConfig = DEFAULT_CONFIG,
    report: Optional[IntegrityReport] = None,
) -> IntegrityReport:
    """
    Identity pass over the whole record set.

    Args:
        records: Flat records in load order
        config: Supplies the leaf types exempt from the empty check
        report: Report to extend (a new one by default)

    Returns:
        The report, extended with any identity violations
    """
    records = list(records)
    report = report or IntegrityReport(empty_is_fatal=config.empty_is_fatal)

    id_counts: dict[Any, int] = defaultdict(int)
    parent_ids = set()
    for record in records:
        if record.get("_id"):
            id_counts[record["_id"]] += 1
        if record.get("_parentId"):
            parent_ids.add(record["_parentId"])

    duplicate_ids, empty_ids, orphaned_ids, missing_ids = [], [], [], []
    for position, record in enumerate(records):
        record_id = record.get("_id")
        is_course = record.get("_type") == "course"
        if not record_id:
            if not is_course:
                report.unidentified.append(position)
            continue
        if id_counts[record_id] > 1:
            duplicate_ids.append(record_id)
        if not is_course and not config.is_leaf_type(record.get("_type")) and record_id not in parent_ids:
            empty_ids.append(record_id)
        if is_course:
            continue
        parent_id = record.get("_parentId")
        if not parent_id or parent_id not in id_counts:
            orphaned_ids.append(record_id)
        if parent_id and parent_id not in id_counts:
            missing_ids.append(parent_id)

    report.duplicate_ids.extend(_unique(duplicate_ids))
    report.empty_ids.extend(_unique(empty_ids))
    report.orphaned_ids.extend(_unique(orphaned_ids))
    report.missing_ids.extend(_unique(missing_ids))
    return report


def check_tracking_ids(
    records: Iterable[Mapping[str, Any]],
    config: EngineConfig = DEFAULT_CONFIG,
    report: Optional[IntegrityReport] = None,
) -> IntegrityReport:
    """Tracking pass: every tracking unit has a unique _trackingId."""
    report = report or IntegrityReport(empty_is_fatal=config.empty_is_fatal)
    groups: dict[Any, list[str]] = defaultdict(list)
    for position, record in enumerate(records):
        if record.get("_type") != config.tracking_id_type:
            continue
        if not record.get("_id") and position not in report.unidentified:
            report.unidentified.append(position)
        label = _record_label(record, position)
        if record.get("_trackingId") is None:
            report.missing_tracking_ids.append(label)
            continue
        groups[record["_trackingId"]].append(label)

    for tracking_id, ids in groups.items():
        if len(ids) > 1:
            report.duplicate_tracking_ids[str(tracking_id)] = ids
    return report


def check_integrity(
    records: Iterable[Mapping[str, Any]],
    config: EngineConfig = DEFAULT_CONFIG,
) -> IntegrityReport:
    """
    Run the identity and tracking passes and raise once on any violation.

    Raises:
        IntegrityError: Listing every offending id
    """
    records = list(records)
    report = check_ids(records, config)
    check_tracking_ids(records, config, report)

    for line in report.describe():
        if line.startswith("Empty") and not config.empty_is_fatal:
            logger.warning(line)
        else:
            logger.error(line)

    if report.has_errors:
        raise IntegrityError(
            "Oops, looks like you have some json errors: " + "; ".join(report.describe()),
            report,
        )
    return report


def validate_record(record: Mapping[str, Any], *, strict: bool = False) -> None:
    """
    Validate a single record.

    Args:
        record: Record to validate
        strict: If True, also validate against record.schema.json

    Raises:
        ValidationError: If the record is invalid
    """
    if not isinstance(record, Mapping):
        raise ValidationError(f"Record must be a mapping, got {type(record).__name__}")

    record_type = record.get("_type")
    if not isinstance(record_type, str) or not record_type:
        raise ValidationError(
            f"Record {record.get('_id')!r} has no _type",
            path="_type",
            errors=["Missing field: _type"],
        )

    if strict:
        schema = _load_schema("record")
        try:
            jsonschema.validate(dict(record), schema)
        except jsonschema.ValidationError as e:
            raise ValidationError(
                f"Schema validation failed: {e.message}",
                path=".".join(str(p) for p in e.absolute_path),
                errors=[e.message],
            )
