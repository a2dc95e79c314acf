"""
Serialization Utilities

Provides JSON loading of course records and the round trip of learner
state (the trackable attributes of every node).

Course data arrives either as one list of records, as a dict of named
collections ({"course": {...}, "blocks": [...]}) or as a directory of
per-collection files (course.json, contentObjects.json, articles.json,
blocks.json, components.json). All three flatten to one record list with
the course first.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Union

from ..schemas.validator import ValidationError

if TYPE_CHECKING:
    from content_tree.store import Store

logger = logging.getLogger(__name__)


COLLECTION_FILES = (
    "course.json",
    "contentObjects.json",
    "articles.json",
    "blocks.json",
    "components.json",
)


# ─────────────────────────────────────────────────────────────────────────────
# Records
# ─────────────────────────────────────────────────────────────────────────────

def _as_records(value: Any, source: str) -> list[dict[str, Any]]:
    if isinstance(value, Mapping):
        return [dict(value)]
    if isinstance(value, list):
        records = []
        for i, item in enumerate(value):
            if not isinstance(item, Mapping):
                raise ValidationError(
                    f"Record {i} in {source} is not an object",
                    path=f"{source}[{i}]",
                )
            records.append(dict(item))
        return records
    raise ValidationError(f"Unsupported course data in {source}: {type(value).__name__}", path=source)


def flatten_records(data: Union[list, Mapping[str, Any]]) -> list[dict[str, Any]]:
    """
    Flatten course data into a single record list, course first.

    Args:
        data: A record list, or a dict of collection name -> record(s)

    Returns:
        Copies of the records; order within each collection is kept
    """
    if isinstance(data, Mapping) and "_type" not in data:
        records: list[dict[str, Any]] = []
        for name, value in data.items():
            records.extend(_as_records(value, str(name)))
    else:
        records = _as_records(data, "data")
    courses = [record for record in records if record.get("_type") == "course"]
    others = [record for record in records if record.get("_type") != "course"]
    return courses + others


def records_from_data(data: Union[list, Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Alias of flatten_records for loader code."""
    return flatten_records(data)


def load_records_json(path: Path) -> list[dict[str, Any]]:
    """
    Load course records from a JSON file or a course directory.

    A directory is read collection by collection; missing files are skipped.

    Raises:
        FileNotFoundError: If path does not exist
        ValidationError: If a file does not hold records
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Course data not found: {path}")

    if path.is_file():
        with open(path, "r", encoding="utf-8") as f:
            return flatten_records(json.load(f))

    collections: dict[str, Any] = {}
    for filename in COLLECTION_FILES:
        file_path = path / filename
        if not file_path.exists():
            logger.debug(f"Skipping missing collection {file_path}")
            continue
        with open(file_path, "r", encoding="utf-8") as f:
            collections[filename] = json.load(f)
    records = flatten_records(collections)
    logger.info(f"Loaded {len(records)} records from {path}")
    return records


# ─────────────────────────────────────────────────────────────────────────────
# Learner state
# ─────────────────────────────────────────────────────────────────────────────

def dump_state(store: Store) -> dict[str, dict[str, Any]]:
    """
    Collect the trackable state of every identified node.

    Returns:
        _id -> trackable attributes, suitable for JSON
    """
    return {
        node.id: node.get_trackable_state()
        for node in store
        if node.id
    }


def restore_state(store: Store, states: Mapping[str, Mapping[str, Any]]) -> int:
    """
    Apply states produced by dump_state().

    Unknown ids are skipped with a warning.

    Returns:
        Number of nodes restored
    """
    restored = 0
    for node_id, state in states.items():
        if not store.has_id(node_id):
            logger.warning(f"restore_state: unknown _id {node_id!r}")
            continue
        store.find_by_id(node_id).set_trackable_state(dict(state))
        restored += 1
    return restored


def save_state_json(store: Store, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(dump_state(store), f, indent=2, ensure_ascii=False)


def load_state_json(store: Store, path: Path) -> int:
    with open(Path(path), "r", encoding="utf-8") as f:
        return restore_state(store, json.load(f))
