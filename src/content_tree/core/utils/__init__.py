"""
Utils Package

Serialization and logging helpers.
"""

from .logging_utils import deprecated, reset_warnings, warn_once
from .serialization import (
    dump_state,
    flatten_records,
    load_records_json,
    load_state_json,
    records_from_data,
    restore_state,
    save_state_json,
)

__all__ = [
    "deprecated",
    "reset_warnings",
    "warn_once",
    "dump_state",
    "flatten_records",
    "load_records_json",
    "load_state_json",
    "records_from_data",
    "restore_state",
    "save_state_json",
]
