"""
Engine Package

Deferred completion scheduling, relative addressing and tracking positions.
These modules operate on nodes but never import the node models at runtime.
"""

from .relative import (
    RelativeDescriptor,
    RelativePathError,
    find_relative,
    format_relative_path,
    parse_relative_path,
)
from .scheduler import CompletionScheduler
from .tracking import from_tracking_position, to_tracking_position

__all__ = [
    "RelativeDescriptor",
    "RelativePathError",
    "find_relative",
    "format_relative_path",
    "parse_relative_path",
    "CompletionScheduler",
    "from_tracking_position",
    "to_tracking_position",
]
