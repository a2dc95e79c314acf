"""
Module: config

Purpose:
    Configuration dataclass for the content tree engine. Provides
    immutable settings for integrity validation, tracking positions,
    deep cloning and lock arbitration.

Key Classes:
    - EngineConfig: Main configuration shared by the store and its nodes

Dependencies:
    - dataclasses (std)

Used By:
    - content_tree.store: Validation passes, record checks
    - content_tree.core.models.node: Clone ids, tracking unit type
    - content_tree.core.models.locking: Compatibility writer name
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConfig:
    """
    Configuration for the content tree engine (immutable).

    Attributes:
        tracking_id_type: Node type that must carry a unique _trackingId
        leaf_types: Types that are allowed to have no children
        clone_id_separator: Joins the original id and unique suffix of a clone
        compatibility_writer: Writer name used when a lock vote has no writer
        strict_records: Validate every added record against the JSON schema
        empty_is_fatal: Treat containers without children as integrity errors

    Invariants:
        - tracking_id_type, clone_id_separator and compatibility_writer are non-empty

    Example:
        >>> config = EngineConfig(tracking_id_type="article")
        >>> config.is_leaf_type("component")
        True
    """

    tracking_id_type: str = "block"
    leaf_types: tuple[str, ...] = ("component",)
    clone_id_separator: str = "_"
    compatibility_writer: str = "compatibility"
    strict_records: bool = False
    empty_is_fatal: bool = False

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if not self.tracking_id_type:
            raise ValueError("tracking_id_type must be a non-empty type name")
        if not self.clone_id_separator:
            raise ValueError("clone_id_separator must be non-empty")
        if not self.compatibility_writer:
            raise ValueError("compatibility_writer must be non-empty")

    def is_leaf_type(self, type_name: str | None) -> bool:
        """Check whether a record type may legitimately have no children."""
        return type_name in self.leaf_types


DEFAULT_CONFIG = EngineConfig()
