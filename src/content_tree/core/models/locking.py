"""
Module: locking

Purpose:
    Provides LockingModel - a mutable attribute map with change
    notifications and multi-writer lock arbitration. Some boolean
    attributes are declared "locking": writes to them are votes from
    named writers, and the stored value only flips back to its unlocked
    default once the last writer has released its lock.

Key Functions:
    - LockingModel.set(): Write attributes (votes for locking attributes)
    - LockingModel.set_locking(): Declare an attribute as locking
    - LockingModel.set_lock_state(): Cast or clear a writer's vote directly
    - LockingModel.get_lock_count() / is_locked(): Inspect votes

Dependencies:
    - copy, logging (std)
    - .ledger.LockLedger
    - .events.Events

Used By:
    - core.models.node.ContentNode
    - core.models.items.ItemModel
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional

from content_tree.config import DEFAULT_CONFIG, EngineConfig

from .events import Events
from .ledger import LockLedger

logger = logging.getLogger(__name__)


_MISSING = object()


def _same_value(current: Any, new: Any) -> bool:
    """Equality that does not treat True and 1 as the same value."""
    return type(current) is type(new) and current == new


class LockingModel(Events):
    """
    Attribute container with change events and lock arbitration.

    Subclasses declare locking attributes by overriding
    ``locked_attributes()`` to return ``{name: unlocked_value}``, or at
    runtime with ``set_locking(name, unlocked_value)``.

    Writing a locking attribute through ``set``:
        - writing its locked value casts a vote for ``writer``
        - writing its unlocked value releases ``writer``'s vote
        - the stored value is the ledger's effective value, so it only
          changes when the vote count crosses zero

    Attributes:
        attributes: Current attribute values
        config: Engine configuration (compatibility writer name)

    Example:
        >>> model = LockingModel({"_canScroll": True})
        >>> model.set_locking("_canScroll", True)
        >>> model.set("_canScroll", False, writer="drawer")
        >>> model.set("_canScroll", False, writer="notify")
        >>> model.set("_canScroll", True, writer="drawer")
        >>> model.get("_canScroll")
        False
    """

    def __init__(
        self,
        attributes: Optional[dict[str, Any]] = None,
        *,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self.attributes: dict[str, Any] = {}
        self._ledgers: Optional[dict[str, LockLedger]] = None
        self._is_initialising = True
        data = self.parse(dict(attributes or {}))
        self.set({**self.defaults(), **data}, silent=True)
        self._is_initialising = False

    # ─────────────────────────────────────────────────────────────────────────
    # Overridable hooks
    # ─────────────────────────────────────────────────────────────────────────

    def defaults(self) -> dict[str, Any]:
        return {}

    def locked_attributes(self) -> Optional[dict[str, bool]]:
        """Locking attributes declared by this class as {name: unlocked_value}."""
        return None

    def parse(self, data: dict[str, Any]) -> dict[str, Any]:
        return data

    # ─────────────────────────────────────────────────────────────────────────
    # Attribute access
    # ─────────────────────────────────────────────────────────────────────────

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def has(self, name: str) -> bool:
        """True if the attribute is present and not None."""
        return self.attributes.get(name) is not None

    def set(
        self,
        name_or_values: str | dict[str, Any],
        value: Any = _MISSING,
        *,
        writer: Optional[str] = None,
        silent: bool = False,
    ) -> LockingModel:
        """
        Write one attribute or a dict of attributes.

        Args:
            name_or_values: Attribute name, or a dict of name -> value
            value: Value when a single name is given
            writer: Name of the writer casting lock votes
            silent: Suppress change events

        Returns:
            self, for chaining
        """
        if isinstance(name_or_values, dict):
            values = name_or_values
        else:
            if value is _MISSING:
                raise TypeError(f"set({name_or_values!r}) requires a value")
            values = {name_or_values: value}

        new_values: dict[str, Any] = {}
        for name, new_value in values.items():
            if isinstance(new_value, bool) and self.is_locking(name):
                new_value = self._vote(name, new_value, writer)
            new_values[name] = new_value
        self._apply(new_values, silent=silent)
        return self

    def unset(self, name: str, *, silent: bool = False) -> LockingModel:
        if name not in self.attributes:
            return self
        del self.attributes[name]
        if not silent:
            self.trigger(f"change:{name}", self, None)
            self.trigger("change", self, {name: None})
        return self

    def _apply(self, values: dict[str, Any], *, silent: bool = False) -> dict[str, Any]:
        """Store values and emit change events for those that differ."""
        changed: dict[str, Any] = {}
        for name, new_value in values.items():
            current = self.attributes.get(name, _MISSING)
            if current is not _MISSING and _same_value(current, new_value):
                continue
            self.attributes[name] = new_value
            changed[name] = new_value
        if silent or not changed:
            return changed
        for name, new_value in changed.items():
            self.trigger(f"change:{name}", self, new_value)
        self.trigger("change", self, changed)
        return changed

    def to_dict(self) -> dict[str, Any]:
        """Deep copy of the attribute map for JSON storage."""
        return copy.deepcopy(self.attributes)

    # ─────────────────────────────────────────────────────────────────────────
    # Lock arbitration
    # ─────────────────────────────────────────────────────────────────────────

    def _resolve_ledgers(self) -> dict[str, LockLedger]:
        if self._ledgers is None:
            declared = self.locked_attributes() or {}
            self._ledgers = {
                name: LockLedger(unlocked_value=unlocked)
                for name, unlocked in declared.items()
            }
        return self._ledgers

    def _resolve_writer(self, writer: Optional[str], attr_name: str) -> str:
        if writer:
            return writer
        if not self._is_initialising:
            logger.error(
                f"Must supply a writer name to change locking attribute "
                f"{attr_name!r} on {self!r}; using {self.config.compatibility_writer!r}"
            )
        return self.config.compatibility_writer

    def _vote(self, attr_name: str, value: bool, writer: Optional[str]) -> bool:
        """Turn a direct write into a vote and return the effective value."""
        ledger = self._resolve_ledgers()[attr_name]
        writer = self._resolve_writer(writer, attr_name)
        ledger.vote(writer, value == ledger.locked_value)
        return ledger.value

    def set_locking(self, attr_name: str, unlocked_value: bool = True) -> None:
        """
        Declare an attribute as locking.

        A current stored value equal to the locked value is kept as a
        compatibility vote so the stored and effective values agree.
        """
        if self.is_locking(attr_name):
            return
        ledger = LockLedger(unlocked_value=unlocked_value)
        if self.attributes.get(attr_name) is ledger.locked_value:
            ledger.hold(self.config.compatibility_writer)
        self._resolve_ledgers()[attr_name] = ledger
        self._apply({attr_name: ledger.value}, silent=True)

    def unset_locking(self, attr_name: str) -> None:
        if not self.is_locking(attr_name):
            return
        del self._resolve_ledgers()[attr_name]

    def is_locking(self, attr_name: Optional[str] = None) -> bool:
        """
        Check whether an attribute is declared locking.

        With no name, reports whether the model uses lock arbitration at all.
        """
        ledgers = self._resolve_ledgers()
        if attr_name is None:
            return bool(ledgers)
        return attr_name in ledgers

    def get_ledger(self, attr_name: str) -> Optional[LockLedger]:
        return self._resolve_ledgers().get(attr_name)

    def get_lock_count(self, attr_name: str, writer: Optional[str] = None) -> int:
        """
        Count lock votes on an attribute.

        Args:
            attr_name: Locking attribute name
            writer: If given, 1 when this writer holds a vote, else 0

        Returns:
            Vote count (0 for attributes that are not locking)
        """
        ledger = self.get_ledger(attr_name)
        if ledger is None:
            return 0
        return ledger.count(writer)

    def is_locked(self, attr_name: str) -> bool:
        return self.get_lock_count(attr_name) > 0

    def set_lock_state(
        self,
        attr_name: str,
        hold_lock: bool,
        writer: Optional[str] = None,
    ) -> LockingModel:
        """
        Record or clear a writer's vote and update the stored value.

        Does nothing for attributes that are not locking.
        """
        ledger = self.get_ledger(attr_name)
        if ledger is None:
            return self
        writer = self._resolve_writer(writer, attr_name)
        ledger.vote(writer, hold_lock)
        self._apply({attr_name: ledger.value})
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.get('_id')!r})"
