"""
Module: ledger

Purpose:
    Provides the LockLedger dataclass - the vote book for one lockable
    boolean attribute. Many independently named writers may ask for the
    attribute to be held at its locked value; the attribute is locked
    while at least one vote is held.

Key Functions:
    - LockLedger.hold(writer): Record a lock vote
    - LockLedger.release(writer): Clear a lock vote
    - LockLedger.count(writer): Number of active votes (or 0/1 for a writer)
    - LockLedger.value: Effective attribute value

Dependencies:
    - dataclasses (std)

Used By:
    - core.models.locking.LockingModel
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(slots=True)
class LockLedger:
    """
    Per-attribute writer -> vote map.

    Attributes:
        unlocked_value: Value the attribute takes while nobody holds a lock
        votes: Writers currently holding a lock vote

    Invariants:
        - A writer appears in votes only while it holds a lock
        - value == locked_value iff len(votes) > 0

    Example:
        >>> ledger = LockLedger(unlocked_value=True)
        >>> ledger.hold("p1")
        >>> ledger.hold("p2")
        >>> ledger.release("p1")
        >>> ledger.value
        False
        >>> ledger.release("p2")
        >>> ledger.value
        True
    """

    unlocked_value: bool = True
    votes: dict[str, bool] = field(default_factory=dict)

    @property
    def locked_value(self) -> bool:
        """Value the attribute is forced to while any vote is held."""
        return not self.unlocked_value

    @property
    def is_locked(self) -> bool:
        return self.count() > 0

    @property
    def value(self) -> bool:
        """Effective attribute value given the current votes."""
        return self.locked_value if self.is_locked else self.unlocked_value

    def hold(self, writer: str) -> None:
        self.votes[writer] = True

    def release(self, writer: str) -> None:
        self.votes.pop(writer, None)

    def vote(self, writer: str, hold_lock: bool) -> None:
        """Record (hold_lock=True) or clear (False) a writer's vote."""
        if hold_lock:
            self.hold(writer)
        else:
            self.release(writer)

    def count(self, writer: Optional[str] = None) -> int:
        """
        Count active votes.

        Args:
            writer: If given, return 1 when this writer holds a vote, else 0

        Returns:
            Number of active votes
        """
        if writer is not None:
            return 1 if self.votes.get(writer) else 0
        return sum(1 for held in self.votes.values() if held)

    def holders(self) -> tuple[str, ...]:
        """Writers currently holding a lock, in vote order."""
        return tuple(name for name, held in self.votes.items() if held)
