"""
Content Tree Core Package

Node models, lock arbitration, record validation and serialization.

**DESIGN NOTES:**

1. **Flat Records, Derived Tree**
   - Records are stored flat and linked by _parentId
   - Children and parents are derived lazily and memoized per node

2. **Deferred Cascades**
   - Completion, visited and trackable-state changes propagate through
     the store's CompletionScheduler, never inside a change handler

3. **Multi-Writer Locks**
   - Locking attributes are decided by writer votes (LockLedger)
"""

from .models import (
    ContentNode,
    CourseNode,
    ItemModel,
    ItemsComponent,
    LockingModel,
    LockLedger,
)
from .schemas import IntegrityError, ValidationError

__all__ = [
    "ContentNode",
    "CourseNode",
    "ItemModel",
    "ItemsComponent",
    "LockingModel",
    "LockLedger",
    "IntegrityError",
    "ValidationError",
]
