"""
Core Models Package

Stateful content models over flat course records.

| Model | Role |
|-------|------|
| `LockLedger` | Writer -> vote map for one locking attribute |
| `LockingModel` | Attribute map with change events and lock arbitration |
| `ContentNode` | Hierarchy, completion / locking cascades, relative paths, cloning |
| `CourseNode` ... `QuestionNode` | Type groups of the standard hierarchy |
| `ItemsComponent` | Component owning `ItemModel` sub-items |

Importing this package registers every built-in model with the registry.
"""

from .events import Events, ModelEvent
from .ledger import LockLedger
from .locking import LockingModel
from .node import CloneError, ContentNode
from .kinds import (
    ArticleNode,
    BlockNode,
    ComponentNode,
    ContentObjectNode,
    CourseNode,
    MenuNode,
    PageNode,
    QuestionNode,
)
from .items import ItemModel, ItemsComponent
from .registry import ModelRegistryError, get_model_class, get_model_name, register

__all__ = [
    "Events",
    "ModelEvent",
    "LockLedger",
    "LockingModel",
    "CloneError",
    "ContentNode",
    "ArticleNode",
    "BlockNode",
    "ComponentNode",
    "ContentObjectNode",
    "CourseNode",
    "MenuNode",
    "PageNode",
    "QuestionNode",
    "ItemModel",
    "ItemsComponent",
    "ModelRegistryError",
    "get_model_class",
    "get_model_name",
    "register",
]
