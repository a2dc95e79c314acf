"""
Module: items

Purpose:
    Components whose content is a list of sub-items (accordions, hotspots,
    carousels). Items are not store records: they are ItemModel instances
    built from the component's _items list and owned by the component.

    The component becomes complete once every item has been visited, and
    activating an item marks it visited.

Key Classes:
    - ItemModel: Per-item state (_index, _isActive, _isVisited, _score)
    - ItemsComponent: ComponentNode that owns ItemModel children

Dependencies:
    - .locking.LockingModel
    - .kinds.ComponentNode

Used By:
    - content_tree.store.Store (registered as "items")
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .kinds import ComponentNode
from .locking import LockingModel
from .registry import register

logger = logging.getLogger(__name__)


class ItemModel(LockingModel):
    """One item of an ItemsComponent."""

    def defaults(self) -> dict[str, Any]:
        return {
            "_classes": "",
            "_isActive": False,
            "_isVisited": False,
            "_score": 0,
        }

    @property
    def index(self) -> Optional[int]:
        return self.get("_index")

    def reset(self) -> None:
        self.set({"_isActive": False, "_isVisited": False})

    def toggle_active(self, is_active: Optional[bool] = None) -> None:
        if is_active is None:
            is_active = not self.get("_isActive")
        self.set("_isActive", bool(is_active))

    def toggle_visited(self, is_visited: Optional[bool] = None) -> None:
        if is_visited is None:
            is_visited = not self.get("_isVisited")
        self.set("_isVisited", bool(is_visited))

    def toggle_class(self, class_name: str, has_class: bool) -> None:
        """Add or remove space separated class names in _classes."""
        classes = self.get("_classes", "").split()
        for name in class_name.split():
            if has_class and name not in classes:
                classes.append(name)
            elif not has_class and name in classes:
                classes.remove(name)
        self.set("_classes", " ".join(classes))

    def __repr__(self) -> str:
        return f"ItemModel({self.index!r})"


class ItemsComponent(ComponentNode):
    """
    Component with ItemModel children built from _items.

    Example:
        >>> hotspots = store.find_by_id("c-05")
        >>> hotspots.set_active_item(0)
        >>> hotspots.get_visited_items()
        [ItemModel(0)]
    """

    TRACKABLE = (*ComponentNode.TRACKABLE, "_userAnswer")

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._item_models: Optional[list[ItemModel]] = None
        super().__init__(*args, **kwargs)

    def _setup_items(self) -> list[ItemModel]:
        items = []
        for index, item in enumerate(self.get("_items") or []):
            items.append(ItemModel({**item, "_index": index}, config=self.config))
        self._item_models = items
        return items

    def get_children(self) -> list[ItemModel]:
        if self._item_models is None:
            return self._setup_items()
        return self._item_models

    def init(self) -> None:
        self.restore_user_answers()
        for item in self.get_children():
            item.on("change:_isActive", self._on_item_active)
            item.on("change:_isVisited", self._on_item_visited)
        super().init()

    def _on_item_active(self, item: ItemModel, is_active: bool) -> None:
        if is_active:
            item.toggle_visited(True)

    def _on_item_visited(self, item: ItemModel, is_visited: bool) -> None:
        self.check_completion_status()

    def to_dict(self) -> dict[str, Any]:
        state = super().to_dict()
        if self._item_models is not None:
            state["_items"] = [item.to_dict() for item in self._item_models]
        return state

    # ─────────────────────────────────────────────────────────────────────────
    # Item queries
    # ─────────────────────────────────────────────────────────────────────────

    def get_item(self, index: int) -> Optional[ItemModel]:
        return next((item for item in self.get_children() if item.index == index), None)

    def get_visited_items(self) -> list[ItemModel]:
        return [item for item in self.get_children() if item.get("_isVisited")]

    def get_active_items(self) -> list[ItemModel]:
        return [item for item in self.get_children() if item.get("_isActive")]

    def get_active_item(self) -> Optional[ItemModel]:
        return next(iter(self.get_active_items()), None)

    def are_all_items_completed(self) -> bool:
        return len(self.get_visited_items()) == len(self.get_children())

    def set_active_item(self, index: int) -> None:
        item = self.get_item(index)
        if item is None:
            logger.warning(f"{self!r} has no item {index}")
            return
        active_item = self.get_active_item()
        if active_item is not None and active_item is not item:
            active_item.toggle_active(False)
        item.toggle_active(True)

    def reset_active_items(self) -> None:
        for item in self.get_children():
            item.toggle_active(False)

    # ─────────────────────────────────────────────────────────────────────────
    # Completion
    # ─────────────────────────────────────────────────────────────────────────

    def store_user_answer(self) -> None:
        self.set("_userAnswer", [bool(item.get("_isVisited")) for item in self.get_children()])

    def restore_user_answers(self) -> None:
        visited = self.get("_userAnswer")
        if not visited:
            return
        for item, is_visited in zip(self.get_children(), visited):
            item.set("_isVisited", bool(is_visited))

    def set_trackable_state(self, state: dict[str, Any]) -> ItemsComponent:
        super().set_trackable_state(state)
        self.restore_user_answers()
        return self

    def check_completion_status(self) -> None:
        self.store_user_answer()
        if self.are_all_items_completed():
            self.set_completion_status()

    def reset(self, kind: Any = "hard", can_reset: Optional[bool] = None) -> bool:
        was_reset = super().reset(kind, can_reset)
        if not was_reset:
            return False
        for item in self.get_children():
            item.reset()
        return True


register("items", ItemsComponent)
