"""
Module: node

Purpose:
    Provides ContentNode - one element of the course hierarchy
    (course / menu / page / article / block / component). Wraps a flat
    record held by the Store and derives its tree position lazily:
    children are the store nodes whose _parentId is this node's _id.

    On top of the hierarchy a node runs:
        - deferred completion / interaction-completion cascades
        - the visited cascade
        - bubbling of child change events to every ancestor
        - child locking (sequential, unlockFirst, lockLast, custom)
        - relative addressing and tracking positions
        - deep cloning of a subtree with fresh ids

Key Functions:
    - ContentNode.get_children() / get_parent(): Memoized hierarchy
    - ContentNode.get_all_descendant_models(): Flattened subtree
    - ContentNode.check_completion_status_for(): Completion policy
    - ContentNode.check_locking(): Apply the node's _lockType
    - ContentNode.bubble(): Re-trigger descendant changes as bubble:<type>
    - ContentNode.find_relative_model(): Relative path resolution
    - ContentNode.tracking_position: Compact resume position
    - ContentNode.deep_clone(): Independent subtree copy

Dependencies:
    - itertools, logging (std)
    - .locking.LockingModel
    - content_tree.engine (scheduler, relative, tracking)

Used By:
    - core.models.kinds (typed subclasses)
    - content_tree.store.Store
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence, Union

from content_tree.config import EngineConfig
from content_tree.engine.relative import RelativeDescriptor, find_relative
from content_tree.engine.scheduler import CompletionScheduler
from content_tree.engine.tracking import TrackingPosition, to_tracking_position

from ..utils.logging_utils import deprecated, warn_once
from .events import ModelEvent
from .locking import LockingModel

if TYPE_CHECKING:
    from content_tree.store import Store

logger = logging.getLogger(__name__)


COMPLETE = "_isComplete"
INTERACTION_COMPLETE = "_isInteractionComplete"
VISITED = "_isVisited"
LOCKED = "_isLocked"

_clone_counter = itertools.count(1)


class CloneError(RuntimeError):
    """Raised when a subtree contains a child that cannot be cloned."""


def _next_clone_suffix() -> str:
    return f"c{next(_clone_counter)}"


def _is_blocking(node: ContentNode) -> bool:
    """Incomplete and mandatory."""
    return not node.get(COMPLETE) and not node.get("_isOptional")


class ContentNode(LockingModel):
    """
    Stateful hierarchy node over a flat record.

    Attributes:
        store: Store the node belongs to (None for detached nodes)
        TYPE_GROUP: Type group contributed by this class, collected along
            the MRO by get_type_groups()
        has_managed_children: Whether children come from the store

    Invariants:
        - Cached children / parent / siblings are cleared whenever the
          store is mutated and recomputed on next access
        - Cascades are always deferred through the scheduler
    """

    TYPE_GROUP: Optional[str] = None
    TRACKABLE: tuple[str, ...] = ("_id", COMPLETE, INTERACTION_COMPLETE, VISITED)
    has_managed_children = True

    def __init__(
        self,
        attributes: Optional[dict[str, Any]] = None,
        *,
        store: Optional[Store] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.store = store
        self._children_cache: Optional[list[ContentNode]] = None
        self._parent_cache: Optional[ContentNode] = None
        self._siblings_cache: dict[bool, list[ContentNode]] = {}
        self._type_groups: Optional[list[str]] = None
        self._listened_children: set[ContentNode] = set()
        self._own_scheduler: Optional[CompletionScheduler] = None
        self._is_setup = False
        self._trackable_queued = False
        if config is None and store is not None:
            config = store.config
        super().__init__(attributes, config=config)

    def defaults(self) -> dict[str, Any]:
        return {
            "_canReset": True,
            "_isComplete": False,
            "_isInteractionComplete": False,
            "_requireCompletionOf": -1,
            "_isEnabled": True,
            "_isResetOnRevisit": False,
            "_isAvailable": True,
            "_isOptional": False,
            "_isVisible": True,
            "_isVisited": False,
            "_isLocked": False,
        }

    def parse(self, data: dict[str, Any]) -> dict[str, Any]:
        # Authoring tools write "false" as a string
        if data.get("_isResetOnRevisit") == "false":
            data["_isResetOnRevisit"] = False
        return data

    # ─────────────────────────────────────────────────────────────────────────
    # Properties
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def id(self) -> Optional[str]:
        return self.get("_id")

    @property
    def type(self) -> Optional[str]:
        return self.get("_type")

    @property
    def scheduler(self) -> CompletionScheduler:
        if self.store is not None:
            return self.store.scheduler
        if self._own_scheduler is None:
            self._own_scheduler = CompletionScheduler()
        return self._own_scheduler

    @property
    def tracking_position(self) -> Optional[TrackingPosition]:
        """(trackingId, index) of this node, or None if untrackable."""
        return to_tracking_position(self)

    # ─────────────────────────────────────────────────────────────────────────
    # Type groups
    # ─────────────────────────────────────────────────────────────────────────

    def get_type_group(self) -> Optional[str]:
        """Most specific type group contributed by the class hierarchy."""
        return type(self).TYPE_GROUP

    def get_type_groups(self) -> list[str]:
        """
        All type groups: the record _type, then each class's TYPE_GROUP
        from most to least derived. Lowercase, without duplicates.
        """
        if self._type_groups is not None:
            return self._type_groups
        groups = [self.type]
        for cls in type(self).__mro__:
            group = cls.__dict__.get("TYPE_GROUP")
            if group:
                groups.append(group)
        unique: list[str] = []
        for group in groups:
            if group and group.lower() not in unique:
                unique.append(group.lower())
        self._type_groups = unique
        return unique

    def is_type_group(self, type_group: str) -> bool:
        """
        Check membership of a type group.

        Case-insensitive and tolerant of a trailing plural "s", although
        singular lowercase names are preferred.
        """
        has_upper_case = any(char.isupper() for char in type_group)
        is_pluralized = type_group.endswith("s")
        lowered = type_group.lower()
        singular = lowered[:-1] if is_pluralized else lowered
        if is_pluralized or has_upper_case:
            deprecated(
                logger,
                f"{type_group!r} appears pluralized or contains uppercase characters, "
                f"suggest using the singular, lowercase type group {singular!r}.",
            )
        candidates = {singular}
        if not is_pluralized:
            candidates.add(f"{lowered}s")
        return bool(candidates.intersection(self.get_type_groups()))

    # ─────────────────────────────────────────────────────────────────────────
    # Hierarchy
    # ─────────────────────────────────────────────────────────────────────────

    def invalidate_hierarchy(self) -> None:
        """Drop memoized children, parent and siblings."""
        self._children_cache = None
        self._parent_cache = None
        self._siblings_cache = {}

    def _watch_store(self) -> None:
        if self.store is not None:
            self.store.watch(self)

    def get_children(self) -> list[ContentNode]:
        """
        Child nodes in store insertion order (memoized).

        A block with two components laid out left/right orders left first.
        """
        if self._children_cache is not None:
            return self._children_cache
        children: list[ContentNode] = []
        node_id = self.id
        if self.has_managed_children and self.store is not None and node_id is not None:
            children = self.store.filter(lambda node: node.get("_parentId") == node_id)
            if (
                self.type == "block"
                and len(children) == 2
                and children[0].get("_layout") != "left"
                and children[1].get("_layout") == "left"
            ):
                children = [children[1], children[0]]
        self.set_children(children)
        self._watch_store()
        return children

    def set_children(self, children: Sequence[ContentNode]) -> None:
        self._children_cache = list(children)
        if self._is_setup:
            for child in self._children_cache:
                self._listen_to_child(child)

    def get_available_child_models(self) -> list[ContentNode]:
        return [child for child in self.get_children() if child.get("_isAvailable") is True]

    def get_parent(self) -> Optional[ContentNode]:
        """Parent node (memoized); None for the root or an unresolved _parentId."""
        if self._parent_cache is not None:
            return self._parent_cache
        parent_id = self.get("_parentId")
        if not parent_id:
            return None
        parent = self.store.find_by_id(parent_id) if self.store is not None else None
        if parent is None:
            logger.warning(f"{self!r}.get_parent(): parent {parent_id!r} is missing")
            return None
        self.set_parent(parent)
        return parent

    def set_parent(self, parent: ContentNode) -> None:
        self._parent_cache = parent
        self.set("_parentId", parent.id)
        self._watch_store()

    def get_ancestor_models(self, include_self: bool = False) -> list[ContentNode]:
        """Ancestors nearest first; optionally starting with this node."""
        ancestors: list[ContentNode] = [self] if include_self else []
        context: Optional[ContentNode] = self
        while context is not None and context.has("_parentId"):
            context = context.get_parent()
            if context is not None:
                ancestors.append(context)
        return ancestors

    def get_siblings(self, include_self: bool = False) -> list[ContentNode]:
        if include_self in self._siblings_cache:
            return self._siblings_cache[include_self]
        if self.store is None:
            return [self] if include_self else []
        parent_id = self.get("_parentId")
        siblings = self.store.filter(
            lambda node: node.get("_parentId") == parent_id and (include_self or node is not self)
        )
        self._siblings_cache[include_self] = siblings
        self._watch_store()
        return siblings

    def find_ancestor(self, ancestor_type: Optional[str] = None) -> Optional[ContentNode]:
        """
        First ancestor of the given type group, or the parent if no type.
        """
        parent = self.get_parent()
        if parent is None:
            return None
        if not ancestor_type or parent.is_type_group(ancestor_type):
            return parent
        return parent.find_ancestor(ancestor_type)

    def get_all_descendant_models(self, parent_first: bool = False) -> list[ContentNode]:
        """
        Flatten the subtree below this node.

        Such that the tree:
            { a1: { b1: [c1, c2], b2: [c3, c4] }, a2: { b3: [c5, c6] } }

        becomes (parent_first=False):
            [c1, c2, b1, c3, c4, b2, a1, c5, c6, b3, a2]

        or (parent_first=True):
            [a1, b1, c1, c2, b2, c3, c4, a2, b3, c5, c6]
        """
        descendants: list[ContentNode] = []
        if not self.has_managed_children:
            return descendants
        for child in self.get_children():
            if not child.has_managed_children:
                descendants.append(child)
                continue
            sub_descendants = child.get_all_descendant_models(parent_first)
            if parent_first:
                descendants.append(child)
            descendants.extend(sub_descendants)
            if not parent_first:
                descendants.append(child)
        return descendants

    def find_descendant_models(
        self,
        descendants: str,
        where: Optional[dict[str, Any]] = None,
    ) -> list[ContentNode]:
        """
        Descendants of a type group, optionally matching attribute values.

        Example:
            >>> course.find_descendant_models("component", where={"_isOptional": False})
        """
        found = [
            node for node in self.get_all_descendant_models()
            if node.is_type_group(descendants)
        ]
        if not where:
            return found
        return [
            node for node in found
            if all(node.get(name) == value for name, value in where.items())
        ]

    def set_on_children(self, *args: Any, **kwargs: Any) -> None:
        """set() on this node and every managed descendant."""
        self.set(*args, **kwargs)
        if not self.has_managed_children:
            return
        for child in self.get_children():
            child.set_on_children(*args, **kwargs)

    # ─────────────────────────────────────────────────────────────────────────
    # Setup
    # ─────────────────────────────────────────────────────────────────────────

    def init(self) -> None:
        """Subclass hook run during setup_model()."""

    def setup_model(self) -> None:
        """
        Attach child listeners and queue the initial status checks.

        Must run after the node's children exist in the store.
        """
        self._is_setup = True
        if self.has_managed_children:
            self.setup_child_listeners()
        self.init()
        self.scheduler.defer(self._run_initial_checks)

    def _run_initial_checks(self) -> None:
        if self.has_managed_children:
            self.check_completion_status()
            self.check_interaction_completion_status()
            self.check_locking()
            self.check_visited_status()
        self.setup_trackables()

    def setup_child_listeners(self) -> None:
        for child in self.get_children():
            self._listen_to_child(child)

    def _listen_to_child(self, child: ContentNode) -> None:
        if child in self._listened_children:
            return
        self._listened_children.add(child)
        child.on(f"change:{VISITED}", self._on_child_visited)
        child.on(f"change:{COMPLETE}", self._on_child_complete)
        child.on(f"change:{INTERACTION_COMPLETE}", self._on_child_interaction_complete)
        for event_type in self.bubbling_events():
            child.on(event_type, self._bubble_handler(event_type))
        child.on("bubble", self.bubble)

    def bubbling_events(self) -> list[str]:
        """Child events re-triggered on every ancestor as bubble:<type>."""
        return [
            f"change:{COMPLETE}",
            f"change:{INTERACTION_COMPLETE}",
            "change:_isActive",
            f"change:{VISITED}",
        ]

    def _bubble_handler(self, event_type: str) -> Callable[[ContentNode, Any], None]:
        def handler(child: ContentNode, value: Any) -> None:
            self.bubble(ModelEvent(event_type, child, value))
        return handler

    def bubble(self, event: ModelEvent) -> None:
        if not event.can_bubble:
            return
        event.add_path(self)
        self.trigger(f"bubble:{event.type}", event)
        self.trigger("bubble", event)

    def _on_child_visited(self, child: ContentNode, value: Any) -> None:
        self.check_visited_status()

    def _on_child_complete(self, child: ContentNode, value: Any) -> None:
        self.on_is_complete()
        self.check_visited_status()

    def _on_child_interaction_complete(self, child: ContentNode, value: Any) -> None:
        self.check_interaction_completion_status()
        self.check_visited_status()

    # ─────────────────────────────────────────────────────────────────────────
    # Completion & visited cascades
    # ─────────────────────────────────────────────────────────────────────────

    def on_is_complete(self) -> None:
        self.check_completion_status()
        self.check_locking()

    def check_completion_status(self) -> None:
        # Deferred so every change:_isComplete handler fires before cascading up
        self.scheduler.defer(self.check_completion_status_for, COMPLETE)

    def check_interaction_completion_status(self) -> None:
        self.scheduler.defer(self.check_completion_status_for, INTERACTION_COMPLETE)

    def check_completion_status_for(self, completion_attribute: str = COMPLETE) -> bool:
        """
        Recompute a completion attribute from the available children.

        Policies, in priority order:
            1. Optional node whose children are all optional: every child
               must be complete.
            2. _requireCompletionOf == -1: every child complete or optional.
            3. _requireCompletionOf == N: at least N mandatory children complete.

        Returns:
            The value written
        """
        children = self.get_available_child_models()
        require_completion_of = self.get("_requireCompletionOf")
        is_every_child_optional = all(child.get("_isOptional") for child in children)

        if self.get("_isOptional") and is_every_child_optional:
            completed = all(child.get(completion_attribute) for child in children)
        elif require_completion_of == -1:
            completed = all(
                child.get(completion_attribute) or child.get("_isOptional")
                for child in children
            )
        else:
            completed_count = sum(
                1 for child in children
                if child.get(completion_attribute) and not child.get("_isOptional")
            )
            completed = completed_count >= require_completion_of

        logger.debug(f"{self!r} {completion_attribute} -> {completed}")
        self.set(completion_attribute, completed)
        return completed

    def check_visited_status(self) -> bool:
        """Visited once any available child is visited or complete."""
        is_visited = any(
            child.get(VISITED) or child.get(COMPLETE) or child.get(INTERACTION_COMPLETE)
            for child in self.get_available_child_models()
        )
        if is_visited:
            self.set(VISITED, True)
        return is_visited

    def set_completion_status(self) -> None:
        if not self.get("_isVisible"):
            return
        self.set({COMPLETE: True, INTERACTION_COMPLETE: True, VISITED: True})

    def reset(self, kind: Union[str, bool] = "hard", can_reset: Optional[bool] = None) -> bool:
        """
        Reset completion state.

        Args:
            kind: "hard" (or True) clears _isComplete and
                _isInteractionComplete; "soft" clears only the latter
            can_reset: Defaults to the node's _canReset

        Returns:
            True if a reset happened
        """
        if can_reset is None:
            can_reset = self.get("_canReset")
        if not can_reset:
            return False
        is_hard_reset = kind == "hard" or kind is True
        is_soft_reset = kind == "soft"
        if not is_hard_reset and not is_soft_reset:
            return False
        reset_data: dict[str, Any] = {"_isEnabled": True, INTERACTION_COMPLETE: False}
        if is_hard_reset:
            reset_data[COMPLETE] = False
        self.set(reset_data)
        self.trigger("reset", self)
        return True

    def check_if_reset_on_revisit(self) -> bool:
        return self.reset(self.get("_isResetOnRevisit"))

    # ─────────────────────────────────────────────────────────────────────────
    # Locking
    # ─────────────────────────────────────────────────────────────────────────

    def check_locking(self) -> None:
        """Recompute _isLocked on the available children from _lockType."""
        lock_type = self.get("_lockType")
        if not lock_type:
            return
        strategies: dict[str, Callable[[], None]] = {
            "sequential": self.set_sequential_locking,
            "unlockFirst": self.set_unlock_first_locking,
            "lockLast": self.set_lock_last_locking,
            "custom": self.set_custom_locking,
        }
        strategy = strategies.get(lock_type)
        if strategy is None:
            warn_once(logger, f"check_locking: unknown _lockType {lock_type!r} found on {self.id!r}")
            return
        strategy()

    def set_sequential_locking(self) -> None:
        children = self.get_available_child_models()
        for previous_child, child in zip(children, children[1:]):
            # Once one child is locked every later child is too
            is_locked_by_previous = bool(previous_child.get(LOCKED)) or _is_blocking(previous_child)
            child.set(LOCKED, is_locked_by_previous)

    def set_unlock_first_locking(self) -> None:
        children = self.get_available_child_models()
        if not children:
            return
        first_child, others = children[0], children[1:]
        is_locked_by_first = _is_blocking(first_child)
        for child in others:
            child.set(LOCKED, is_locked_by_first)

    def set_lock_last_locking(self) -> None:
        children = self.get_available_child_models()
        if not children:
            return
        *others, last_child = children
        last_child.set(LOCKED, any(_is_blocking(child) for child in others))

    def set_custom_locking(self) -> None:
        for child in self.get_available_child_models():
            child.set(LOCKED, self.should_lock(child))

    def should_lock(self, child: ContentNode) -> bool:
        """
        True if any node in child's _lockedBy list is available and
        locked or incomplete-and-mandatory. Unknown ids never lock.
        """
        locked_by = child.get("_lockedBy")
        if not locked_by:
            return False
        for locking_id in locked_by:
            if self.store is None or not self.store.has_id(locking_id):
                logger.warning(
                    f"should_lock: unknown _lockedBy ID {locking_id!r} found on {child.id!r}"
                )
                continue
            other = self.store.find_by_id(locking_id)
            if other.get("_isAvailable") and (other.get(LOCKED) or _is_blocking(other)):
                return True
        return False

    # ─────────────────────────────────────────────────────────────────────────
    # Trackable state
    # ─────────────────────────────────────────────────────────────────────────

    def trackable(self) -> list[str]:
        return list(type(self).TRACKABLE)

    def get_trackable_state(self) -> dict[str, Any]:
        state = self.to_dict()
        return {name: state[name] for name in self.trackable() if name in state}

    def set_trackable_state(self, state: dict[str, Any]) -> ContentNode:
        names = self.trackable()
        self.set({name: value for name, value in state.items() if name in names})
        return self

    def setup_trackables(self) -> None:
        """Batch trackable attribute changes into one deferred state:change."""
        self.on("change", self._on_trackable_change)

    def _on_trackable_change(self, node: ContentNode, changed: dict[str, Any]) -> None:
        if self._trackable_queued:
            return
        if self.store is None or not self.store.is_started:
            return
        if not set(changed).intersection(self.trackable()):
            return
        self._trackable_queued = True
        self.scheduler.defer(self._trigger_trackable_state)

    def _trigger_trackable_state(self) -> None:
        self._trackable_queued = False
        state = self.get_trackable_state()
        self.trigger("state:change", self, state)
        if self.store is not None:
            self.store.trigger("state:change", self, state)

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────────

    def find_relative_model(
        self,
        relative_path: Union[str, Sequence[RelativeDescriptor]],
        *,
        limit_parent_id: Optional[str] = None,
        filter: Optional[Callable[[ContentNode], bool]] = None,
        loop: bool = False,
    ) -> Optional[ContentNode]:
        """
        Resolve a relative path such as "@block+1" from this node.

        Such that in the tree:
            { a1: { b1: [c1, c2], b2: [c3, c4] }, a2: { b3: [c5, c6] } }

            c1.find_relative_model("@block+1") == b2
            c1.find_relative_model("@component+4") == c5
            c1.find_relative_model("@article+1 @component=-1") == c6

        Returns:
            The target node, or None when there is no such target
        """
        return find_relative(
            self,
            relative_path,
            limit_parent_id=limit_parent_id,
            filter=filter,
            loop=loop,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Cloning
    # ─────────────────────────────────────────────────────────────────────────

    def deep_clone(
        self,
        modifier: Optional[Callable[[ContentNode, ContentNode], None]] = None,
    ) -> ContentNode:
        """
        Clone this node and its managed children into a new branch.

        Each clone gets a unique id (original id + separator + suffix)
        unless the modifier already assigned a different one, is added
        to the store, and is set up only after its children exist.

        Args:
            modifier: Called as modifier(clone, original) for every node

        Returns:
            The cloned root of the branch

        Raises:
            CloneError: If a child cannot be cloned
        """
        children = list(self.get_children()) if self.has_managed_children else []
        for child in children:
            if not isinstance(child, ContentNode):
                raise CloneError(f"Cannot deep_clone child {child!r} of {self!r}")

        clone = type(self)(self.to_dict(), store=self.store, config=self.config)
        if modifier is not None:
            modifier(clone, self)

        cloned_id = clone.id
        has_id = bool(cloned_id)
        if has_id and cloned_id == self.id:
            cloned_id = f"{cloned_id}{self.config.clone_id_separator}{_next_clone_suffix()}"
            clone.set("_id", cloned_id)
        if has_id and self.store is not None:
            self.store.add(clone)

        def child_modifier(child_clone: ContentNode, child: ContentNode) -> None:
            if has_id:
                child_clone.set("_parentId", cloned_id)
            if modifier is not None:
                modifier(child_clone, child)

        for child in children:
            child.deep_clone(child_modifier)

        clone.setup_model()
        parent = clone.get_parent()
        if parent is not None:
            # Refresh so a set-up parent starts listening to the clone
            parent.get_children()
        logger.debug(f"Cloned {self!r} as {clone!r}")
        return clone
