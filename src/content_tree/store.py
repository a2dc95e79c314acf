"""
Module: store

Purpose:
    The flat, id-indexed collection that owns every ContentNode. Records
    are added in load order (course first), wrapped in the model class the
    registry selects, and indexed by _id. The tree itself is never stored:
    nodes derive children and parents from the store on demand, and the
    store invalidates those memoized links whenever it is mutated.

Key Functions:
    - Store.add() / remove(): Mutate the collection and the id index
    - Store.find_by_id(): O(1) lookup (logs a warning on a miss)
    - Store.validate(): Identity and tracking integrity passes
    - Store.load(): add_all + validate + setup_models in one call
    - Store.find_by_tracking_position(): Decode a resume position

Dependencies:
    - content_tree.core (models, registry, validator, serialization)
    - content_tree.engine (scheduler, tracking)

Used By:
    - Loaders, navigation and reporting code
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence, Union

from .config import DEFAULT_CONFIG, EngineConfig
from .core.models import ContentNode, Events, get_model_class
from .core.schemas.validator import IntegrityReport, check_integrity, validate_record
from .core.utils.serialization import flatten_records
from .engine.scheduler import CompletionScheduler
from .engine.tracking import TrackingPosition, from_tracking_position

logger = logging.getLogger(__name__)


Record = Mapping[str, Any]
MutationCallback = Callable[[str, ContentNode], Any]


class Store(Events):
    """
    Owner of all content nodes for one course.

    Usage:
        store = Store()
        store.load(records)              # add, validate, set up
        store.scheduler.run_pending()    # settle the initial cascades
        store.start()                    # begin emitting state:change

    Attributes:
        config: Engine configuration shared with every node
        scheduler: Deferred cascade queue shared with every node
        course: The first course node added (None until added)
        is_started: True once start() has been called

    Events:
        "add" / "remove" (node): After the collection changes
        "state:change" (node, state): Batched trackable state changes
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        scheduler: Optional[CompletionScheduler] = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self.scheduler = scheduler or CompletionScheduler()
        self.course: Optional[ContentNode] = None
        self.is_started = False
        self._nodes: list[ContentNode] = []
        self._by_id: dict[str, ContentNode] = {}
        self._watchers: set[ContentNode] = set()
        self._subscribers: list[MutationCallback] = []

    # ─────────────────────────────────────────────────────────────────────────
    # Collection protocol
    # ─────────────────────────────────────────────────────────────────────────

    def __iter__(self) -> Iterator[ContentNode]:
        return iter(list(self._nodes))

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, item: Union[str, ContentNode]) -> bool:
        if isinstance(item, str):
            return item in self._by_id
        return any(node is item for node in self._nodes)

    def __repr__(self) -> str:
        course_id = self.course.id if self.course is not None else None
        return f"Store(course={course_id!r}, nodes={len(self._nodes)})"

    # ─────────────────────────────────────────────────────────────────────────
    # Mutation
    # ─────────────────────────────────────────────────────────────────────────

    def add(self, record: Union[Record, ContentNode]) -> ContentNode:
        """
        Wrap a record in its model class and index it.

        Hierarchy is not resolved here; nodes derive it on first access.

        Args:
            record: Plain record, or an already built node (deep clones)

        Returns:
            The node now held by the store

        Raises:
            ValidationError: If the record has no _type (or fails the
                schema when strict_records is set)
        """
        if isinstance(record, ContentNode):
            node = record
            node.store = self
        else:
            validate_record(record, strict=self.config.strict_records)
            model_class = get_model_class(record)
            node = model_class(dict(record), store=self)

        node_id = node.id
        if node_id:
            if node_id in self._by_id:
                # Reported by validate(); the first node keeps the id
                logger.debug(f"Duplicate _id {node_id!r} added to store")
            else:
                self._by_id[node_id] = node
        if self.course is None and node.type == "course":
            self.course = node

        self._nodes.append(node)
        self._notify_mutation("add", node)
        return node

    def remove(self, node: ContentNode) -> None:
        """Remove one node. Children are left in place."""
        for index, candidate in enumerate(self._nodes):
            if candidate is node:
                del self._nodes[index]
                break
        else:
            logger.warning(f"remove: {node!r} is not in the store")
            return

        node_id = node.id
        if node_id and self._by_id.get(node_id) is node:
            del self._by_id[node_id]
            replacement = next((other for other in self._nodes if other.id == node_id), None)
            if replacement is not None:
                self._by_id[node_id] = replacement
        if self.course is node:
            self.course = None
        self._notify_mutation("remove", node)

    def add_all(self, records: Union[Sequence[Record], Mapping[str, Any]]) -> list[ContentNode]:
        """
        Add a whole record set, course first.

        Raises:
            ValueError: If there is no course record
        """
        flat = flatten_records(records)
        if not flat or flat[0].get("_type") != "course":
            raise ValueError("Course data must contain a course record")
        nodes = [self.add(record) for record in flat]
        logger.debug(f"Added {len(nodes)} records to store")
        return nodes

    def load(
        self,
        records: Union[Sequence[Record], Mapping[str, Any]],
        *,
        validate: bool = True,
        setup: bool = True,
    ) -> Store:
        """
        Add, validate and set up a record set.

        Raises:
            IntegrityError: If validation finds any violation
        """
        self.add_all(records)
        if validate:
            self.validate()
        if setup:
            self.setup_models()
        return self

    def validate(self) -> IntegrityReport:
        """
        Run the identity and tracking passes over every node.

        Raises:
            IntegrityError: Listing every offending id
        """
        return check_integrity([node.attributes for node in self._nodes], self.config)

    def setup_models(self) -> None:
        """Attach cascade listeners on every node and queue initial checks."""
        for node in self:
            node.setup_model()

    def start(self) -> None:
        """Begin emitting state:change for trackable attribute changes."""
        self.is_started = True
        self.trigger("start", self)

    # ─────────────────────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────────────────────

    def has_id(self, node_id: str) -> bool:
        return node_id in self._by_id

    def find_by_id(self, node_id: str) -> Optional[ContentNode]:
        node = self._by_id.get(node_id)
        if node is None:
            logger.warning(f"find_by_id: unable to find {node_id!r}")
        return node

    def filter(self, predicate: Callable[[ContentNode], bool]) -> list[ContentNode]:
        """Nodes matching predicate, in insertion order."""
        return [node for node in self._nodes if predicate(node)]

    def where(self, attributes: Mapping[str, Any]) -> list[ContentNode]:
        """Nodes whose attributes equal every given value."""
        return self.filter(
            lambda node: all(node.get(name) == value for name, value in attributes.items())
        )

    def find_by_tracking_id(self, tracking_id: Any) -> Optional[ContentNode]:
        return next((node for node in self._nodes if node.get("_trackingId") == tracking_id), None)

    def find_by_tracking_position(self, position: TrackingPosition) -> Optional[ContentNode]:
        return from_tracking_position(self, position)

    # ─────────────────────────────────────────────────────────────────────────
    # Cache invalidation
    # ─────────────────────────────────────────────────────────────────────────

    def watch(self, node: ContentNode) -> None:
        """Register node's memoized hierarchy for invalidation on mutation."""
        self._watchers.add(node)

    def subscribe(self, callback: MutationCallback) -> None:
        """Call callback(event, node) after every add / remove."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: MutationCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _notify_mutation(self, event: str, node: ContentNode) -> None:
        logger.debug(f"Store {event}: {node!r}")
        watchers, self._watchers = self._watchers, set()
        for watcher in watchers:
            watcher.invalidate_hierarchy()
        self.trigger(event, node)
        for callback in list(self._subscribers):
            callback(event, node)
