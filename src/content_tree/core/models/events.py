"""
Module: events

Purpose:
    Minimal synchronous publish/subscribe mixin used by models and the store.
    Callbacks registered for an event name run in registration order when the
    event is triggered.

Key Classes:
    - Events: on / off / once / trigger
    - ModelEvent: Child change carried up the ancestor chain as bubble:<type>

Dependencies:
    - typing (std)

Used By:
    - core.models.locking.LockingModel (attribute change notifications)
    - content_tree.store.Store (add / remove / state:change)
    - core.models.node.ContentNode (bubble:change:_isComplete and friends)
"""

from __future__ import annotations

from typing import Any, Callable, Optional


Callback = Callable[..., Any]


class Events:
    """
    Event registry mixin.

    Event names are free-form strings; models use ``change:<attribute>``
    for per-attribute notifications and ``change`` for a batch.

    Example:
        >>> seen = []
        >>> emitter = Events()
        >>> emitter.on("ping", seen.append)
        >>> emitter.trigger("ping", 1)
        >>> seen
        [1]
    """

    _listeners: dict[str, list[Callback]]

    def _ensure_listeners(self) -> dict[str, list[Callback]]:
        listeners = self.__dict__.get("_listeners")
        if listeners is None:
            listeners = {}
            self._listeners = listeners
        return listeners

    def on(self, event: str, callback: Callback) -> None:
        """Register a callback for an event name."""
        self._ensure_listeners().setdefault(event, []).append(callback)

    def once(self, event: str, callback: Callback) -> None:
        """Register a callback that is removed after its first call."""
        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return callback(*args)
        self.on(event, wrapper)

    def off(self, event: Optional[str] = None, callback: Optional[Callback] = None) -> None:
        """
        Remove callbacks.

        Args:
            event: Event name; None removes matching callbacks from all events
            callback: Callback to remove; None removes every callback for the event
        """
        listeners = self._ensure_listeners()
        names = [event] if event is not None else list(listeners)
        for name in names:
            if name not in listeners:
                continue
            if callback is None:
                del listeners[name]
                continue
            listeners[name] = [cb for cb in listeners[name] if cb != callback]
            if not listeners[name]:
                del listeners[name]

    def has_listeners(self, event: str) -> bool:
        return bool(self._ensure_listeners().get(event))

    def trigger(self, event: str, *args: Any) -> None:
        """Call every callback registered for the event with the given args."""
        callbacks = self._ensure_listeners().get(event)
        if not callbacks:
            return
        # Copy so handlers can unsubscribe while we iterate
        for callback in list(callbacks):
            callback(*args)


class ModelEvent:
    """
    A change event bubbling up from a descendant.

    Each ancestor it reaches appends itself to ``path`` and re-triggers it
    as ``bubble:<type>`` and ``bubble``. A handler can call
    ``stop_propagation()`` to keep it from going any higher.

    Attributes:
        type: Original event name, e.g. ``change:_isComplete``
        target: The node the change happened on
        value: The new attribute value
        path: Ancestors reached so far, nearest first
    """

    def __init__(self, type: str, target: Any, value: Any = None):
        self.type = type
        self.target = target
        self.value = value
        self.path: list[Any] = []
        self.can_bubble = True

    def add_path(self, node: Any) -> None:
        self.path.append(node)

    def stop_propagation(self) -> None:
        self.can_bubble = False

    def __repr__(self) -> str:
        return f"ModelEvent({self.type!r}, target={self.target!r}, depth={len(self.path)})"
