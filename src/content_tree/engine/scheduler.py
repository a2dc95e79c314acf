"""
Module: engine.scheduler

Purpose:
    Deferred execution queue for completion cascades. Cascades never run
    inside the change handler that caused them; they are queued and run
    after the current synchronous work, so a burst of child changes in the
    same tick produces one settled state instead of a cascade storm.

Key Classes:
    - CompletionScheduler: FIFO of deferred calls plus a pending-work count

Dependencies:
    - asyncio: Cooperative draining and the async settle() barrier
    - collections.deque: Deferred call queue

Used By:
    - content_tree.store.Store: One scheduler per store
    - core.models.node.ContentNode: Completion / visited / trackable deferral
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Callable, Deque, List, Tuple

logger = logging.getLogger(__name__)


class CompletionScheduler:
    """
    Reference-counted deferral queue with a quiescence barrier.

    The pending count is incremented before a call is queued and
    decremented after that call has run, so ``pending == 0`` means no
    cascade is queued or running. External asynchronous checks can join
    the barrier with ``checking()`` / ``checked()``.

    Inside a running asyncio loop queued calls drain automatically on the
    next loop iteration. Without a loop, callers drain explicitly with
    ``run_pending()``.

    Usage:
        scheduler = CompletionScheduler()
        scheduler.defer(node.check_completion_status_for, "_isComplete")
        scheduler.run_pending()            # synchronous callers
        await scheduler.settle()           # async callers

    Attributes:
        pending: Number of checks queued or in flight.
    """

    def __init__(self) -> None:
        self._queue: Deque[Tuple[Callable[..., Any], Tuple[Any, ...]]] = deque()
        self._pending = 0
        self._settled_callbacks: List[Callable[[], Any]] = []
        self._drain_scheduled = False

    @property
    def pending(self) -> int:
        """Checks queued or running."""
        return self._pending

    @property
    def is_settled(self) -> bool:
        return self._pending == 0

    # ─────────────────────────────────────────────────────────────────────────
    # Counting
    # ─────────────────────────────────────────────────────────────────────────

    def checking(self) -> None:
        """Enter a check: must be paired with checked()."""
        self._pending += 1

    def checked(self) -> None:
        """Leave a check; fires settle callbacks when the count reaches zero."""
        if self._pending == 0:
            logger.error("checked() called with no outstanding completion checks")
            return
        self._pending -= 1
        if self._pending == 0:
            self._fire_settled()

    def _fire_settled(self) -> None:
        callbacks, self._settled_callbacks = self._settled_callbacks, []
        for callback in callbacks:
            callback()

    # ─────────────────────────────────────────────────────────────────────────
    # Deferral
    # ─────────────────────────────────────────────────────────────────────────

    def defer(self, fn: Callable[..., Any], *args: Any) -> None:
        """
        Queue fn(*args) to run after the current synchronous work.

        The pending count is raised before the call is queued.
        """
        self.checking()
        self._queue.append((fn, args))
        self._schedule_drain()

    def _schedule_drain(self) -> None:
        if self._drain_scheduled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._drain_scheduled = True
        loop.call_soon(self._drain_from_loop)

    def _drain_from_loop(self) -> None:
        self._drain_scheduled = False
        self.run_pending()

    def run_pending(self) -> int:
        """
        Run queued calls, including any they queue in turn, until empty.

        A call that raises is logged and does not stop the queue; the
        pending count is still decremented for it.

        Returns:
            Number of calls run.
        """
        ran = 0
        while self._queue:
            fn, args = self._queue.popleft()
            try:
                fn(*args)
            except Exception:
                logger.exception(f"Deferred call {getattr(fn, '__qualname__', fn)!r} failed")
            finally:
                ran += 1
                self.checked()
        return ran

    async def settle(self) -> None:
        """
        Wait until no checks are pending.

        Drains the queue and yields to the event loop while externally
        bracketed checks (checking()/checked()) are still open. Has no
        internal timeout; wrap in asyncio.wait_for for a deadline.
        """
        while self._pending:
            if self._queue:
                self.run_pending()
                continue
            await asyncio.sleep(0)

    def when_settled(self, callback: Callable[[], Any]) -> None:
        """Call callback now if settled, otherwise once the count reaches zero."""
        if self._pending == 0:
            callback()
            return
        self._settled_callbacks.append(callback)
