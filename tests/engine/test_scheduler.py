"""
Unit Tests for CompletionScheduler

Tests the pending count ordering, synchronous draining and the async
settle() barrier.
"""

import asyncio
import logging

from content_tree.engine.scheduler import CompletionScheduler


class TestDefer:
    """Tests for defer() and run_pending()."""

    def test_defer_when_queued_then_pending_before_run(self):
        scheduler = CompletionScheduler()
        calls = []

        scheduler.defer(calls.append, 1)

        assert calls == []
        assert scheduler.pending == 1
        assert not scheduler.is_settled

    def test_run_pending_when_called_then_fifo_and_settled(self):
        scheduler = CompletionScheduler()
        calls = []
        scheduler.defer(calls.append, 1)
        scheduler.defer(calls.append, 2)

        ran = scheduler.run_pending()

        assert ran == 2
        assert calls == [1, 2]
        assert scheduler.is_settled

    def test_run_pending_when_call_defers_more_then_runs_them_too(self):
        scheduler = CompletionScheduler()
        calls = []

        def cascade(depth):
            calls.append(depth)
            if depth < 3:
                scheduler.defer(cascade, depth + 1)

        scheduler.defer(cascade, 0)
        scheduler.run_pending()

        assert calls == [0, 1, 2, 3]
        assert scheduler.pending == 0

    def test_run_pending_when_nested_defer_then_count_never_hits_zero_early(self):
        """The count only reaches zero after the last cascade finished."""
        scheduler = CompletionScheduler()
        observed = []

        def outer():
            scheduler.defer(inner)
            observed.append(scheduler.pending)

        def inner():
            observed.append(scheduler.pending)

        scheduler.defer(outer)
        scheduler.run_pending()

        assert observed == [2, 1]

    def test_run_pending_when_call_raises_then_logged_and_queue_continues(self, caplog):
        scheduler = CompletionScheduler()
        calls = []

        def broken():
            raise RuntimeError("boom")

        scheduler.defer(broken)
        scheduler.defer(calls.append, "after")

        with caplog.at_level(logging.ERROR):
            scheduler.run_pending()

        assert calls == ["after"]
        assert scheduler.is_settled
        assert "boom" in caplog.text


class TestCounting:
    """Tests for checking() / checked() / when_settled()."""

    def test_checked_when_balanced_then_settled_callbacks_fire(self):
        scheduler = CompletionScheduler()
        fired = []
        scheduler.checking()
        scheduler.when_settled(lambda: fired.append(True))

        assert fired == []
        scheduler.checked()
        assert fired == [True]

    def test_when_settled_when_already_settled_then_called_immediately(self):
        scheduler = CompletionScheduler()
        fired = []

        scheduler.when_settled(lambda: fired.append(True))

        assert fired == [True]

    def test_checked_when_nothing_pending_then_logs_error(self, caplog):
        scheduler = CompletionScheduler()

        with caplog.at_level(logging.ERROR):
            scheduler.checked()

        assert scheduler.pending == 0
        assert "no outstanding" in caplog.text


class TestSettle:
    """Tests for the async quiescence barrier."""

    def test_settle_when_queue_has_work_then_drained(self):
        scheduler = CompletionScheduler()
        calls = []

        async def main():
            scheduler.defer(calls.append, "a")
            scheduler.defer(calls.append, "b")
            await scheduler.settle()

        asyncio.run(main())

        assert calls == ["a", "b"]
        assert scheduler.is_settled

    def test_settle_when_external_check_open_then_waits_for_it(self):
        """An externally bracketed check holds the barrier until checked()."""
        scheduler = CompletionScheduler()
        order = []

        async def external_check():
            scheduler.checking()
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            order.append("checked")
            scheduler.checked()

        async def main():
            task = asyncio.create_task(external_check())
            await asyncio.sleep(0)
            await scheduler.settle()
            order.append("settled")
            await task

        asyncio.run(main())

        assert order == ["checked", "settled"]

    def test_defer_when_loop_running_then_drains_without_explicit_call(self):
        scheduler = CompletionScheduler()
        calls = []

        async def main():
            scheduler.defer(calls.append, 1)
            await asyncio.sleep(0)
            return list(calls)

        assert asyncio.run(main()) == [1]
