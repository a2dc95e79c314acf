"""
Unit Tests for child locking strategies

sequential / unlockFirst / lockLast / custom, plus menu recursion.
"""

import logging

from content_tree.store import Store
from conftest import settle


def locked_ids(nodes):
    return [node.id for node in nodes if node.get("_isLocked")]


def article_store(lock_type: str, children: list[dict]) -> Store:
    """course -> a-05 (with _lockType) -> one block per entry in children."""
    records = [
        {"_id": "course", "_type": "course"},
        {"_id": "a-05", "_parentId": "course", "_type": "article", "_lockType": lock_type},
    ]
    for i, attrs in enumerate(children):
        records.append({"_id": f"b-{i}", "_parentId": "a-05", "_type": "block", "_trackingId": i, **attrs})
        records.append({"_id": f"c-{i}", "_parentId": f"b-{i}", "_type": "component"})
    store = Store()
    store.load(records)
    settle(store)
    return store


def complete(store: Store, node_id: str) -> None:
    store.find_by_id(node_id).set("_isComplete", True)
    settle(store)


class TestSequentialLocking:
    """Child i locked iff child i-1 is locked or incomplete and mandatory."""

    def test_sequential_when_first_incomplete_then_rest_locked(self):
        store = article_store("sequential", [{}, {}, {}])
        blocks = store.find_by_id("a-05").get_children()

        assert locked_ids(blocks) == ["b-1", "b-2"]

    def test_sequential_when_first_complete_then_second_unlocked(self):
        store = article_store("sequential", [{}, {}, {}])

        store.find_by_id("b-0").set("_isComplete", True)
        settle(store)

        assert locked_ids(store.find_by_id("a-05").get_children()) == ["b-2"]

    def test_sequential_when_component_completes_then_lock_cascades(self):
        """Completing a block's component completes the block and unlocks the next."""
        store = article_store("sequential", [{}, {}, {}])

        complete(store, "c-0")
        complete(store, "c-1")

        assert locked_ids(store.find_by_id("a-05").get_children()) == []

    def test_sequential_when_previous_optional_then_next_unlocked(self):
        store = article_store("sequential", [{"_isOptional": True}, {}, {}])

        assert locked_ids(store.find_by_id("a-05").get_children()) == ["b-2"]

    def test_sequential_when_first_child_then_never_locked(self):
        store = article_store("sequential", [{}, {}])
        store.find_by_id("b-0").set("_isLocked", True)

        store.find_by_id("a-05").check_locking()

        assert store.find_by_id("b-0").get("_isLocked") is True
        assert store.find_by_id("b-1").get("_isLocked") is True

    def test_sequential_when_recomputed_twice_then_no_redundant_events(self):
        """A second recompute with no state change writes nothing."""
        store = article_store("sequential", [{}, {}, {}])
        article = store.find_by_id("a-05")
        events = []
        for block in article.get_children():
            block.on("change", lambda node, changed: events.append((node.id, changed)))

        article.check_locking()
        article.check_locking()

        assert events == []


class TestUnlockFirstLocking:
    """All but the first locked iff the first is incomplete and mandatory."""

    def test_unlock_first_when_first_incomplete_then_others_locked(self):
        store = article_store("unlockFirst", [{}, {}, {}])

        assert locked_ids(store.find_by_id("a-05").get_children()) == ["b-1", "b-2"]

    def test_unlock_first_when_first_complete_then_all_unlocked(self):
        store = article_store("unlockFirst", [{}, {}, {}])

        complete(store, "b-0")

        assert locked_ids(store.find_by_id("a-05").get_children()) == []


class TestLockLastLocking:
    """Last locked iff any other child is incomplete and mandatory."""

    def test_lock_last_when_others_incomplete_then_last_locked(self):
        store = article_store("lockLast", [{}, {}, {}])

        assert locked_ids(store.find_by_id("a-05").get_children()) == ["b-2"]

    def test_lock_last_when_others_complete_or_optional_then_unlocked(self):
        store = article_store("lockLast", [{}, {"_isOptional": True}, {}])

        complete(store, "b-0")

        assert locked_ids(store.find_by_id("a-05").get_children()) == []


class TestCustomLocking:
    """Each child locked by its own _lockedBy list."""

    def test_custom_when_locked_by_incomplete_then_locked(self):
        store = article_store("custom", [{}, {"_lockedBy": ["b-0"]}, {"_lockedBy": ["b-0", "b-1"]}])

        assert locked_ids(store.find_by_id("a-05").get_children()) == ["b-1", "b-2"]

    def test_custom_when_all_references_complete_then_unlocked(self):
        store = article_store("custom", [{}, {"_lockedBy": ["b-0"]}, {"_lockedBy": ["b-0", "b-1"]}])

        complete(store, "b-0")
        assert locked_ids(store.find_by_id("a-05").get_children()) == ["b-2"]

        complete(store, "b-1")
        assert locked_ids(store.find_by_id("a-05").get_children()) == []

    def test_custom_when_reference_unknown_then_warns_and_not_locked(self, caplog):
        with caplog.at_level(logging.WARNING):
            store = article_store("custom", [{}, {"_lockedBy": ["b-missing"]}])

        assert locked_ids(store.find_by_id("a-05").get_children()) == []
        assert "b-missing" in caplog.text

    def test_custom_when_reference_unavailable_then_not_locked(self):
        store = article_store("custom", [{"_isAvailable": False}, {"_lockedBy": ["b-0"]}])

        assert store.find_by_id("b-1").get("_isLocked") is False


class TestLockTypeEdgeCases:
    """Unknown lock types and empty containers."""

    def test_check_locking_when_unknown_type_then_warns_once(self, caplog):
        with caplog.at_level(logging.WARNING):
            store = article_store("random", [{}, {}])
            store.find_by_id("a-05").check_locking()

        assert caplog.text.count("unknown _lockType 'random'") == 1
        assert locked_ids(store.find_by_id("a-05").get_children()) == []

    def test_check_locking_when_no_children_then_nothing_happens(self):
        store = Store()
        store.add_all([
            {"_id": "course", "_type": "course"},
            {"_id": "a-05", "_parentId": "course", "_type": "article", "_lockType": "lockLast"},
        ])

        store.find_by_id("a-05").check_locking()


class TestMenuLocking:
    """Menus recurse check_locking into child menus."""

    def test_menu_when_custom_locking_then_nested_menu_locks_children(self):
        store = Store()
        store.load([
            {"_id": "course", "_type": "course", "_lockType": "custom"},
            {"_id": "m-05", "_parentId": "course", "_type": "menu", "_lockType": "sequential"},
            {"_id": "co-05", "_parentId": "m-05", "_type": "page"},
            {"_id": "co-10", "_parentId": "m-05", "_type": "page"},
            {"_id": "a-05", "_parentId": "co-05", "_type": "article"},
            {"_id": "a-10", "_parentId": "co-10", "_type": "article"},
            {"_id": "b-05", "_parentId": "a-05", "_type": "block", "_trackingId": 0},
            {"_id": "b-10", "_parentId": "a-10", "_type": "block", "_trackingId": 1},
            {"_id": "c-05", "_parentId": "b-05", "_type": "component"},
            {"_id": "c-10", "_parentId": "b-10", "_type": "component"},
        ])
        settle(store)
        assert store.find_by_id("co-10").get("_isLocked") is True

        store.find_by_id("co-05").set("_isComplete", True, silent=True)
        store.course.check_locking()

        assert store.find_by_id("co-10").get("_isLocked") is False
