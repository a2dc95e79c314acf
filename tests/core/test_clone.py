"""
Unit Tests for ContentNode.deep_clone
"""

import pytest

from content_tree.config import EngineConfig
from content_tree.core.models import CloneError, ContentNode
from content_tree.store import Store
from conftest import course_records, settle


class TestDeepClone:
    """Tests for cloning a subtree into the store."""

    def test_deep_clone_when_block_then_new_ids_and_registered(self, store):
        clone = store.find_by_id("b-05").deep_clone()

        assert clone.id != "b-05"
        assert clone.id.startswith("b-05_c")
        assert store.find_by_id(clone.id) is clone
        child_ids = [child.id for child in clone.get_children()]
        assert len(child_ids) == 2
        assert all(store.has_id(child_id) for child_id in child_ids)
        assert not {"c-05", "c-10"} & set(child_ids)

    def test_deep_clone_when_block_then_children_reparented_to_clone(self, store):
        clone = store.find_by_id("b-05").deep_clone()

        for child in clone.get_children():
            assert child.get("_parentId") == clone.id
            assert child.get_parent() is clone

    def test_deep_clone_when_block_then_original_untouched(self, store):
        original = store.find_by_id("b-05")

        original.deep_clone()

        assert [child.id for child in original.get_children()] == ["c-05", "c-10"]

    def test_deep_clone_when_block_then_sibling_of_original(self, store):
        clone = store.find_by_id("b-05").deep_clone()

        siblings = [node.id for node in store.find_by_id("a-05").get_children()]
        assert siblings == ["b-05", "b-10", clone.id]

    def test_deep_clone_when_cloned_twice_then_unique_ids(self, store):
        first = store.find_by_id("c-05").deep_clone()
        second = store.find_by_id("c-05").deep_clone()

        assert first.id != second.id

    def test_deep_clone_when_modifier_assigns_id_then_id_kept(self, store):
        def modifier(clone, original):
            clone.set("_id", f"copy-{original.id}")

        clone = store.find_by_id("b-05").deep_clone(modifier)

        assert clone.id == "copy-b-05"
        assert [child.id for child in clone.get_children()] == ["copy-c-05", "copy-c-10"]
        assert all(child.get("_parentId") == "copy-b-05" for child in clone.get_children())

    def test_deep_clone_when_custom_separator_then_used(self):
        store = Store(EngineConfig(clone_id_separator="::"))
        store.load(course_records())

        clone = store.find_by_id("c-05").deep_clone()

        assert clone.id.startswith("c-05::c")

    def test_deep_clone_when_clone_completed_then_cascade_is_independent(self, store):
        clone = store.find_by_id("b-05").deep_clone()
        settle(store)

        for child in clone.get_children():
            child.set("_isComplete", True)
        settle(store)

        assert clone.get("_isComplete") is True
        assert store.find_by_id("b-05").get("_isComplete") is False

    def test_deep_clone_when_attributes_mutated_then_original_unaffected(self, store):
        original = store.find_by_id("c-05")
        original.set("_items", [{"title": "one"}])

        clone = original.deep_clone()
        clone.get("_items")[0]["title"] = "two"

        assert original.get("_items")[0]["title"] == "one"

    def test_deep_clone_when_child_not_a_node_then_raises(self, store):
        block = store.find_by_id("b-05")
        block.set_children([*block.get_children(), object()])

        with pytest.raises(CloneError):
            block.deep_clone()

    def test_deep_clone_when_detached_node_then_clone_without_store(self):
        node = ContentNode({"_id": "x", "_type": "block"})

        clone = node.deep_clone()

        assert clone.store is None
        assert clone.id.startswith("x_c")
