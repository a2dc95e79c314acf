"""
Unit Tests for relative addressing

Parsing of relative path strings and their resolution against the tree.
"""

import pytest

from content_tree.engine.relative import (
    RelativeDescriptor,
    RelativePathError,
    format_relative_path,
    parse_relative_path,
)
from content_tree.store import Store
from conftest import settle


@pytest.fixture
def small_store() -> Store:
    """
    course -> b1 -> c1, c2
           -> b2 -> c3
    """
    store = Store()
    store.load([
        {"_id": "course", "_type": "course"},
        {"_id": "b1", "_parentId": "course", "_type": "block", "_trackingId": 0},
        {"_id": "b2", "_parentId": "course", "_type": "block", "_trackingId": 1},
        {"_id": "c1", "_parentId": "b1", "_type": "component"},
        {"_id": "c2", "_parentId": "b1", "_type": "component"},
        {"_id": "c3", "_parentId": "b2", "_type": "component"},
    ])
    settle(store)
    return store


class TestParseRelativePath:
    """Tests for the tokenizer and parser."""

    def test_parse_when_offset_then_offset_descriptor(self):
        assert parse_relative_path("@block+1") == [RelativeDescriptor("block", offset=1)]

    def test_parse_when_negative_offset_then_negative(self):
        assert parse_relative_path("@component-2") == [RelativeDescriptor("component", offset=-2)]

    def test_parse_when_inset_then_inset_descriptor(self):
        assert parse_relative_path("@component=0") == [RelativeDescriptor("component", inset=0)]

    def test_parse_when_negative_inset_then_negative(self):
        assert parse_relative_path("@component=-1") == [RelativeDescriptor("component", inset=-1)]

    def test_parse_when_no_number_then_zero_offset(self):
        assert parse_relative_path("@page") == [RelativeDescriptor("page", offset=0)]

    def test_parse_when_no_at_sign_then_accepted(self):
        assert parse_relative_path("block+2") == [RelativeDescriptor("block", offset=2)]

    def test_parse_when_chained_then_all_descriptors_in_order(self):
        descriptors = parse_relative_path("@article+1 @component=-1")

        assert descriptors == [
            RelativeDescriptor("article", offset=1),
            RelativeDescriptor("component", inset=-1),
        ]

    def test_format_when_parsed_then_canonical_string(self):
        assert format_relative_path(parse_relative_path("block + 1  component=-1")) == "@block+1 @component=-1"

    @pytest.mark.parametrize("path", ["", "   ", "@", "@block+", "@block*1", "@+1"])
    def test_parse_when_malformed_then_raises(self, path):
        with pytest.raises(RelativePathError):
            parse_relative_path(path)

    def test_descriptor_when_both_offset_and_inset_then_raises(self):
        with pytest.raises(ValueError):
            RelativeDescriptor("block", offset=1, inset=1)


class TestResolveOffsets:
    """Offsets searched from the course."""

    def test_find_relative_when_next_component_then_sibling(self, small_store):
        c1 = small_store.find_by_id("c1")

        assert c1.find_relative_model("@component+1").id == "c2"

    def test_find_relative_when_next_crosses_block_then_next_block_component(self, small_store):
        c2 = small_store.find_by_id("c2")

        assert c2.find_relative_model("@component+1").id == "c3"

    def test_find_relative_when_past_end_then_none(self, small_store):
        assert small_store.find_by_id("c3").find_relative_model("@component+1") is None

    def test_find_relative_when_loop_past_end_then_wraps_to_first(self, small_store):
        c3 = small_store.find_by_id("c3")

        assert c3.find_relative_model("@component+1", loop=True).id == "c1"

    def test_find_relative_when_previous_component_then_previous(self, small_store):
        c3 = small_store.find_by_id("c3")

        assert c3.find_relative_model("@component-1").id == "c2"

    def test_find_relative_when_zero_offset_then_self(self, small_store):
        c2 = small_store.find_by_id("c2")

        assert c2.find_relative_model("@component+0") is c2

    def test_find_relative_when_next_block_from_component_then_following_block(self, small_store):
        assert small_store.find_by_id("c1").find_relative_model("@block+1").id == "b2"

    def test_find_relative_when_container_moves_to_child_type_then_first_after(self, small_store):
        """From b1, "+1" component means the first component after b1."""
        assert small_store.find_by_id("b1").find_relative_model("@component+1").id == "c3"

    def test_find_relative_when_filter_then_skips_rejected(self, small_store):
        c1 = small_store.find_by_id("c1")

        found = c1.find_relative_model("@component+1", filter=lambda node: node.id != "c2")

        assert found.id == "c3"

    def test_find_relative_when_limit_parent_then_searches_within(self, small_store):
        c1 = small_store.find_by_id("c1")

        assert c1.find_relative_model("@component+2", limit_parent_id="b1") is None
        assert c1.find_relative_model("@component+1", limit_parent_id="b1").id == "c2"

    def test_find_relative_when_empty_path_then_self(self, small_store):
        c1 = small_store.find_by_id("c1")

        assert c1.find_relative_model("") is c1


class TestResolveInsets:
    """Insets searched within the current node."""

    def test_find_relative_when_inset_zero_then_first_descendant(self, small_store):
        assert small_store.find_by_id("b1").find_relative_model("@component=0").id == "c1"

    def test_find_relative_when_inset_minus_one_then_last_descendant(self, small_store):
        assert small_store.find_by_id("b1").find_relative_model("@component=-1").id == "c2"

    def test_find_relative_when_inset_beyond_then_none(self, small_store):
        assert small_store.find_by_id("b1").find_relative_model("@component=2") is None

    def test_find_relative_when_node_has_no_such_descendants_then_none(self, small_store):
        assert small_store.find_by_id("c1").find_relative_model("@component=0") is None

    def test_find_relative_when_chained_then_resolves_from_previous_result(self, small_store):
        c1 = small_store.find_by_id("c1")

        assert c1.find_relative_model("@block+1 @component=-1").id == "c3"


class TestResolveInLargerCourse:
    """Paths across articles in the shared sample course."""

    def test_find_relative_when_article_then_next_article(self, store):
        assert store.find_by_id("c-05").find_relative_model("@article+1").id == "a-10"

    def test_find_relative_when_component_skip_four_then_other_article(self, store):
        assert store.find_by_id("c-05").find_relative_model("@component+4").id == "c-25"

    def test_find_relative_when_next_article_last_component_then_resolved(self, store):
        found = store.find_by_id("c-05").find_relative_model("@article+1 @component=-1")

        assert found.id == "c-25"

    def test_find_relative_when_previous_block_from_page_child_then_resolved(self, store):
        assert store.find_by_id("b-15").find_relative_model("@block-1").id == "b-10"
