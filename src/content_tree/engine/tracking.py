"""
Module: engine.tracking

Purpose:
    Compact, resumable addressing of nodes. A tracking position is a pair
    (trackingId, index) relative to the nearest node carrying a _trackingId:

        index >= 0  the index-th node of that node's trackable subtree,
                    flattened parent-first (the tracking node itself is 0)
        index <  0  the (-index - 1)-th ancestor of the tracking node

Key Functions:
    - to_tracking_position(): node -> (trackingId, index)
    - from_tracking_position(): (trackingId, index) -> node
    - trackable_subtree(): Flattened list the positive indices address

Dependencies:
    - logging (std)

Used By:
    - core.models.node.ContentNode.tracking_position
    - content_tree.store.Store.find_by_tracking_position
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from content_tree.core.models.node import ContentNode
    from content_tree.store import Store

logger = logging.getLogger(__name__)


TrackingPosition = Tuple[Any, int]


def _is_untrackable(node: ContentNode) -> bool:
    return node.is_type_group("component") and node.get("_isTrackable") is False


def trackable_subtree(tracking_node: ContentNode) -> List[ContentNode]:
    """Tracking node plus its parent-first descendants, minus untrackable components."""
    nodes = [tracking_node, *tracking_node.get_all_descendant_models(True)]
    return [node for node in nodes if not _is_untrackable(node)]


def _index_of(nodes: Sequence[ContentNode], target: ContentNode) -> int:
    return next((i for i, node in enumerate(nodes) if node is target), -1)


def nearest_tracking_node(node: ContentNode) -> Optional[ContentNode]:
    """
    Find the tracking node used to address node.

    Starts from node's first leaf (children-first) so that containers
    above the tracking unit resolve to the first tracking unit inside
    them, then walks upwards.
    """
    descendants = node.get_all_descendant_models(False)
    first = descendants[0] if descendants else node
    for candidate in (first, *first.get_ancestor_models()):
        if candidate.has("_trackingId"):
            return candidate
    return None


def to_tracking_position(node: ContentNode) -> Optional[TrackingPosition]:
    """
    Encode node as a tracking position.

    Returns:
        (trackingId, index), or None if node cannot be tracked
    """
    tracking_node = nearest_tracking_node(node)
    if tracking_node is None:
        return None
    tracking_id = tracking_node.get("_trackingId")

    index = _index_of(trackable_subtree(tracking_node), node)
    if index >= 0:
        return (tracking_id, index)

    distance = _index_of(tracking_node.get_ancestor_models(), node)
    if distance < 0:
        # Inside the tracking subtree but marked untrackable
        return None
    return (tracking_id, -(distance + 1))


def from_tracking_position(store: Store, position: Sequence[Any]) -> Optional[ContentNode]:
    """
    Decode a tracking position back into a node.

    Args:
        store: Store holding the tracking node
        position: (trackingId, index) pair, tuple or list

    Returns:
        The addressed node, or None if it no longer exists
    """
    tracking_id, index = position
    tracking_node = store.find_by_tracking_id(tracking_id)
    if tracking_node is None:
        logger.warning(f"Unable to find tracking position {list(position)}")
        return None

    if index >= 0:
        subtree = trackable_subtree(tracking_node)
        if index >= len(subtree):
            logger.warning(f"Tracking position {list(position)} is past the end of {tracking_node!r}")
            return None
        return subtree[index]

    ancestors = tracking_node.get_ancestor_models()
    distance = abs(index) - 1
    if distance >= len(ancestors):
        logger.warning(f"Tracking position {list(position)} is above the root of {tracking_node!r}")
        return None
    return ancestors[distance]
