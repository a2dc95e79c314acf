"""
Module: engine.relative

Purpose:
    Relative addressing for content nodes. Parses path strings such as
    "@block+1", "@component=-1" or "@article+1 @component=0" into
    descriptors and resolves them against the tree.

    Grammar:
        path       := descriptor+
        descriptor := "@"? TYPE [ ("+" | "-") NUMBER | "=" ["+" | "-"] NUMBER | NUMBER ]

    "+N" / "-N" is an offset, searched from the document root (the course).
    "=N" is an inset, searched inside the current node. A missing number
    means 0. Descriptors chain: each resolves against the previous result.

Key Functions:
    - tokenize(): Split a path string into tokens
    - parse_relative_path(): Build the descriptor list
    - flatten(): Ordered node list used for searching
    - find_relative(): Resolve a path (or descriptor list) from a node

Dependencies:
    - re, dataclasses (std)

Used By:
    - core.models.node.ContentNode.find_relative_model
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterator, List, Optional, Sequence, Union

if TYPE_CHECKING:
    from content_tree.core.models.node import ContentNode

logger = logging.getLogger(__name__)


class RelativePathError(ValueError):
    """Raised when a relative path string cannot be parsed."""

    def __init__(self, message: str, path: str = "", position: int = -1):
        super().__init__(message)
        self.path = path
        self.position = position


# ─────────────────────────────────────────────────────────────────────────────
# Tokenizer
# ─────────────────────────────────────────────────────────────────────────────

_TOKEN_SPEC = (
    ("AT", r"@"),
    ("NAME", r"[A-Za-z_]+"),
    ("NUMBER", r"\d+"),
    ("OP", r"[+\-=]"),
    ("SKIP", r"\s+"),
    ("MISMATCH", r"."),
)
_TOKEN_RE = re.compile("|".join(f"(?P<{name}>{pattern})" for name, pattern in _TOKEN_SPEC))


@dataclass(frozen=True, slots=True)
class Token:
    kind: str
    text: str
    position: int


def tokenize(path: str) -> Iterator[Token]:
    """
    Split a relative path into tokens, dropping whitespace.

    Raises:
        RelativePathError: On a character outside the grammar
    """
    for match in _TOKEN_RE.finditer(path):
        kind = match.lastgroup
        if kind == "SKIP":
            continue
        if kind == "MISMATCH":
            raise RelativePathError(
                f"Unexpected character {match.group()!r} at {match.start()} in {path!r}",
                path=path,
                position=match.start(),
            )
        yield Token(kind, match.group(), match.start())


# ─────────────────────────────────────────────────────────────────────────────
# Descriptors
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class RelativeDescriptor:
    """
    One parsed relative path step.

    Exactly one of offset / inset is set.

    Example:
        >>> parse_relative_path("@component=-1")[0]
        RelativeDescriptor(type='component', offset=None, inset=-1)
    """

    type: str
    offset: Optional[int] = None
    inset: Optional[int] = None

    def __post_init__(self) -> None:
        if (self.offset is None) == (self.inset is None):
            raise ValueError("RelativeDescriptor needs exactly one of offset or inset")

    @property
    def is_inset(self) -> bool:
        return self.inset is not None

    @property
    def is_offset(self) -> bool:
        return self.offset is not None

    @property
    def increment(self) -> int:
        return self.offset if self.offset is not None else self.inset

    def __str__(self) -> str:
        if self.is_inset:
            return f"@{self.type}={self.inset}"
        return f"@{self.type}{self.offset:+d}"


def parse_relative_path(path: str) -> List[RelativeDescriptor]:
    """
    Parse a relative path string into descriptors.

    Args:
        path: e.g. "@block+1" or "@article+1 @component=-1"

    Returns:
        Descriptors in resolution order

    Raises:
        RelativePathError: If the string is empty or malformed
    """
    tokens = list(tokenize(path))
    descriptors: List[RelativeDescriptor] = []
    i = 0
    count = len(tokens)

    def peek(kind: str, texts: str = "") -> bool:
        if i >= count or tokens[i].kind != kind:
            return False
        return not texts or tokens[i].text in texts

    while i < count:
        if peek("AT"):
            i += 1
        if not peek("NAME"):
            position = tokens[i].position if i < count else len(path)
            raise RelativePathError(f"Expected a type name at {position} in {path!r}", path, position)
        type_name = tokens[i].text
        i += 1

        op = None
        sign = 1
        if peek("OP"):
            op = tokens[i].text
            i += 1
            if op == "=" and peek("OP", "+-"):
                sign = -1 if tokens[i].text == "-" else 1
                i += 1
            elif op == "-":
                sign = -1

        number = None
        if peek("NUMBER"):
            number = int(tokens[i].text)
            i += 1
        elif op in ("+", "-"):
            position = tokens[i].position if i < count else len(path)
            raise RelativePathError(f"Expected a number after {op!r} in {path!r}", path, position)

        value = sign * (number or 0)
        if op == "=":
            descriptors.append(RelativeDescriptor(type_name, inset=value))
        else:
            descriptors.append(RelativeDescriptor(type_name, offset=value))

    if not descriptors:
        raise RelativePathError(f"Empty relative path {path!r}", path, 0)
    return descriptors


def format_relative_path(descriptors: Sequence[RelativeDescriptor]) -> str:
    return " ".join(str(descriptor) for descriptor in descriptors)


# ─────────────────────────────────────────────────────────────────────────────
# Resolution
# ─────────────────────────────────────────────────────────────────────────────

def flatten(root: ContentNode, *, backwards: bool = False) -> List[ContentNode]:
    """
    Ordered search list over root and its descendants.

    Forward: children-first descendants followed by root.
    Backwards: root plus parent-first descendants, reversed.

    Such that "next of type X" walking forward and "previous of type X"
    walking backwards are the same loop over one list.
    """
    if backwards:
        return list(reversed([root, *root.get_all_descendant_models(True)]))
    return [*root.get_all_descendant_models(False), root]


def _search_root(
    node: ContentNode,
    descriptor: RelativeDescriptor,
    limit_parent_id: Optional[str],
) -> Optional[ContentNode]:
    store = node.store
    if limit_parent_id:
        return store.find_by_id(limit_parent_id) if store is not None else None
    if descriptor.is_inset:
        return node
    if store is not None and store.course is not None:
        return store.course
    ancestors = node.get_ancestor_models()
    return ancestors[-1] if ancestors else node


def resolve_descriptor(
    node: ContentNode,
    descriptor: RelativeDescriptor,
    *,
    limit_parent_id: Optional[str] = None,
    filter: Optional[Callable[[ContentNode], bool]] = None,
    loop: bool = False,
) -> Optional[ContentNode]:
    """
    Resolve a single descriptor from node.

    The starting node counts as step zero when it matches the type, so
    "+1" means the next match. When node itself contains nodes of the
    type, offsets count one less so the search lands on either side of
    node rather than inside it.

    Returns:
        The matching node, or None if there is no such relative target
    """
    type_name = descriptor.type
    root = _search_root(node, descriptor, limit_parent_id)
    if root is None:
        return None

    increment = descriptor.increment
    backwards = increment < 0
    move_by = abs(increment)

    has_descendants_of_type = bool(node.find_descendant_models(type_name))
    if descriptor.is_inset and not has_descendants_of_type:
        return None
    if descriptor.is_offset and has_descendants_of_type:
        move_by -= 1
    if descriptor.is_inset and backwards:
        # -1 is the last, -2 second from last
        move_by -= 1

    search = flatten(root, backwards=backwards)

    if descriptor.is_inset:
        start = 0
    else:
        start = next((i for i, candidate in enumerate(search) if candidate is node), -1)
        if start < 0:
            logger.debug(f"{node!r} is outside the search root {root!r} for {descriptor}")
            return None

    if loop:
        total_of_type = sum(1 for candidate in search if candidate.is_type_group(type_name))
        if total_of_type == 0:
            return None
        if move_by >= 0:
            move_by %= total_of_type
        search = search + search

    movement = 0
    for index in range(start, len(search)):
        candidate = search[index]
        if not candidate.is_type_group(type_name):
            continue
        is_self = index == start
        if not is_self and filter is not None and not filter(candidate):
            continue
        if movement > move_by:
            break
        if movement == move_by:
            return candidate
        movement += 1
    return None


def find_relative(
    node: ContentNode,
    path: Union[str, Sequence[RelativeDescriptor]],
    *,
    limit_parent_id: Optional[str] = None,
    filter: Optional[Callable[[ContentNode], bool]] = None,
    loop: bool = False,
) -> Optional[ContentNode]:
    """
    Resolve a relative path from node.

    Options apply to the first descriptor; each later descriptor is
    resolved by the node found before it.

    Args:
        node: Starting node
        path: Path string or pre-parsed descriptors; empty returns node
        limit_parent_id: Search within this node instead of the default root
        filter: Predicate candidates must pass (never applied to the start node)
        loop: Wrap around the ends of the search list

    Returns:
        The resolved node, or None
    """
    if not path:
        return node
    descriptors = parse_relative_path(path) if isinstance(path, str) else list(path)
    found = resolve_descriptor(
        node,
        descriptors[0],
        limit_parent_id=limit_parent_id,
        filter=filter,
        loop=loop,
    )
    remainder = descriptors[1:]
    if not remainder:
        return found
    if found is None:
        return None
    return found.find_relative_model(remainder)
