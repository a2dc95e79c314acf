"""
Module: kinds

Purpose:
    Typed ContentNode subclasses for the standard course hierarchy. Each
    class contributes a TYPE_GROUP, so a course is also a menu and a
    contentobject, and a question is also a component.

        ContentObjectNode
            MenuNode
                CourseNode
            PageNode
        ArticleNode
        BlockNode
        ComponentNode
            QuestionNode

Key Classes:
    - MenuNode: Lock propagation into nested menus
    - ComponentNode: Leaf node without managed children
    - QuestionNode: Submission state tracking and the _canSubmit lock

Dependencies:
    - .node.ContentNode
    - .registry.register

Used By:
    - content_tree.store.Store (via the registry)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .node import ContentNode
from .registry import register

logger = logging.getLogger(__name__)


class ContentObjectNode(ContentNode):
    TYPE_GROUP = "contentobject"


class MenuNode(ContentObjectNode):
    """Content object whose children may be menus themselves."""

    TYPE_GROUP = "menu"

    def check_locking(self) -> None:
        super().check_locking()
        if not self.get("_lockType"):
            return
        # Lock state keeps propagating down nested menu branches
        for child in self.get_available_child_models():
            if isinstance(child, MenuNode):
                child.check_locking()


class CourseNode(MenuNode):
    TYPE_GROUP = "course"


class PageNode(ContentObjectNode):
    TYPE_GROUP = "page"


class ArticleNode(ContentNode):
    TYPE_GROUP = "article"


class BlockNode(ContentNode):
    TYPE_GROUP = "block"


class ComponentNode(ContentNode):
    """Leaf node; children are never looked up in the store."""

    TYPE_GROUP = "component"
    has_managed_children = False

    def defaults(self) -> dict[str, Any]:
        return {
            **super().defaults(),
            "_isTrackable": True,
        }


class QuestionNode(ComponentNode):
    """
    Component with submission state.

    _canSubmit is a locking attribute (unlocked value True), so any
    writer can block submission until it releases its vote.
    """

    TYPE_GROUP = "question"
    TRACKABLE = (*ComponentNode.TRACKABLE, "_isSubmitted", "_score", "_isCorrect", "_attemptsLeft")

    def defaults(self) -> dict[str, Any]:
        return {
            **super().defaults(),
            "_isQuestionType": True,
            "_canSubmit": True,
            "_isSubmitted": False,
            "_score": 0,
            "_isCorrect": None,
            "_attempts": 1,
        }

    def locked_attributes(self) -> Optional[dict[str, bool]]:
        return {"_canSubmit": True}

    def init(self) -> None:
        if not self.has("_attemptsLeft"):
            self.set("_attemptsLeft", self.get("_attempts"), silent=True)

    def can_submit(self) -> bool:
        return bool(self.get("_canSubmit")) and not self.get("_isSubmitted")

    def submit(self, is_correct: bool, score: float = 0) -> None:
        """
        Record one submission attempt.

        Completes the question when correct or when no attempts remain.
        """
        if not self.can_submit():
            logger.warning(f"{self!r} cannot be submitted")
            return
        attempts_left = max(0, self.get("_attemptsLeft", 0) - 1)
        self.set({
            "_isSubmitted": attempts_left == 0 or is_correct,
            "_isCorrect": is_correct,
            "_score": score,
            "_attemptsLeft": attempts_left,
        })
        if self.get("_isSubmitted"):
            self.set_completion_status()

    def reset(self, kind: Any = "hard", can_reset: Optional[bool] = None) -> bool:
        was_reset = super().reset(kind, can_reset)
        if not was_reset:
            return False
        self.set({
            "_isSubmitted": False,
            "_isCorrect": None,
            "_score": 0,
            "_attemptsLeft": self.get("_attempts"),
        })
        return True


register("contentobject", ContentObjectNode)
register("menu", MenuNode)
register("course", CourseNode)
register("page", PageNode)
register("article", ArticleNode)
register("block", BlockNode)
register("component", ComponentNode)
register("question", QuestionNode)
