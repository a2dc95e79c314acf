import random
import sys
from pathlib import Path

import pytest

# Add src to sys.path so we can import content_tree
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from content_tree.core.utils.logging_utils import reset_warnings  # noqa: E402
from content_tree.store import Store  # noqa: E402


def course_records() -> list[dict]:
    """
    Small course used across the suite:

        course
          co-05 (page)
            a-05
              b-05 [0]: c-05, c-10
              b-10 [1]: c-15
            a-10
              b-15 [2]: c-20, c-25
    """
    return [
        {"_id": "course", "_type": "course"},
        {"_id": "co-05", "_parentId": "course", "_type": "page"},
        {"_id": "a-05", "_parentId": "co-05", "_type": "article"},
        {"_id": "a-10", "_parentId": "co-05", "_type": "article"},
        {"_id": "b-05", "_parentId": "a-05", "_type": "block", "_trackingId": 0},
        {"_id": "b-10", "_parentId": "a-05", "_type": "block", "_trackingId": 1},
        {"_id": "b-15", "_parentId": "a-10", "_type": "block", "_trackingId": 2},
        {"_id": "c-05", "_parentId": "b-05", "_type": "component", "_component": "text"},
        {"_id": "c-10", "_parentId": "b-05", "_type": "component", "_component": "text"},
        {"_id": "c-15", "_parentId": "b-10", "_type": "component", "_component": "text"},
        {"_id": "c-20", "_parentId": "b-15", "_type": "component", "_component": "text"},
        {"_id": "c-25", "_parentId": "b-15", "_type": "component", "_component": "text"},
    ]


def random_course_records(seed: int, *, max_children: int = 3) -> list[dict]:
    """Random course -> page -> article -> block -> component tree."""
    rng = random.Random(seed)
    records = [{"_id": "course", "_type": "course"}]
    tracking_id = 0
    levels = ["page", "article", "block", "component"]

    def add_children(parent_id: str, depth: int) -> None:
        nonlocal tracking_id
        child_type = levels[depth]
        for i in range(rng.randint(1, max_children)):
            child_id = f"{parent_id}-{child_type[0]}{i}"
            record = {"_id": child_id, "_parentId": parent_id, "_type": child_type}
            if child_type == "block":
                record["_trackingId"] = tracking_id
                tracking_id += 1
            if child_type == "component" and rng.random() < 0.2:
                record["_isTrackable"] = False
            records.append(record)
            if depth + 1 < len(levels):
                add_children(child_id, depth + 1)

    add_children("course", 0)
    return records


def settle(store: Store) -> None:
    """Run every queued cascade."""
    store.scheduler.run_pending()
    assert store.scheduler.is_settled


@pytest.fixture(autouse=True)
def _reset_warnings():
    """Once-only warnings start fresh in every test."""
    reset_warnings()
    yield
    reset_warnings()


@pytest.fixture
def records() -> list[dict]:
    return course_records()


@pytest.fixture
def store(records) -> Store:
    """Loaded, validated and settled store of the sample course."""
    store = Store()
    store.load(records)
    settle(store)
    return store
