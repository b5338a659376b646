"""Tests for board helpers: blocked tasks, downstream counting, pick_next."""

from conftest import make_task
from taskgraph.models import Status
from taskgraph.scheduler import blocked_tasks, count_downstream, pick_next


def test_pick_none_empty():
    assert pick_next([]) is None


def test_pick_none_all_blocked_by_deps():
    tasks = [
        make_task("a", 1, status=Status.IN_PROGRESS),
        make_task("b", 1, ["a"]),
    ]
    assert pick_next(tasks) is None


def test_pick_by_unlock_count():
    """Prefer the task that unlocks more downstream work."""
    tasks = [
        make_task("001", 1),
        make_task("002", 1, ["001"]),
        make_task("003", 1, ["001"]),
        make_task("004", 1, ["001"]),
        make_task("005", 1),
        make_task("006", 1, ["005"]),
    ]
    assert pick_next(tasks).id == "001"


def test_pick_longer_task_when_unlock_equal():
    tasks = [make_task("a", 2), make_task("b", 8)]
    assert pick_next(tasks).id == "b"


def test_pick_input_order_on_full_tie():
    tasks = [make_task("a", 2), make_task("b", 2)]
    assert pick_next(tasks).id == "a"


def test_pick_skips_non_todo():
    tasks = [make_task("a", 5, status=Status.REVIEW), make_task("b", 1)]
    assert pick_next(tasks).id == "b"


def test_count_downstream_diamond(diamond_tasks):
    assert count_downstream("A", diamond_tasks) == 3
    assert count_downstream("D", diamond_tasks) == 0


def test_count_downstream_cycle_excludes_self():
    tasks = [make_task("a", 1, ["b"]), make_task("b", 1, ["a"])]
    assert count_downstream("a", tasks) == 1


def test_blocked_tasks_counts():
    tasks = [
        make_task("a", 1, status=Status.COMPLETED),
        make_task("b", 1, status=Status.TODO),
        make_task("c", 1, ["a", "b"]),
        make_task("d", 1, ["b"], status=Status.COMPLETED),
    ]
    assert blocked_tasks(tasks) == {"c": 1}
