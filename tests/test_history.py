from __future__ import annotations

import pytest

from tasksync.domain.enums import HistoryActionType, TaskPriority, TaskStatus
from tasksync.history.actions import UpdateTaskAction
from tasksync.history.manager import HistoryManager
from tests.shared import make_task


def test_history_is_bounded_and_evicts_oldest() -> None:
    history = HistoryManager()
    recorded = [
        history.record_update("t1", {"order": index}, {"order": index + 1}) for index in range(51)
    ]

    assert history.history_size == 50
    assert recorded[0] not in history.past
    assert history.past[0] is recorded[1]
    assert history.past[-1] is recorded[50]


def test_new_action_clears_future() -> None:
    history = HistoryManager()
    history.record_create(make_task("a"))
    history.record_create(make_task("b"))
    history.undo()
    assert history.can_redo is True

    history.record_delete(make_task("c"))

    assert history.can_redo is False
    assert [action.kind for action in history.past] == [
        HistoryActionType.CREATE_TASK,
        HistoryActionType.DELETE_TASK,
    ]


def test_undo_redo_move_actions_between_stacks() -> None:
    history = HistoryManager()
    first = history.record_create(make_task("a"))
    second = history.record_update("a", {"priority": TaskPriority.MEDIUM}, {"priority": TaskPriority.HIGH})

    assert history.undo() is second
    assert history.undo() is first
    assert history.undo() is None
    assert history.future == (first, second)

    assert history.redo() is first
    assert history.past == (first,)
    assert history.future == (second,)


def test_redo_on_empty_future_is_noop() -> None:
    history = HistoryManager()

    assert history.redo() is None
    assert history.can_undo is False


def test_recording_is_suppressed_while_replaying() -> None:
    history = HistoryManager()

    with history.replaying():
        assert history.is_replaying is True
        added = history.add_to_history(
            UpdateTaskAction(description="x", task_id="a", previous_state={}, new_state={})
        )

    assert added is False
    assert history.is_replaying is False
    assert history.past == ()


def test_descriptions() -> None:
    history = HistoryManager()
    task = make_task("a", title="Write docs")

    assert history.record_create(task).description == "Created task: Write docs"
    assert (
        history.record_update(
            "a",
            {"title": "Write docs", "priority": TaskPriority.MEDIUM},
            {"title": "Docs", "priority": TaskPriority.HIGH, "updated_at": None},
            "Write docs",
        ).description
        == "Updated Write docs: title, priority"
    )
    assert history.record_update("a", {}, {"status": TaskStatus.DONE}).description == (
        "Updated task: status"
    )
    assert (
        history.record_reorder("a", TaskStatus.TODO, TaskStatus.DONE, 0, 2, "Write docs").description
        == "Moved Write docs from todo to done"
    )
    assert history.record_delete(task).description == "Deleted task: Write docs"
    assert history.undo_description() == "Deleted task: Write docs"
    assert history.redo_description() is None

    history.clear_history()
    assert history.undo_description() is None


def test_max_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        HistoryManager(max_size=0)
