from __future__ import annotations

from datetime import timedelta

import pytest

from tasksync.domain.enums import TaskPriority, TaskStatus
from tasksync.orchestration.conflicts import detect_conflict, merge_changes, overlapping_fields
from tests.shared import BASE_TIME, make_task


@pytest.mark.parametrize(
    ("task_id", "external", "active_id", "local", "expected"),
    [
        ("t1", {"priority": TaskPriority.LOW}, None, None, False),
        ("t1", {"priority": TaskPriority.LOW}, "t2", {"priority": TaskPriority.HIGH}, False),
        ("t1", {"status": TaskStatus.DONE}, "t1", {"assignee": "Bob"}, False),
        ("t1", {"priority": TaskPriority.LOW}, "t1", {"priority": TaskPriority.HIGH}, True),
        (
            "t1",
            {"updated_at": BASE_TIME},
            "t1",
            {"updated_at": BASE_TIME, "title": "x"},
            False,
        ),
    ],
)
def test_detect_conflict(
    task_id: str,
    external: dict[str, object],
    active_id: str | None,
    local: dict[str, object] | None,
    expected: bool,
) -> None:
    assert detect_conflict(task_id, external, active_id, local) is expected


def test_overlapping_fields_ignores_timestamp() -> None:
    overlap = overlapping_fields(
        {"status": TaskStatus.DONE, "priority": TaskPriority.LOW, "updated_at": BASE_TIME},
        {"priority": TaskPriority.HIGH, "updated_at": BASE_TIME},
    )

    assert overlap == {"priority"}


def test_merge_prefers_external_values_and_keeps_local_only_fields() -> None:
    original = make_task("t1")

    merged = merge_changes(
        original,
        {"priority": TaskPriority.LOW},
        {"priority": TaskPriority.HIGH, "title": "Local title"},
        now_factory=lambda: BASE_TIME + timedelta(minutes=5),
    )

    assert merged.priority == TaskPriority.LOW
    assert merged.title == "Local title"
    assert merged.updated_at == BASE_TIME + timedelta(minutes=5)


def test_merge_timestamp_is_strictly_newer_than_original() -> None:
    original = make_task("t1", updated_at=BASE_TIME + timedelta(hours=1))

    merged = merge_changes(
        original,
        {"status": TaskStatus.DONE},
        {"status": TaskStatus.IN_PROGRESS},
        now_factory=lambda: BASE_TIME,
    )

    assert merged.status == TaskStatus.DONE
    assert merged.updated_at > original.updated_at
