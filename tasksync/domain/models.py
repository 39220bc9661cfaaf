from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tasksync.domain.enums import TASK_STATUS_ORDER, TaskPriority, TaskStatus

TIMESTAMP_FIELD = "updated_at"

TaskChanges = Mapping[str, Any]


def utc_now() -> datetime:
    return datetime.now(UTC)


def normalize_utc_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def generate_task_id() -> str:
    return f"task-{uuid4().hex}"


class Task(BaseModel):
    """A single card on the board.

    Records are immutable; every edit produces a new record through
    ``apply_changes`` so readers never observe a half-applied change.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    assignee: str | None = None
    tags: frozenset[str] = Field(default_factory=frozenset)
    order: int = 0
    due_date: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def _normalize_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return normalize_utc_datetime(value)


def apply_changes(task: Task, changes: TaskChanges) -> Task:
    """Return a new record with ``changes`` laid over ``task``.

    Raises ``pydantic.ValidationError`` for unknown fields or invalid values.
    """
    if "id" in changes and changes["id"] != task.id:
        raise ValueError(f"Cannot change task id '{task.id}' to '{changes['id']}'")
    return Task.model_validate({**task.model_dump(), **dict(changes)})


def changed_field_names(changes: TaskChanges) -> set[str]:
    return {name for name in changes if name != TIMESTAMP_FIELD}


def snapshot_fields(task: Task, field_names: Iterable[str]) -> dict[str, Any]:
    return {name: getattr(task, name) for name in field_names}


def group_tasks_by_status(tasks: Iterable[Task]) -> dict[TaskStatus, list[Task]]:
    grouped: dict[TaskStatus, list[Task]] = {status: [] for status in TASK_STATUS_ORDER}
    for task in tasks:
        grouped[task.status].append(task)
    for column in grouped.values():
        column.sort(key=lambda item: item.order)
    return grouped


def should_normalize_orders(tasks: Iterable[Task]) -> bool:
    seen: dict[TaskStatus, set[int]] = defaultdict(set)
    for task in tasks:
        if task.order < 0:
            return True
        if task.order in seen[task.status]:
            return True
        seen[task.status].add(task.order)
    return False


def normalize_task_orders(
    tasks: Sequence[Task],
    *,
    prefer_task_id: str | None = None,
) -> list[Task]:
    """Renumber every status column to 0..n-1, keeping relative order.

    Ties go to ``prefer_task_id`` first, then to position in ``tasks``. The
    returned list keeps the input ordering.
    """
    positions: dict[TaskStatus, list[int]] = defaultdict(list)
    for index, task in enumerate(tasks):
        positions[task.status].append(index)

    new_orders: dict[int, int] = {}
    for indexes in positions.values():
        ranked = sorted(
            indexes,
            key=lambda index: (tasks[index].order, tasks[index].id != prefer_task_id, index),
        )
        for new_order, index in enumerate(ranked):
            new_orders[index] = new_order

    normalized: list[Task] = []
    for index, task in enumerate(tasks):
        target = new_orders[index]
        normalized.append(task if task.order == target else task.model_copy(update={"order": target}))
    return normalized


def next_order_for_status(tasks: Iterable[Task], status: TaskStatus) -> int:
    orders = [task.order for task in tasks if task.status == status]
    return max(orders) + 1 if orders else 0
