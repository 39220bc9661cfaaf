from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar
from uuid import uuid4

from tasksync.domain.enums import HistoryActionType, TaskStatus
from tasksync.domain.models import Task, utc_now


def generate_action_id() -> str:
    return f"history_{uuid4().hex}"


@dataclass(frozen=True, slots=True, kw_only=True)
class BaseHistoryAction:
    kind: ClassVar[HistoryActionType]

    description: str
    id: str = field(default_factory=generate_action_id)
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True, slots=True, kw_only=True)
class CreateTaskAction(BaseHistoryAction):
    kind: ClassVar[HistoryActionType] = HistoryActionType.CREATE_TASK

    task: Task


@dataclass(frozen=True, slots=True, kw_only=True)
class UpdateTaskAction(BaseHistoryAction):
    kind: ClassVar[HistoryActionType] = HistoryActionType.UPDATE_TASK

    task_id: str
    previous_state: Mapping[str, Any]
    new_state: Mapping[str, Any]


@dataclass(frozen=True, slots=True, kw_only=True)
class DeleteTaskAction(BaseHistoryAction):
    kind: ClassVar[HistoryActionType] = HistoryActionType.DELETE_TASK

    task: Task


@dataclass(frozen=True, slots=True, kw_only=True)
class ReorderTaskAction(BaseHistoryAction):
    kind: ClassVar[HistoryActionType] = HistoryActionType.REORDER_TASK

    task_id: str
    previous_status: TaskStatus
    new_status: TaskStatus
    previous_order: int
    new_order: int


HistoryAction = CreateTaskAction | UpdateTaskAction | DeleteTaskAction | ReorderTaskAction
