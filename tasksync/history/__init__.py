from tasksync.history.actions import (
    CreateTaskAction,
    DeleteTaskAction,
    HistoryAction,
    ReorderTaskAction,
    UpdateTaskAction,
)
from tasksync.history.manager import HistoryManager

__all__ = [
    "CreateTaskAction",
    "DeleteTaskAction",
    "HistoryAction",
    "HistoryManager",
    "ReorderTaskAction",
    "UpdateTaskAction",
]
