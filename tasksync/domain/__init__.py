from tasksync.domain.enums import (
    TASK_STATUS_ORDER,
    ExternalUpdateType,
    HistoryActionType,
    TaskPriority,
    TaskStatus,
)
from tasksync.domain.models import (
    TIMESTAMP_FIELD,
    Task,
    TaskChanges,
    apply_changes,
    group_tasks_by_status,
    normalize_task_orders,
    should_normalize_orders,
)

__all__ = [
    "TASK_STATUS_ORDER",
    "TIMESTAMP_FIELD",
    "ExternalUpdateType",
    "HistoryActionType",
    "Task",
    "TaskChanges",
    "TaskPriority",
    "TaskStatus",
    "apply_changes",
    "group_tasks_by_status",
    "normalize_task_orders",
    "should_normalize_orders",
]
