from tasksync.store.task_store import DuplicateTaskError, InMemoryTaskStore, TaskNotFoundError

__all__ = [
    "DuplicateTaskError",
    "InMemoryTaskStore",
    "TaskNotFoundError",
]
