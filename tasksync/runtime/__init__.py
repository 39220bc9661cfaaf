from tasksync.runtime.external_changes import (
    EXTERNAL_ACTORS,
    ExternalChangeGenerator,
    ExternalUpdate,
    describe_update,
    generate_random_update,
)
from tasksync.runtime.task_api import SimulatedTaskApi, TaskApiError, TaskApiErrorCode

__all__ = [
    "EXTERNAL_ACTORS",
    "ExternalChangeGenerator",
    "ExternalUpdate",
    "SimulatedTaskApi",
    "TaskApiError",
    "TaskApiErrorCode",
    "describe_update",
    "generate_random_update",
]
