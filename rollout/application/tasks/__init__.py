"""
Tasks Package

Architectural Intent:
- Contains the task base, the task factory and every registered task
- Importing the package registers all task kinds with the factory
"""

from rollout.application.tasks.base import (
    Task,
    TaskKind,
    TaskContext,
    TaskResult,
    RunOptions,
    UnknownTaskError,
    create_task,
    register_task,
    registered_kinds,
)
from rollout.application.tasks import release_tasks, maintenance_tasks

__all__ = [
    "Task",
    "TaskKind",
    "TaskContext",
    "TaskResult",
    "RunOptions",
    "UnknownTaskError",
    "create_task",
    "register_task",
    "registered_kinds",
    "release_tasks",
    "maintenance_tasks",
]
