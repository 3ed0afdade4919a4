"""Domain models."""

from src.domain.task import AnyTask, Epic, Subtask, Task, TaskStatus, TaskType


__all__ = [
    "AnyTask",
    "Epic",
    "Subtask",
    "Task",
    "TaskStatus",
    "TaskType",
]
