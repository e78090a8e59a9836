"""Data models for taskflow."""

from taskflow.models.task import Task, TaskStatus, TaskEffort, TaskKind
from taskflow.models.dependency import DependencyEdge, DependencyInfo, DependencySummary, BlockerCompletionInfo
from taskflow.models.recurrence import (
    RecurrencePattern,
    DueDateCalculation,
    RecurrenceRule,
    TaskSeries,
)
from taskflow.models.subtask import CreateSubtaskRequest, SubtaskProgress, SubtaskCompletionResult

__all__ = [
    "Task",
    "TaskStatus",
    "TaskEffort",
    "TaskKind",
    "DependencyEdge",
    "DependencyInfo",
    "DependencySummary",
    "BlockerCompletionInfo",
    "RecurrencePattern",
    "DueDateCalculation",
    "RecurrenceRule",
    "TaskSeries",
    "CreateSubtaskRequest",
    "SubtaskProgress",
    "SubtaskCompletionResult",
]
