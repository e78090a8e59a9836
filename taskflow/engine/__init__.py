"""Task prioritization and relationship engine."""

from taskflow.engine.dependencies import DependencyGraphManager, OwnerLocks
from taskflow.engine.lifecycle import TaskLifecycleService
from taskflow.engine.priority import PriorityBreakdown, PriorityResult, calculate, calculate_score
from taskflow.engine.recompute import PriorityRecomputeScheduler, RecomputeResult
from taskflow.engine.recurrence import RecurrenceEngine
from taskflow.engine.subtasks import SubtaskService

__all__ = [
    "DependencyGraphManager",
    "OwnerLocks",
    "TaskLifecycleService",
    "PriorityBreakdown",
    "PriorityResult",
    "calculate",
    "calculate_score",
    "PriorityRecomputeScheduler",
    "RecomputeResult",
    "RecurrenceEngine",
    "SubtaskService",
]
