"""Task data model for taskflow."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Task status enumeration."""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    ON_HOLD = "on_hold"
    BLOCKED = "blocked"


class TaskEffort(str, Enum):
    """Estimated effort enumeration."""
    SMALL = "small"    # < 1 hour
    MEDIUM = "medium"  # 1-2 hours
    LARGE = "large"    # 2-4 hours
    XLARGE = "xlarge"  # > 4 hours


class TaskKind(str, Enum):
    """Task kind enumeration."""
    REGULAR = "regular"
    SUBTASK = "subtask"
    RECURRING_INSTANCE = "recurring_instance"


# Multiplier applied after the weighted factor sum (favours small tasks).
EFFORT_MULTIPLIERS = {
    TaskEffort.SMALL: 1.3,
    TaskEffort.MEDIUM: 1.15,
    TaskEffort.LARGE: 1.0,
    TaskEffort.XLARGE: 0.9,
}


def effort_multiplier(effort: Optional[TaskEffort]) -> float:
    """Return the priority multiplier for an effort estimate (1.0 when absent)."""
    if effort is None:
        return 1.0
    return EFFORT_MULTIPLIERS.get(TaskEffort(effort), 1.0)


class Task(BaseModel):
    """Canonical Task model."""

    id: str = Field(..., description="Unique task identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this task")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    status: TaskStatus = Field(TaskStatus.TODO, description="Task status")
    user_priority: int = Field(5, ge=1, le=10, description="User-assigned priority (1-10)")
    priority_score: int = Field(0, ge=0, le=100, description="Derived priority score (0-100, cached)")
    estimated_effort: Optional[TaskEffort] = Field(None, description="Estimated effort")
    category: Optional[str] = Field(None, description="Free-form category name")
    due_date: Optional[datetime] = Field(None, description="Task due date")
    created_at: datetime = Field(..., description="Task creation timestamp")
    updated_at: datetime = Field(..., description="Task last update timestamp")
    completed_at: Optional[datetime] = Field(None, description="Completion timestamp (null until done)")
    bump_count: int = Field(0, ge=0, description="Number of times the task was deferred")
    task_kind: TaskKind = Field(TaskKind.REGULAR, description="Task kind")

    # Hierarchy / recurrence linkage (optional)
    parent_task_id: Optional[str] = Field(
        None, description="Parent task id (subtasks only, single level)"
    )
    series_id: Optional[str] = Field(
        None, description="If part of a recurring series, the series id"
    )

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    @property
    def is_subtask(self) -> bool:
        return self.task_kind == TaskKind.SUBTASK

    def can_have_subtasks(self) -> bool:
        """Subtasks cannot own subtasks (single-level nesting only)."""
        return not self.is_subtask
