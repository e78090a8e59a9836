"""Subtask aggregation models for taskflow."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from taskflow.models.constants import MAX_DESCRIPTION_LENGTH, MAX_TITLE_LENGTH
from taskflow.models.task import Task, TaskEffort


class CreateSubtaskRequest(BaseModel):
    """Fields accepted when creating a subtask under a parent."""

    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    user_priority: Optional[int] = None
    due_date: Optional[datetime] = None
    estimated_effort: Optional[TaskEffort] = None
    category: Optional[str] = Field(None, description="Overrides the category inherited from the parent")


class SubtaskProgress(BaseModel):
    """Completion progress of a parent's subtasks.

    With zero subtasks the percentage is 100 and ``has_subtasks`` is False;
    callers decide whether to display it.
    """

    parent_id: str
    completed_count: int = 0
    total_count: int = 0
    percentage: float = 100.0
    has_subtasks: bool = False

    @property
    def all_complete(self) -> bool:
        return self.completed_count == self.total_count


class SubtaskCompletionResult(BaseModel):
    subtask: Task
    parent_id: str
    all_siblings_done: bool
