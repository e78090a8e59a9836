"""Request/result models for task lifecycle operations."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from taskflow.models.constants import MAX_CATEGORY_LENGTH, MAX_DESCRIPTION_LENGTH, MAX_TITLE_LENGTH
from taskflow.models.recurrence import TaskSeries
from taskflow.models.task import Task, TaskEffort, TaskStatus


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    user_priority: Optional[int] = None
    due_date: Optional[datetime] = None
    estimated_effort: Optional[TaskEffort] = None
    category: Optional[str] = Field(None, max_length=MAX_CATEGORY_LENGTH)


class TaskUpdate(BaseModel):
    """Partial update; unset fields are left unchanged.

    ``model_fields_set`` distinguishes "clear due date" (explicit None) from
    "leave due date alone" (not provided).
    """

    title: Optional[str] = Field(None, min_length=1, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    status: Optional[TaskStatus] = None
    user_priority: Optional[int] = None
    due_date: Optional[datetime] = None
    estimated_effort: Optional[TaskEffort] = None
    category: Optional[str] = Field(None, max_length=MAX_CATEGORY_LENGTH)


class CompletionOptions(BaseModel):
    """Options accepted when completing a (possibly recurring) task."""

    due_date_calculation: Optional[str] = None
    save_as_default: bool = False
    save_for_category: bool = False
    skip_next_occurrence: bool = False
    stop_recurrence: bool = False


class TaskCompletionResult(BaseModel):
    completed_task: Task
    next_task: Optional[Task] = None
    series: Optional[TaskSeries] = None
    unblocked_task_ids: List[str] = Field(default_factory=list)
