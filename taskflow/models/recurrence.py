"""Recurrence models for taskflow.

A series is the recurrence definition; each occurrence is a concrete Task
linked back through ``Task.series_id``. Only the next occurrence exists at
any time: it is projected when the current one is completed.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from taskflow.models.task import TaskStatus


MIN_INTERVAL = 1
MAX_INTERVAL = 365


class RecurrencePattern(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class DueDateCalculation(str, Enum):
    """How the next due date is anchored."""

    FROM_ORIGINAL = "from_original"
    FROM_COMPLETION = "from_completion"


DEFAULT_DUE_DATE_CALCULATION = DueDateCalculation.FROM_ORIGINAL


class RecurrenceRule(BaseModel):
    """Recurrence settings supplied when a task is made recurring.

    Values are validated by the recurrence engine so that failures surface as
    ``ValidationError`` with a field name rather than a pydantic error.
    """

    pattern: str
    interval: int = 1
    end_date: Optional[datetime] = None
    due_date_calculation: Optional[str] = None


class TaskSeries(BaseModel):
    """A recurring task series."""

    id: str = Field(..., description="Unique series identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this series")
    original_task_id: Optional[str] = Field(None, description="Task the series was created from")
    pattern: RecurrencePattern = Field(..., description="Recurrence unit")
    interval: int = Field(1, ge=MIN_INTERVAL, le=MAX_INTERVAL, description="Every N units")
    due_date_calculation: DueDateCalculation = Field(
        DEFAULT_DUE_DATE_CALCULATION, description="Anchor used for the next due date"
    )
    end_date: Optional[datetime] = Field(None, description="No occurrence may be due after this instant")
    is_active: bool = Field(True, description="Inactive series never generate occurrences")
    created_at: datetime = Field(..., description="Series creation timestamp")
    updated_at: datetime = Field(..., description="Series last update timestamp")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    def can_generate_next(self, reference: datetime) -> bool:
        if not self.is_active:
            return False
        if self.end_date is not None and reference > self.end_date:
            return False
        return True


class SeriesUpdate(BaseModel):
    """Partial update of a series; None means "leave unchanged"."""

    pattern: Optional[str] = None
    interval: Optional[int] = None
    end_date: Optional[datetime] = None
    due_date_calculation: Optional[str] = None
    is_active: Optional[bool] = None


class UserPreferences(BaseModel):
    user_id: str
    default_due_date_calculation: DueDateCalculation = DEFAULT_DUE_DATE_CALCULATION

    class Config:
        use_enum_values = True


class CategoryPreference(BaseModel):
    user_id: str
    category: str
    due_date_calculation: DueDateCalculation

    class Config:
        use_enum_values = True


class SeriesHistoryEntry(BaseModel):
    task_id: str
    title: str
    status: TaskStatus
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        use_enum_values = True


class SeriesHistory(BaseModel):
    series: TaskSeries
    tasks: List[SeriesHistoryEntry] = Field(default_factory=list)
    total: int = 0


class SkipResult(BaseModel):
    """Outcome of skipping an occurrence (schedule advance only)."""

    task_id: str
    previous_due_date: Optional[datetime] = None
    new_due_date: Optional[datetime] = None
    series_ended: bool = False
