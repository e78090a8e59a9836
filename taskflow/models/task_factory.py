"""Task creation factory for taskflow.

This module centralizes task creation logic to eliminate duplication
and ensure consistent default values across the engine.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from taskflow.models.task import Task, TaskEffort, TaskKind, TaskStatus
from taskflow.models.constants import DEFAULT_USER_PRIORITY


def create_task_defaults() -> Dict[str, Any]:
    """Get default task values as a dictionary.

    Returns:
        Dictionary with default task field values using constants
    """
    return {
        "status": TaskStatus.TODO,
        "user_priority": DEFAULT_USER_PRIORITY,
        "priority_score": 0,
        "estimated_effort": None,
        "category": None,
        "due_date": None,
        "bump_count": 0,
        "task_kind": TaskKind.REGULAR,
        "parent_task_id": None,
        "series_id": None,
    }


def create_task_base(
    user_id: str,
    title: str,
    now: datetime,
    description: Optional[str] = None,
    user_priority: Optional[int] = None,
    estimated_effort: Optional[TaskEffort] = None,
    category: Optional[str] = None,
    due_date: Optional[datetime] = None,
    task_kind: Optional[TaskKind] = None,
    parent_task_id: Optional[str] = None,
    series_id: Optional[str] = None,
) -> Task:
    """Create a task with defaults, allowing overrides.

    The priority score is left at 0; callers compute it with the priority
    calculator before persisting.

    Args:
        user_id: User ID who owns this task (required)
        title: Task title (required)
        now: Creation timestamp (supplied by the injected clock)
        description: Task description
        user_priority: User priority 1-10 (defaults to constant)
        estimated_effort: Effort estimate (None means no estimate)
        category: Category name
        due_date: Due date
        task_kind: Task kind (defaults to regular)
        parent_task_id: Parent id for subtasks
        series_id: Series id for recurring tasks

    Returns:
        Task object with defaults applied
    """
    defaults = create_task_defaults()

    return Task(
        id=str(uuid.uuid4()),
        user_id=user_id,
        title=title,
        description=description,
        status=defaults["status"],
        user_priority=user_priority if user_priority is not None else defaults["user_priority"],
        priority_score=defaults["priority_score"],
        estimated_effort=estimated_effort if estimated_effort is not None else defaults["estimated_effort"],
        category=category if category is not None else defaults["category"],
        due_date=due_date if due_date is not None else defaults["due_date"],
        created_at=now,
        updated_at=now,
        bump_count=defaults["bump_count"],
        task_kind=task_kind if task_kind is not None else defaults["task_kind"],
        parent_task_id=parent_task_id if parent_task_id is not None else defaults["parent_task_id"],
        series_id=series_id if series_id is not None else defaults["series_id"],
    )
