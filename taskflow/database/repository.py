"""Repository layer for task database operations."""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from taskflow.engine.errors import NotFoundError
from taskflow.models.task import Task, TaskStatus
from taskflow.database.models import TaskDB

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for Task database operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, task: Task) -> Task:
        """Create a new task."""
        try:
            task_db = TaskDB.from_pydantic(task)
            self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task.id}: {task.title[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, user_id: str, task_id: str) -> Optional[Task]:
        """Get task by ID for a specific user."""
        task_db = self.db.query(TaskDB).filter(
            TaskDB.id == task_id,
            TaskDB.user_id == user_id,
        ).first()
        return task_db.to_pydantic() if task_db else None

    def update(self, task: Task) -> Task:
        """Update an existing task (user_id must match task.user_id)."""
        task_db = self.db.query(TaskDB).filter(
            TaskDB.id == task.id,
            TaskDB.user_id == task.user_id,
        ).first()
        if not task_db:
            raise NotFoundError("task", task.id)

        task_db.apply(task)

        try:
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Updated task {task.id}: {task.title[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, user_id: str, task_id: str) -> bool:
        """Delete a task. Returns False when it did not exist."""
        try:
            deleted = self.db.query(TaskDB).filter(
                TaskDB.id == task_id,
                TaskDB.user_id == user_id,
            ).delete(synchronize_session=False)
            self.db.commit()
            if deleted:
                logger.debug(f"Deleted task {task_id}")
            return deleted > 0
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete task {task_id}: {type(e).__name__}: {str(e)}")
            raise

    def get_subtasks(self, user_id: str, parent_task_id: str) -> List[Task]:
        """Get the subtasks of a parent in creation order."""
        tasks_db = self.db.query(TaskDB).filter(
            TaskDB.user_id == user_id,
            TaskDB.parent_task_id == parent_task_id,
        ).order_by(TaskDB.created_at, TaskDB.id).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def list_incomplete_subtask_ids(self, user_id: str, parent_task_id: str) -> List[str]:
        rows = self.db.query(TaskDB.id).filter(
            TaskDB.user_id == user_id,
            TaskDB.parent_task_id == parent_task_id,
            TaskDB.status != TaskStatus.DONE.value,
        ).order_by(TaskDB.created_at, TaskDB.id).all()
        return [row[0] for row in rows]

    def list_by_series(self, user_id: str, series_id: str) -> List[Task]:
        """Get every occurrence of a series, oldest first."""
        tasks_db = self.db.query(TaskDB).filter(
            TaskDB.user_id == user_id,
            TaskDB.series_id == series_id,
        ).order_by(TaskDB.created_at, TaskDB.id).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def list_active_chunk(self, *, after_id: Optional[str], limit: int) -> List[Task]:
        """Next chunk of not-done tasks across all owners, ordered by id.

        Keyset pagination: pass the last id of the previous chunk as
        ``after_id``.
        """
        query = self.db.query(TaskDB).filter(TaskDB.status != TaskStatus.DONE.value)
        if after_id is not None:
            query = query.filter(TaskDB.id > after_id)
        tasks_db = query.order_by(TaskDB.id).limit(limit).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def update_priority_scores(self, scores: Dict[str, int], updated_at: datetime) -> int:
        """Write cached scores for many tasks in one executemany UPDATE."""
        if not scores:
            return 0
        params = [
            {"id": task_id, "priority_score": score, "updated_at": updated_at}
            for task_id, score in scores.items()
        ]
        try:
            self.db.execute(update(TaskDB), params)
            self.db.commit()
            logger.debug(f"Updated priority scores for {len(params)} tasks")
            return len(params)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update priority scores: {type(e).__name__}: {str(e)}")
            raise
